"""
Core Type Definitions
=====================

Centralized type definitions shared by the routing layer, the session store
and the HTTP interface.

OrchestratorResult is the single canonical result object returned by
Orchestrator.handle_request() and serialized by the web interface.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_SESSION_ID = "default"


class IntentCategory(str, Enum):
    """Coarse intent inferred from a prompt; selects the initial tier."""

    CASUAL = "casual"
    TECHNICAL = "technical"
    DEEP = "deep"

    def __str__(self) -> str:
        return self.value


class Tier(str, Enum):
    """Capability/cost class of a backend model."""

    FAST = "fast"
    EXPERT = "expert"
    GENIUS = "genius"
    FALLBACK = "fallback"

    def __str__(self) -> str:
        return self.value


class RequestMode(str, Enum):
    """How a request is executed."""

    INTELLIGENT = "intelligent"
    HYBRID = "betinho-hybrid"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Exchange:
    """One prior prompt in a session. Immutable once appended."""
    prompt: str
    intent: IntentCategory
    timestamp: int  # epoch milliseconds


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class RequestOptions:
    """Per-request options accepted by Orchestrator.handle_request()."""
    session_id: str = DEFAULT_SESSION_ID
    mode: RequestMode = RequestMode.INTELLIGENT
    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    # Prior conversation turns, oldest first: {"role": ..., "content": ...}
    messages: list[dict[str, Any]] | None = None
    bypass_cache: bool = False


@dataclass
class OrchestratorResult:
    """
    Successful outcome of a request.

    ``duration`` is the wall time of the winning provider call in
    milliseconds. ``source`` is ``"parallel"`` for hybrid races and
    ``"sequential"`` otherwise. ``from_cache`` marks an answer
    replayed from the response cache.
    """
    provider: str
    tier: Tier
    duration: int
    result: str
    usage: TokenUsage
    success: bool = True
    source: str = "sequential"
    intent: IntentCategory | None = None
    fallbacks_used: int = 0
    attempted: list[str] = field(default_factory=list)
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "provider": self.provider,
            "tier": self.tier.value,
            "duration": self.duration,
            "result": self.result,
            "usage": self.usage.to_dict(),
            "source": self.source,
            "intent": self.intent.value if self.intent else None,
            "fallbacks_used": self.fallbacks_used,
            "from_cache": self.from_cache,
        }


__all__ = [
    'DEFAULT_SESSION_ID',
    'Exchange',
    'IntentCategory',
    'OrchestratorResult',
    'RequestMode',
    'RequestOptions',
    'Tier',
    'TokenUsage',
]
