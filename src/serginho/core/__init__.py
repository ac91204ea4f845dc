"""Core serginho module — canonical public API."""

from serginho.core.exceptions import (
    ChainExhaustedError,
    ConfigurationError,
    ErrorCode,
    ProviderError,
    RaceExhaustedError,
    SerginhoError,
    SpecialistNotFoundError,
    ValidationError,
)
from serginho.core.types import (
    DEFAULT_SESSION_ID,
    Exchange,
    IntentCategory,
    OrchestratorResult,
    RequestMode,
    RequestOptions,
    Tier,
    TokenUsage,
)

__all__ = [
    "ChainExhaustedError",
    "ConfigurationError",
    "DEFAULT_SESSION_ID",
    "ErrorCode",
    "Exchange",
    "IntentCategory",
    "OrchestratorResult",
    "ProviderError",
    "RaceExhaustedError",
    "RequestMode",
    "RequestOptions",
    "SerginhoError",
    "SpecialistNotFoundError",
    "Tier",
    "TokenUsage",
    "ValidationError",
]
