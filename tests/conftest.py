"""
Pytest configuration for Serginho tests — hermetic environment and scripted
fake providers so no test ever reaches the network.
"""

import asyncio

import pytest

from serginho.core.exceptions import ProviderError
from serginho.core.types import Tier, TokenUsage
from serginho.routing.orchestrator import Orchestrator
from serginho.routing.provider_backends import GenerationOptions, GenerationResult, ProviderClient


class FakeProvider(ProviderClient):
    """ProviderClient with a scripted delay and outcome."""

    def __init__(
        self,
        provider_id: str,
        tier: Tier,
        text: str | None = None,
        delay: float = 0.0,
        fail: bool = False,
        error_message: str = "boom",
        status: int | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.tier = tier
        self.text = text if text is not None else f"answer from {provider_id}"
        self.delay = delay
        self.fail = fail
        self.error_message = error_message
        self.status = status
        self.calls: list[tuple[str, GenerationOptions | None]] = []
        self.cancelled = False
        self.closed = False

    async def generate(self, prompt, options=None):
        self.calls.append((prompt, options))
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.fail:
            raise ProviderError(self.provider_id, self.error_message, status=self.status)
        return GenerationResult(
            text=self.text,
            usage=TokenUsage(prompt_tokens=3, completion_tokens=5, total_tokens=8),
            model=f"{self.provider_id}-model",
        )

    async def close(self):
        self.closed = True


# =============================================================================
# ENVIRONMENT
# =============================================================================


@pytest.fixture(autouse=True)
def _test_environment(monkeypatch):
    """Run every test in the ``test`` environment with no real credential."""
    monkeypatch.setenv("SERGINHO_ENVIRONMENT", "test")
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    monkeypatch.delenv("SERGINHO_GROQ_API_KEY", raising=False)


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def provider_factory():
    """Return the FakeProvider class so tests can script their own providers."""
    return FakeProvider


@pytest.fixture
def fake_providers():
    """The four default provider ids, all healthy and instant."""
    return {
        "llama-120b": FakeProvider("llama-120b", Tier.GENIUS),
        "llama-70b": FakeProvider("llama-70b", Tier.EXPERT),
        "llama-8b": FakeProvider("llama-8b", Tier.FAST),
        "groq-fallback": FakeProvider("groq-fallback", Tier.FALLBACK),
    }


@pytest.fixture
def orchestrator(fake_providers):
    return Orchestrator(list(fake_providers.values()))
