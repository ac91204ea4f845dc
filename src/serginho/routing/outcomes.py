"""Attempt outcomes - one provider call, reported as a value instead of a raise."""

from dataclasses import dataclass

from serginho.core.exceptions import ProviderError

from .provider_backends import GenerationResult


@dataclass
class AttemptOutcome:
    """Result of calling one provider once. Exactly one of result/error is set."""

    provider_id: str
    duration_ms: int
    result: GenerationResult | None = None
    error: ProviderError | None = None
    skipped: bool = False  # refused by the circuit breaker, never called

    @property
    def success(self) -> bool:
        return self.result is not None

    def describe(self) -> dict[str, object]:
        return {
            "provider": self.provider_id,
            "success": self.success,
            "skipped": self.skipped,
            "error": self.error.message if self.error else None,
            "status": self.error.status if self.error else None,
        }
