"""Circuit Breaker - stops sending traffic to providers that keep failing."""

import logging
import time
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Per-provider circuit breaker (CLOSED -> OPEN -> HALF_OPEN).

    A provider opens after ``failure_threshold`` consecutive failures and is
    refused until ``recovery_timeout`` seconds have passed; then a limited
    number of trial calls decide whether it closes again.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        recovery_timeout: float = 60.0,
        half_open_max_calls: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock
        self.failure_counts: dict[str, int] = defaultdict(int)
        self.states: dict[str, CircuitState] = defaultdict(lambda: CircuitState.CLOSED)
        self.opened_at: dict[str, float] = {}
        self.half_open_calls: dict[str, int] = defaultdict(int)

    def allow(self, provider_id: str) -> tuple[bool, str]:
        """Return (allowed, reason) for the given provider."""
        state = self.states[provider_id]
        if state == CircuitState.CLOSED:
            return True, "circuit_closed"
        if state == CircuitState.OPEN:
            elapsed = self._clock() - self.opened_at.get(provider_id, 0.0)
            if elapsed >= self.recovery_timeout:
                self.states[provider_id] = CircuitState.HALF_OPEN
                self.half_open_calls[provider_id] = 1
                logger.info("Circuit for %s: OPEN -> HALF_OPEN", provider_id)
                return True, "circuit_testing_recovery"
            return False, f"circuit_open_wait_{int(self.recovery_timeout - elapsed)}s"
        if self.half_open_calls[provider_id] < self.half_open_max_calls:
            self.half_open_calls[provider_id] += 1
            return True, "circuit_half_open_testing"
        return False, "circuit_half_open_limit_reached"

    def record_success(self, provider_id: str) -> None:
        if self.states[provider_id] == CircuitState.HALF_OPEN:
            logger.info("Circuit for %s: HALF_OPEN -> CLOSED (recovered)", provider_id)
        self.states[provider_id] = CircuitState.CLOSED
        self.failure_counts[provider_id] = 0
        self.half_open_calls[provider_id] = 0

    def record_failure(self, provider_id: str) -> None:
        state = self.states[provider_id]
        self.failure_counts[provider_id] += 1
        if state == CircuitState.HALF_OPEN:
            self._open(provider_id)
            logger.warning("Circuit for %s: HALF_OPEN -> OPEN (trial call failed)", provider_id)
        elif state == CircuitState.CLOSED and self.failure_counts[provider_id] >= self.failure_threshold:
            self._open(provider_id)
            logger.warning(
                "Circuit for %s: CLOSED -> OPEN (%s failures)",
                provider_id,
                self.failure_counts[provider_id],
            )

    def release(self, provider_id: str) -> None:
        """Hand back a HALF_OPEN slot taken by a call that never finished."""
        if self.states[provider_id] == CircuitState.HALF_OPEN and self.half_open_calls[provider_id] > 0:
            self.half_open_calls[provider_id] -= 1

    def _open(self, provider_id: str) -> None:
        self.states[provider_id] = CircuitState.OPEN
        self.opened_at[provider_id] = self._clock()
        self.half_open_calls[provider_id] = 0

    def get_state(self, provider_id: str) -> CircuitState:
        return self.states[provider_id]

    def reset(self, provider_id: str) -> None:
        """Manually close the circuit for a provider"""
        self.states[provider_id] = CircuitState.CLOSED
        self.failure_counts[provider_id] = 0
        self.half_open_calls[provider_id] = 0
        self.opened_at.pop(provider_id, None)
        logger.info("Circuit for %s: manually reset to CLOSED", provider_id)

    def status(self, provider_ids: list[str]) -> dict[str, dict[str, Any]]:
        return {
            pid: {
                "state": self.states[pid].value,
                "failure_count": self.failure_counts[pid],
            }
            for pid in provider_ids
        }
