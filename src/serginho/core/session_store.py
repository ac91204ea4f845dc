"""
Session Store - Per-session conversation history
================================================

Keeps an ordered list of Exchange records per opaque session id, in process
memory only. Sessions are created lazily on first append and only grow;
removing whole sessions is left to an injected RetentionPolicy.

All mutation happens synchronously on the event loop thread, so appends for
one session keep request-arrival order without any locking.
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Protocol

from serginho.core.types import Exchange

logger = logging.getLogger(__name__)


class RetentionPolicy(Protocol):
    """Decides which sessions to evict. Called after every append."""

    def select_evictions(
        self, last_seen: "OrderedDict[str, float]", now: float
    ) -> list[str]:
        ...


class UnboundedRetention:
    """Never evicts anything."""

    def select_evictions(self, last_seen: "OrderedDict[str, float]", now: float) -> list[str]:
        return []


class MaxSessionsRetention:
    """Keeps at most ``max_sessions`` sessions, evicting the least recently used."""

    def __init__(self, max_sessions: int) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions

    def select_evictions(self, last_seen: "OrderedDict[str, float]", now: float) -> list[str]:
        overflow = len(last_seen) - self.max_sessions
        if overflow <= 0:
            return []
        return list(last_seen)[:overflow]


class MaxAgeRetention:
    """Evicts sessions that have been idle for longer than ``max_age_seconds``."""

    def __init__(self, max_age_seconds: float) -> None:
        self.max_age_seconds = max_age_seconds

    def select_evictions(self, last_seen: "OrderedDict[str, float]", now: float) -> list[str]:
        expired = []
        # Oldest first; stop at the first session still inside the window.
        for session_id, seen in last_seen.items():
            if now - seen <= self.max_age_seconds:
                break
            expired.append(session_id)
        return expired


class CompositeRetention:
    """Applies several policies; a session is evicted if any of them selects it."""

    def __init__(self, *policies: RetentionPolicy) -> None:
        self.policies = policies

    def select_evictions(self, last_seen: "OrderedDict[str, float]", now: float) -> list[str]:
        selected: dict[str, None] = {}
        for policy in self.policies:
            for session_id in policy.select_evictions(last_seen, now):
                selected[session_id] = None
        return list(selected)


class SessionStore:
    """In-memory session history keyed by session id."""

    def __init__(
        self,
        retention: RetentionPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.retention = retention or UnboundedRetention()
        self._clock = clock
        self._sessions: dict[str, list[Exchange]] = {}
        # Least recently appended first
        self._last_seen: OrderedDict[str, float] = OrderedDict()

    def append(self, session_id: str, exchange: Exchange) -> None:
        now = self._clock()
        self._sessions.setdefault(session_id, []).append(exchange)
        self._last_seen[session_id] = now
        self._last_seen.move_to_end(session_id)

        for evicted in self.retention.select_evictions(self._last_seen, now):
            if evicted == session_id:
                continue
            self._sessions.pop(evicted, None)
            self._last_seen.pop(evicted, None)
            logger.debug("Evicted session %s", evicted)

    def get(self, session_id: str) -> tuple[Exchange, ...]:
        return tuple(self._sessions.get(session_id, ()))

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def build_retention_policy(max_sessions: int | None, max_age_seconds: float | None) -> RetentionPolicy:
    """Build the retention policy described by session settings."""
    policies: list[RetentionPolicy] = []
    if max_sessions is not None:
        policies.append(MaxSessionsRetention(max_sessions))
    if max_age_seconds is not None:
        policies.append(MaxAgeRetention(max_age_seconds))
    if not policies:
        return UnboundedRetention()
    if len(policies) == 1:
        return policies[0]
    return CompositeRetention(*policies)
