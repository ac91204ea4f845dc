"""Routing metrics — in-memory counters mirrored to Prometheus instruments."""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from serginho.core.types import Tier

logger = logging.getLogger(__name__)

PROMETHEUS_CONTENT_TYPE = CONTENT_TYPE_LATEST

_ROUTED_TIERS = (Tier.GENIUS, Tier.EXPERT, Tier.FAST)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only copy of the collector state at one point in time."""

    total_requests: int
    routing_decisions: Mapping[str, int]
    served_by_tier: Mapping[str, int]
    avg_response_time_ms: float
    failed_requests: Mapping[str, int]
    provider_failures: Mapping[str, int]
    active_session_count: int = 0
    cache_hits: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "totalRequests": self.total_requests,
            "routingDecisions": dict(self.routing_decisions),
            "servedByTier": dict(self.served_by_tier),
            "avgResponseTime": self.avg_response_time_ms,
            "failedRequests": dict(self.failed_requests),
            "providerFailures": dict(self.provider_failures),
            "activeSessions": self.active_session_count,
            "cacheHits": self.cache_hits,
        }


class MetricsCollector:
    """
    Process-wide routing counters.

    Only ever accumulates; nothing is decremented. ``avg_response_time_ms``
    is a cumulative moving average over completed requests. Each collector
    owns a private Prometheus registry so several orchestrators (and tests)
    can coexist in one process.
    """

    def __init__(self, service_name: str = "serginho") -> None:
        self.service_name = service_name
        self.total_requests = 0
        self.avg_response_time_ms = 0.0
        self.routing_decisions: dict[str, int] = {tier.value: 0 for tier in _ROUTED_TIERS}
        self.served_by_tier: dict[str, int] = {}
        self.failed_requests: dict[str, int] = {}
        self.provider_failures: dict[str, int] = {}
        self.cache_hits = 0

        self.registry = CollectorRegistry()
        self._requests_total = Counter(
            "serginho_requests_total", "Completed requests", ["tier"], registry=self.registry
        )
        self._routing_total = Counter(
            "serginho_routing_decisions_total", "Initial routing decisions", ["tier"], registry=self.registry
        )
        self._response_seconds = Histogram(
            "serginho_response_seconds", "Winning provider call duration", ["tier"], registry=self.registry
        )
        self._failures_total = Counter(
            "serginho_provider_failures_total", "Failed provider calls", ["provider"], registry=self.registry
        )
        self._request_failures_total = Counter(
            "serginho_request_failures_total", "Requests that exhausted every provider", ["kind"],
            registry=self.registry,
        )
        self._cache_hits_total = Counter(
            "serginho_cache_hits_total", "Requests answered from the response cache", registry=self.registry
        )
        self._active_sessions = Gauge(
            "serginho_active_sessions", "Sessions held in memory", registry=self.registry
        )
        logger.info("MetricsCollector initialized for %s", service_name)

    def record_routing_decision(self, tier: Tier) -> None:
        """Count one initial classification. Fallback hops are not counted."""
        self.routing_decisions[tier.value] = self.routing_decisions.get(tier.value, 0) + 1
        self._routing_total.labels(tier=tier.value).inc()

    def record_completion(self, tier: Tier, duration_ms: float) -> None:
        """Count one successful request served by ``tier``."""
        self.total_requests += 1
        n = self.total_requests
        self.avg_response_time_ms = (self.avg_response_time_ms * (n - 1) + duration_ms) / n
        self.served_by_tier[tier.value] = self.served_by_tier.get(tier.value, 0) + 1
        self._requests_total.labels(tier=tier.value).inc()
        self._response_seconds.labels(tier=tier.value).observe(duration_ms / 1000)

    def record_provider_failure(self, provider_id: str) -> None:
        self.provider_failures[provider_id] = self.provider_failures.get(provider_id, 0) + 1
        self._failures_total.labels(provider=provider_id).inc()

    def record_cache_hit(self) -> None:
        self.cache_hits += 1
        self._cache_hits_total.inc()

    def record_request_failure(self, kind: str) -> None:
        self.failed_requests[kind] = self.failed_requests.get(kind, 0) + 1
        self._request_failures_total.labels(kind=kind).inc()

    def get_snapshot(self, active_session_count: int = 0) -> MetricsSnapshot:
        self._active_sessions.set(active_session_count)
        return MetricsSnapshot(
            total_requests=self.total_requests,
            routing_decisions=MappingProxyType(dict(self.routing_decisions)),
            served_by_tier=MappingProxyType(dict(self.served_by_tier)),
            avg_response_time_ms=self.avg_response_time_ms,
            failed_requests=MappingProxyType(dict(self.failed_requests)),
            provider_failures=MappingProxyType(dict(self.provider_failures)),
            active_session_count=active_session_count,
            cache_hits=self.cache_hits,
        )

    def render_prometheus(self) -> bytes:
        return generate_latest(self.registry)
