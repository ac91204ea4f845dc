"""
Observability Package
=====================

Routing counters for Serginho, kept in memory and mirrored to Prometheus.

    from serginho.observability import MetricsCollector
    metrics = MetricsCollector()
    metrics.record_routing_decision(Tier.FAST)
    snapshot = metrics.get_snapshot()
"""

from .metrics import PROMETHEUS_CONTENT_TYPE, MetricsCollector, MetricsSnapshot

__all__ = ["MetricsCollector", "MetricsSnapshot", "PROMETHEUS_CONTENT_TYPE"]
