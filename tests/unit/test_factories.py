"""
Tests for the dependency factories that wire an Orchestrator from Settings.
"""

import pytest

from serginho.config.settings import Settings
from serginho.core.exceptions import ConfigurationError
from serginho.core.factories import (
    PROVIDER_TIERS,
    create_circuit_breaker,
    create_orchestrator,
    create_providers,
    create_response_cache,
    create_session_store,
)
from serginho.core.session_store import MaxSessionsRetention
from serginho.core.types import Tier
from serginho.routing.provider_backends import ChatCompletionsProvider


def test_create_providers_uses_configured_models():
    providers = {p.provider_id: p for p in create_providers(Settings())}

    assert set(providers) == set(PROVIDER_TIERS)
    assert all(isinstance(p, ChatCompletionsProvider) for p in providers.values())
    assert providers["llama-70b"].tier == Tier.EXPERT
    assert providers["llama-120b"].model == "llama-3.3-70b-versatile"
    assert providers["groq-fallback"].model == "mixtral-8x7b-32768"
    assert providers["llama-8b"].timeout_seconds == 8.0


def test_create_providers_requires_key_outside_tests(monkeypatch):
    monkeypatch.setenv("SERGINHO_ENVIRONMENT", "production")
    with pytest.raises(ConfigurationError):
        create_providers(Settings())


def test_circuit_breaker_can_be_disabled():
    settings = Settings()
    assert create_circuit_breaker(settings).failure_threshold == 3
    settings.routing.circuit_breaker_enabled = False
    assert create_circuit_breaker(settings) is None


def test_response_cache_from_settings(monkeypatch):
    monkeypatch.setenv("SERGINHO_CACHE__TTL_SECONDS", "120")
    settings = Settings()
    cache = create_response_cache(settings)
    assert cache.ttl_seconds == 120
    assert cache.max_entries == 1000

    settings.cache.enabled = False
    assert create_response_cache(settings) is None

def test_session_store_retention_from_settings(monkeypatch):
    monkeypatch.setenv("SERGINHO_SESSIONS__MAX_SESSIONS", "5")
    store = create_session_store(Settings())
    assert isinstance(store.retention, MaxSessionsRetention)
    assert store.retention.max_sessions == 5


def test_create_orchestrator_with_injected_providers(fake_providers):
    settings = Settings()
    settings.routing.cancel_race_losers = False

    orchestrator = create_orchestrator(settings, providers=list(fake_providers.values()))

    assert set(orchestrator.providers) == set(fake_providers)
    assert orchestrator.race_executor.cancel_losers is False
    assert orchestrator.circuit_breaker is not None
    assert orchestrator.cache is not None
    assert orchestrator.metrics.service_name == "serginho"


def test_create_orchestrator_builds_http_providers():
    orchestrator = create_orchestrator(Settings())
    assert all(isinstance(p, ChatCompletionsProvider) for p in orchestrator.providers.values())
