"""Dependency factories — build an Orchestrator explicitly from Settings."""

from __future__ import annotations

from serginho.config.settings import Settings
from serginho.core.session_store import SessionStore, build_retention_policy
from serginho.core.structured_logger import get_logger
from serginho.core.types import Tier
from serginho.observability.metrics import MetricsCollector
from serginho.routing.circuit_breaker import CircuitBreaker
from serginho.routing.fallback import FallbackResolver
from serginho.routing.intent_classifier import PatternIntentClassifier
from serginho.routing.orchestrator import DEFAULT_RACE_PROVIDERS, Orchestrator
from serginho.routing.provider_backends import ChatCompletionsProvider, ProviderClient
from serginho.routing.race import ParallelRaceExecutor
from serginho.routing.response_cache import ResponseCache

logger = get_logger("Factories")

PROVIDER_TIERS: dict[str, Tier] = {
    "llama-120b": Tier.GENIUS,
    "llama-70b": Tier.EXPERT,
    "llama-8b": Tier.FAST,
    "groq-fallback": Tier.FALLBACK,
}


def create_providers(settings: Settings) -> list[ProviderClient]:
    """
    Return one ChatCompletionsProvider per configured tier.

    Raises:
        ConfigurationError: GROQ_API_KEY is missing outside the test environment.
    """
    api_key = settings.require_api_key()
    cfg = settings.providers
    providers: list[ProviderClient] = []
    for provider_id, tier in PROVIDER_TIERS.items():
        providers.append(
            ChatCompletionsProvider(
                provider_id=provider_id,
                tier=tier,
                model=cfg.models.get(provider_id, provider_id),
                api_key=api_key,
                base_url=cfg.base_url,
                timeout_seconds=cfg.timeout_seconds,
                default_temperature=cfg.default_temperature,
                default_max_tokens=cfg.default_max_tokens,
            )
        )
    logger.info("Created providers", providers=list(PROVIDER_TIERS), base_url=cfg.base_url)
    return providers


def create_circuit_breaker(settings: Settings) -> CircuitBreaker | None:
    routing = settings.routing
    if not routing.circuit_breaker_enabled:
        return None
    return CircuitBreaker(
        failure_threshold=routing.circuit_breaker_threshold,
        recovery_timeout=routing.circuit_breaker_timeout,
        half_open_max_calls=routing.circuit_breaker_half_open_calls,
    )


def create_response_cache(settings: Settings) -> ResponseCache | None:
    cfg = settings.cache
    if not cfg.enabled:
        return None
    return ResponseCache(ttl_seconds=cfg.ttl_seconds, max_entries=cfg.max_entries)


def create_session_store(settings: Settings) -> SessionStore:
    retention = build_retention_policy(settings.sessions.max_sessions, settings.sessions.max_age_seconds)
    logger.info(
        "Creating SessionStore",
        max_sessions=settings.sessions.max_sessions,
        max_age_seconds=settings.sessions.max_age_seconds,
    )
    return SessionStore(retention=retention)


def create_orchestrator(
    settings: Settings,
    providers: list[ProviderClient] | None = None,
) -> Orchestrator:
    """Wire a fresh Orchestrator; pass ``providers`` to bypass the HTTP backends."""
    return Orchestrator(
        providers=providers if providers is not None else create_providers(settings),
        classifier=PatternIntentClassifier(),
        fallback_resolver=FallbackResolver(),
        sessions=create_session_store(settings),
        metrics=MetricsCollector(service_name=settings.project_name.lower()),
        race_executor=ParallelRaceExecutor(
            DEFAULT_RACE_PROVIDERS, cancel_losers=settings.routing.cancel_race_losers
        ),
        circuit_breaker=create_circuit_breaker(settings),
        cache=create_response_cache(settings),
    )
