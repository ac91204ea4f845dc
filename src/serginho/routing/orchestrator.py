"""
Orchestrator — single entry point for every model request.

Classifies the prompt, picks the initial tier, runs the provider and walks
the fallback chain on failure; or, in hybrid mode, races several providers
and keeps the first success. Owns the provider registry, the session store
and the metrics collector for its lifetime.
"""

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from serginho.core.exceptions import (
    ChainExhaustedError,
    ConfigurationError,
    ProviderError,
    RaceExhaustedError,
)
from serginho.core.session_store import SessionStore
from serginho.core.structured_logger import get_logger
from serginho.core.types import (
    DEFAULT_SESSION_ID,
    Exchange,
    OrchestratorResult,
    RequestMode,
    RequestOptions,
    Tier,
)
from serginho.observability.metrics import MetricsCollector, MetricsSnapshot

from .circuit_breaker import CircuitBreaker
from .fallback import FallbackResolver
from .intent_classifier import Classifier, PatternIntentClassifier, tier_for_intent
from .outcomes import AttemptOutcome
from .provider_backends import GenerationOptions, ProviderClient
from .race import ParallelRaceExecutor
from .response_cache import ResponseCache

logger = logging.getLogger(__name__)
slog = get_logger("Orchestrator")

DEFAULT_TIER_PROVIDERS: dict[Tier, str] = {
    Tier.GENIUS: "llama-120b",
    Tier.EXPERT: "llama-70b",
    Tier.FAST: "llama-8b",
}

DEFAULT_RACE_PROVIDERS = ("llama-120b", "llama-70b", "llama-8b")


def _now_ms() -> int:
    return int(time.time() * 1000)


class Orchestrator:
    """Routes requests across tiered providers with fallback and race modes."""

    def __init__(
        self,
        providers: Iterable[ProviderClient],
        classifier: Classifier | None = None,
        fallback_resolver: FallbackResolver | None = None,
        sessions: SessionStore | None = None,
        metrics: MetricsCollector | None = None,
        tier_providers: Mapping[Tier, str] | None = None,
        race_executor: ParallelRaceExecutor | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.providers: dict[str, ProviderClient] = {}
        for provider in providers:
            if provider.provider_id in self.providers:
                raise ConfigurationError(f"Duplicate provider id: {provider.provider_id}")
            self.providers[provider.provider_id] = provider

        self.classifier = classifier or PatternIntentClassifier()
        self.fallback = fallback_resolver or FallbackResolver()
        self.sessions = sessions or SessionStore()
        self.metrics = metrics or MetricsCollector()
        self.tier_providers = dict(tier_providers or DEFAULT_TIER_PROVIDERS)
        self.race_executor = race_executor or ParallelRaceExecutor(DEFAULT_RACE_PROVIDERS)
        self.circuit_breaker = circuit_breaker
        self.cache = cache

        self._validate_wiring()
        logger.info(
            "Orchestrator initialized: providers=%s, circuit_breaker=%s, cache=%s",
            sorted(self.providers),
            circuit_breaker is not None,
            cache is not None,
        )

    def _validate_wiring(self) -> None:
        unmapped = [t.value for t in (Tier.GENIUS, Tier.EXPERT, Tier.FAST) if t not in self.tier_providers]
        if unmapped:
            raise ConfigurationError(f"No provider mapped for tier(s): {', '.join(unmapped)}")
        referenced = set(self.tier_providers.values()) | set(self.race_executor.provider_ids)
        for provider_id in self.providers:
            referenced.update(self.fallback.chain_for(provider_id))
        missing = sorted(referenced - set(self.providers))
        if missing:
            raise ConfigurationError(
                f"Routing references unknown provider(s): {', '.join(missing)}",
                details={"missing": missing},
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle_request(self, prompt: str, options: RequestOptions | None = None) -> OrchestratorResult:
        """
        Serve one prompt.

        Raises:
            ChainExhaustedError: every provider of the fallback chain failed.
            RaceExhaustedError: every provider of a hybrid race failed.
        """
        options = options or RequestOptions()
        session_id = options.session_id or DEFAULT_SESSION_ID
        history = self.sessions.get(session_id)
        intent = self.classifier.classify(prompt, history)

        # Appended before the first await: per-session order is arrival order.
        self.sessions.append(session_id, Exchange(prompt=prompt, intent=intent, timestamp=_now_ms()))

        generation = GenerationOptions(
            system_prompt=options.system_prompt,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            messages=options.messages,
        )

        if options.mode == RequestMode.HYBRID:
            result = await self._race(prompt, generation)
        else:
            result = await self._route(
                prompt, generation, tier_for_intent(intent), self._cache_for(options), options.bypass_cache
            )
        result.intent = intent
        return result

    def classify(self, prompt: str, session_id: str = DEFAULT_SESSION_ID) -> Tier:
        """Return the tier a prompt would be routed to, without side effects."""
        return tier_for_intent(self.classifier.classify(prompt, self.sessions.get(session_id)))

    def get_metrics(self) -> MetricsSnapshot:
        return self.metrics.get_snapshot(active_session_count=len(self.sessions))

    def get_tier(self, provider_id: str) -> Tier | None:
        provider = self.providers.get(provider_id)
        return provider.tier if provider else None

    def get_circuit_breaker_status(self) -> dict[str, Any]:
        if not self.circuit_breaker:
            return {"enabled": False, "providers": {pid: {"state": "disabled"} for pid in self.providers}}
        return {"enabled": True, "providers": self.circuit_breaker.status(sorted(self.providers))}

    def reset_circuit_breaker(self, provider_id: str) -> None:
        if not self.circuit_breaker:
            logger.warning("Circuit breaker is disabled, cannot reset")
            return
        if provider_id not in self.providers:
            logger.warning("Unknown provider: %s", provider_id)
            return
        self.circuit_breaker.reset(provider_id)

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()

    async def close(self) -> None:
        for provider in self.providers.values():
            await provider.close()

    # ------------------------------------------------------------------
    # Sequential routing
    # ------------------------------------------------------------------

    def _cache_for(self, options: RequestOptions) -> ResponseCache | None:
        # Only bare prompts are cached: a transcript or persona changes the answer.
        if options.messages or options.system_prompt is not None:
            return None
        if options.temperature is not None or options.max_tokens is not None:
            return None
        return self.cache

    async def _route(
        self,
        prompt: str,
        generation: GenerationOptions,
        tier: Tier,
        cache: ResponseCache | None = None,
        bypass_cache: bool = False,
    ) -> OrchestratorResult:
        root_id = self.tier_providers.get(tier) or self.tier_providers[Tier.GENIUS]
        provider_id: str | None = root_id
        self.metrics.record_routing_decision(tier)
        slog.info("Routing decision", tier=tier.value, provider=root_id)

        start = time.perf_counter()
        attempted: list[str] = []
        failures: list[AttemptOutcome] = []
        while provider_id is not None:
            attempted.append(provider_id)
            key = ResponseCache.key_for(provider_id, prompt)
            if cache is not None and not bypass_cache:
                cached = cache.get(key)
                if cached is not None:
                    slog.info("Cache hit", provider=provider_id)
                    self.metrics.record_cache_hit()
                    outcome = AttemptOutcome(
                        provider_id=provider_id,
                        duration_ms=int((time.perf_counter() - start) * 1000),
                        result=cached,
                    )
                    return self._complete(outcome, source="sequential", attempted=attempted, from_cache=True)

            outcome = await self._attempt(provider_id, prompt, generation)
            if outcome.success:
                if cache is not None:
                    cache.set(key, outcome.result)
                return self._complete(outcome, source="sequential", attempted=attempted)

            failures.append(outcome)
            next_id = self.fallback.next_provider(root_id, set(attempted))
            if next_id is not None:
                slog.warning("Fallback", failed=provider_id, next=next_id)
            provider_id = next_id

        self.metrics.record_request_failure("sequential")
        slog.error("All providers failed", attempted=attempted)
        raise ChainExhaustedError(details={"attempts": [f.describe() for f in failures]})

    # ------------------------------------------------------------------
    # Hybrid race
    # ------------------------------------------------------------------

    async def _race(self, prompt: str, generation: GenerationOptions) -> OrchestratorResult:
        contenders = [pid for pid in self.race_executor.provider_ids if self._circuit_allows(pid)]
        slog.info("Hybrid race", providers=contenders)

        async def attempt(provider_id: str) -> AttemptOutcome:
            return await self._call(provider_id, prompt, generation)

        race = await self.race_executor.race(attempt, contenders)
        if race.winner is None:
            self.metrics.record_request_failure("parallel")
            slog.error("All models failed in parallel mode", providers=contenders)
            raise RaceExhaustedError(details={"attempts": [f.describe() for f in race.failures]})
        return self._complete(race.winner, source="parallel", attempted=list(contenders))

    # ------------------------------------------------------------------
    # Single attempts
    # ------------------------------------------------------------------

    def _circuit_allows(self, provider_id: str) -> bool:
        if not self.circuit_breaker:
            return True
        allowed, reason = self.circuit_breaker.allow(provider_id)
        if not allowed:
            logger.info("Circuit breaker blocked %s: %s", provider_id, reason)
        return allowed

    async def _attempt(self, provider_id: str, prompt: str, generation: GenerationOptions) -> AttemptOutcome:
        if not self._circuit_allows(provider_id):
            return AttemptOutcome(
                provider_id=provider_id,
                duration_ms=0,
                error=ProviderError(provider_id, "Circuit breaker open"),
                skipped=True,
            )
        return await self._call(provider_id, prompt, generation)

    async def _call(self, provider_id: str, prompt: str, generation: GenerationOptions) -> AttemptOutcome:
        provider = self.providers[provider_id]
        start = time.perf_counter()
        try:
            result = await provider.generate(prompt, generation)
        except asyncio.CancelledError:
            # A cancelled race loser neither succeeded nor failed.
            if self.circuit_breaker:
                self.circuit_breaker.release(provider_id)
            raise
        except ProviderError as e:
            error = e
        except Exception as e:
            logger.error("Unexpected error from %s", provider_id, exc_info=True)
            error = ProviderError(provider_id, f"Unexpected error: {e}")
        else:
            if self.circuit_breaker:
                self.circuit_breaker.record_success(provider_id)
            return AttemptOutcome(
                provider_id=provider_id,
                duration_ms=int((time.perf_counter() - start) * 1000),
                result=result,
            )

        duration_ms = int((time.perf_counter() - start) * 1000)
        if self.circuit_breaker:
            self.circuit_breaker.record_failure(provider_id)
        self.metrics.record_provider_failure(provider_id)
        slog.warning("Provider failed", provider=provider_id, error=error.message, status=error.status)
        return AttemptOutcome(provider_id=provider_id, duration_ms=duration_ms, error=error)

    def _complete(
        self,
        outcome: AttemptOutcome,
        source: str,
        attempted: Sequence[str],
        from_cache: bool = False,
    ) -> OrchestratorResult:
        provider = self.providers[outcome.provider_id]
        self.metrics.record_completion(provider.tier, outcome.duration_ms)
        return OrchestratorResult(
            provider=outcome.provider_id,
            tier=provider.tier,
            duration=outcome.duration_ms,
            result=outcome.result.text,
            usage=outcome.result.usage,
            source=source,
            fallbacks_used=len(attempted) - 1 if source == "sequential" else 0,
            attempted=list(attempted),
            from_cache=from_cache,
        )
