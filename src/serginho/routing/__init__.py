"""
Serginho Routing System

The Orchestrator classifies each prompt (PatternIntentClassifier), maps the
intent to a tier and calls that tier's provider. Failures walk the
FallbackResolver chain; hybrid requests race several providers through the
ParallelRaceExecutor instead. A per-provider CircuitBreaker keeps known-bad
providers out of both paths, and a ResponseCache replays recent answers to
bare prompts on the sequential path.
"""

from serginho.routing.circuit_breaker import CircuitBreaker, CircuitState
from serginho.routing.fallback import FallbackResolver
from serginho.routing.intent_classifier import PatternIntentClassifier, tier_for_intent
from serginho.routing.orchestrator import Orchestrator
from serginho.routing.provider_backends import ChatCompletionsProvider, ProviderClient
from serginho.routing.race import ParallelRaceExecutor
from serginho.routing.response_cache import ResponseCache

__all__ = [
    "ChatCompletionsProvider",
    "CircuitBreaker",
    "CircuitState",
    "FallbackResolver",
    "Orchestrator",
    "ParallelRaceExecutor",
    "PatternIntentClassifier",
    "ProviderClient",
    "ResponseCache",
    "tier_for_intent",
]
