"""Fallback Resolver - fixed, downstream-only provider chains."""

import logging
from collections.abc import Iterable, Mapping, Set

logger = logging.getLogger(__name__)

# Each chain only points at cheaper / more available providers.
DEFAULT_FALLBACK_CHAINS: dict[str, list[str]] = {
    "llama-120b": ["llama-70b", "llama-8b", "groq-fallback"],
    "llama-70b": ["llama-8b", "groq-fallback"],
    "llama-8b": ["groq-fallback"],
    "groq-fallback": [],
}


class FallbackResolver:
    """
    Picks the next provider to try after a failure.

    ``next_provider`` never returns a provider listed in ``already_tried``
    nor the provider that just failed, so a request exhausts its chain in a
    bounded number of hops even if the configured chains form a cycle.
    """

    def __init__(self, chains: Mapping[str, Iterable[str]] | None = None) -> None:
        source = chains if chains is not None else DEFAULT_FALLBACK_CHAINS
        self._chains: dict[str, tuple[str, ...]] = {k: tuple(v) for k, v in source.items()}

    def chain_for(self, provider_id: str) -> tuple[str, ...]:
        return self._chains.get(provider_id, ())

    def known_providers(self) -> set[str]:
        ids = set(self._chains)
        for chain in self._chains.values():
            ids.update(chain)
        return ids

    def next_provider(self, failed: str, already_tried: Set[str]) -> str | None:
        for candidate in self.chain_for(failed):
            if candidate != failed and candidate not in already_tried:
                return candidate
        logger.debug("Fallback chain exhausted after %s (tried: %s)", failed, sorted(already_tried))
        return None
