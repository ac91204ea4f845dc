"""Response Cache - reuse a provider's answer to a recently seen prompt."""

import logging
import re
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from .provider_backends import GenerationResult

logger = logging.getLogger(__name__)

KEY_PROMPT_CHARS = 100

_WHITESPACE = re.compile(r"\s+")


@dataclass
class CacheEntry:
    """Cached generation with its expiry time."""

    value: GenerationResult
    expires_at: float


class ResponseCache:
    """
    In-memory TTL cache of successful generations keyed by provider and prompt.

    The key uses only the first 100 characters of the prompt, so long prompts
    sharing a prefix share an entry. Expired entries are dropped when read;
    past ``max_entries`` the oldest entry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int | None = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    @staticmethod
    def key_for(provider_id: str, prompt: str) -> str:
        return f"{provider_id}:{_WHITESPACE.sub('_', prompt[:KEY_PROMPT_CHARS])}"

    def get(self, key: str) -> GenerationResult | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: GenerationResult) -> None:
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached response %s", evicted)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Response cache cleared")

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
