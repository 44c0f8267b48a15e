"""
Size-bounded store for expensive intermediate search results.

Eviction is random, not least-recently-used: after every store the element
counts of all cached values are summed and, while the total exceeds the budget,
keys chosen uniformly at random are dropped. A dropped key may be the one that
was just stored.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, Optional, Sized

logger = logging.getLogger(__name__)

CACHE_MAX_TOTAL_SIZE = 100_000_000


class ResultCache:
    """Key -> result store. Keys are opaque strings chosen by callers."""

    def __init__(
        self,
        max_total_size: int = CACHE_MAX_TOTAL_SIZE,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.max_total_size = max_total_size
        self._rng = rng if rng is not None else random.Random()
        self._entries: Dict[str, Sized] = {}
        self._total_size = 0

    def retrieve(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key``, or None if absent or evicted."""
        return self._entries.get(key)

    def store(self, key: str, value: Sized) -> None:
        """Insert or overwrite ``key``, then evict random entries until within budget."""
        previous = self._entries.get(key)
        if previous is not None:
            self._total_size -= len(previous)
        self._entries[key] = value
        self._total_size += len(value)

        while self._total_size > self.max_total_size:
            victim = self._rng.choice(list(self._entries))
            self._total_size -= len(self._entries.pop(victim))
            logger.debug(
                f"Cache over budget ({self._total_size} left of {self.max_total_size}), "
                f"evicted {victim!r}"
            )

    def clear(self) -> None:
        self._entries.clear()
        self._total_size = 0

    def total_size(self) -> int:
        return self._total_size

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
