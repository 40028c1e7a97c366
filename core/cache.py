"""
Capability Cache

Memoizes "can this agent handle this (query, recent history)" decisions so
that repeated requests do not pay for another classification call.

The cache is the only state shared between concurrent sessions:
- lookups and inserts are guarded by a lock
- values are computed outside the lock and inserted only if absent
  (a key always maps to the same decision, so racing writers are harmless)
- size is bounded (least recently used entries are evicted first)
- entries expire after a TTL
"""

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Tuple

from config import CAPABILITY_CACHE_MAX_SIZE, CAPABILITY_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

# Number of trailing history messages that take part in the key
HISTORY_KEY_WINDOW = 2


def make_cache_key(
    agent_name: str,
    query: str,
    history: Optional[List[Dict[str, str]]] = None,
) -> str:
    """
    Build the cache key for a capability decision.

    The key covers the agent name, the query and the last two history
    messages, so decisions are never shared between agents.

    Args:
        agent_name: Name of the agent being asked
        query: The user's request
        history: Conversation history (only the last 2 entries are used)

    Returns:
        Hex SHA-256 digest
    """
    recent = (history or [])[-HISTORY_KEY_WINDOW:]
    parts = [agent_name, query] + [
        f"{msg.get('role', '')}:{msg.get('content', '')}" for msg in recent
    ]
    return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()


class CapabilityCache:
    """Thread-safe LRU cache with per-entry TTL for boolean capability decisions."""

    def __init__(
        self,
        max_size: int = CAPABILITY_CACHE_MAX_SIZE,
        ttl_seconds: Optional[float] = CAPABILITY_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[bool, Optional[float]]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[bool]:
        """Return the cached decision, or None when missing or expired."""
        with self._lock:
            return self._get_locked(key)

    def put_if_absent(self, key: str, value: bool) -> bool:
        """
        Store ``value`` unless a live entry already exists.

        Returns:
            The value now stored under ``key`` (the existing one wins)
        """
        with self._lock:
            existing = self._lookup_locked(key)
            if existing is not None:
                return existing

            expires_at = None
            if self.ttl_seconds is not None:
                expires_at = self._clock() + self.ttl_seconds
            self._entries[key] = (value, expires_at)
            self._entries.move_to_end(key)

            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
                self._evictions += 1
            return value

    def get_or_compute(self, key: str, compute: Callable[[], bool]) -> bool:
        """
        Return the cached decision or compute and store it.

        ``compute`` runs without holding the lock. If it raises, nothing is
        cached and the exception propagates.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = compute()
        return self.put_if_absent(key, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        """Hit/miss/eviction counters and current size."""
        with self._lock:
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _get_locked(self, key: str) -> Optional[bool]:
        value = self._lookup_locked(key)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    def _lookup_locked(self, key: str) -> Optional[bool]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            logger.debug(f"⌛ Capability cache entry expired: {key[:12]}")
            return None

        self._entries.move_to_end(key)
        return value
