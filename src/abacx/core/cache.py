from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any, Callable, Optional, Tuple

from .ports import CachePort

logger = logging.getLogger("abacx.cache")


class DefaultInMemoryCache(CachePort):
    """Thread-safe LRU cache with optional per-entry TTL.

    ``ttl`` of ``None``, ``0`` or a negative number means "never expires".
    Expired entries are removed lazily on access.
    """

    def __init__(self, maxsize: int = 2048) -> None:
        self.maxsize = max(1, int(maxsize))
        self._data: "OrderedDict[str, Tuple[Optional[float], Any]]" = OrderedDict()
        self._lock = threading.RLock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl is not None and ttl > 0 else None
        with self._lock:
            self._data[key] = (expires_at, value)
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def _canonical(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(v) for v in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    return value


def principal_fingerprint(principal: Mapping[str, Any]) -> str:
    """Stable hash of a principal attribute bag (key order does not matter)."""
    doc = json.dumps(_canonical(principal), sort_keys=True, separators=(",", ":"), default=repr)
    return hashlib.sha256(doc.encode("utf-8")).hexdigest()


class AbilityCache:
    """Caller-owned cache of per-principal evaluators.

    Usage::

        abilities = AbilityCache(lambda p: Evaluator(define_rules(p, policy)), ttl=300)
        abilities.get(principal).can("read", "document")

    Entries are keyed by ``principal_fingerprint``; equal attribute bags share
    one entry. Call ``invalidate``/``clear`` when the policy or a principal
    changes.
    """

    def __init__(
        self,
        factory: Callable[[Mapping[str, Any]], Any],
        *,
        cache: CachePort | None = None,
        ttl: Optional[int] = 300,
        namespace: str = "abacx:ability",
    ) -> None:
        self.factory = factory
        self.cache = cache if cache is not None else DefaultInMemoryCache()
        self.ttl = ttl
        self.namespace = namespace

    def key_for(self, principal: Mapping[str, Any]) -> str:
        return f"{self.namespace}:{principal_fingerprint(principal)}"

    def get(self, principal: Mapping[str, Any]) -> Any:
        key = self.key_for(principal)
        try:
            hit = self.cache.get(key)
        except Exception:  # pragma: no cover
            logger.exception("ABACX: cache get failed")
            hit = None
        if hit is not None:
            return hit
        value = self.factory(principal)
        try:
            self.cache.set(key, value, self.ttl)
        except Exception:  # pragma: no cover
            logger.exception("ABACX: cache set failed")
        return value

    def invalidate(self, principal: Mapping[str, Any]) -> None:
        self.cache.delete(self.key_for(principal))

    def clear(self) -> None:
        self.cache.clear()


__all__ = ["DefaultInMemoryCache", "AbilityCache", "principal_fingerprint"]
