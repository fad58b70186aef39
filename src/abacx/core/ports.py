from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


class MetricsSink(Protocol):
    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None: ...


@runtime_checkable
class MetricsObserve(Protocol):
    """Optional extension of ``MetricsSink`` for histogram-style metrics."""

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None: ...


class PolicySource(Protocol):
    """Where rule documents come from (file, object store, database, ...)."""

    def load(self) -> Dict[str, Any]: ...

    def etag(self) -> Optional[str]: ...


class PolicyTarget(Protocol):
    """Anything a loaded rule document can be applied to."""

    def set_policy(self, policy: Dict[str, Any]) -> None: ...


class CachePort(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


__all__ = ["MetricsSink", "MetricsObserve", "PolicySource", "PolicyTarget", "CachePort"]
