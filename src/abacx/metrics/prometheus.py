from __future__ import annotations

import logging
from typing import Any, Dict, Optional

try:
    from prometheus_client import Counter, Histogram  # type: ignore[import-not-found]
except Exception:  # pragma: no cover
    Counter = Histogram = None  # type: ignore[assignment,misc]

from ..core.compiler import FALLBACK_METRIC
from ..core.evaluator import DECISION_SECONDS_METRIC, DECISIONS_METRIC

logger = logging.getLogger("abacx.metrics")


class PrometheusMetrics:
    """``MetricsSink`` backed by ``prometheus_client``.

    Instruments:
      - ``abacx_decisions_total{decision="allow|deny"}``
      - ``abacx_decision_seconds`` (histogram)
      - ``abacx_predicate_fallbacks_total{reason=...}``

    Pass a ``CollectorRegistry`` to keep the instruments out of the global
    default registry. Unknown metric names are ignored; nothing on this path
    raises.
    """

    def __init__(self, registry: Optional[Any] = None) -> None:
        self._counters: Dict[str, Any] = {}
        self._histograms: Dict[str, Any] = {}
        if Counter is None or Histogram is None:  # pragma: no cover
            logger.warning("ABACX: prometheus_client is not installed; metrics disabled")
            return
        kw: Dict[str, Any] = {"registry": registry} if registry is not None else {}
        self._counters[DECISIONS_METRIC] = Counter(
            DECISIONS_METRIC, "Authorization decisions by outcome.", labelnames=("decision",), **kw
        )
        self._counters[FALLBACK_METRIC] = Counter(
            FALLBACK_METRIC,
            "Allow rules compiled to an empty filter.",
            labelnames=("reason",),
            **kw,
        )
        self._histograms[DECISION_SECONDS_METRIC] = Histogram(
            DECISION_SECONDS_METRIC, "Authorization decision latency in seconds.", **kw
        )

    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None:
        counter = self._counters.get(name)
        if counter is None:
            return
        try:
            if labels:
                counter.labels(**labels).inc()
            else:
                counter.inc()
        except Exception:  # pragma: no cover
            logger.debug("ABACX: prometheus inc failed for %s", name, exc_info=True)

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        hist = self._histograms.get(name)
        if hist is None:
            return
        try:
            hist.observe(float(value))
        except Exception:  # pragma: no cover
            logger.debug("ABACX: prometheus observe failed for %s", name, exc_info=True)


__all__ = ["PrometheusMetrics"]
