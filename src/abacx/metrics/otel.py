from __future__ import annotations

import logging
from typing import Any, Dict, Optional

try:
    from opentelemetry.metrics import get_meter  # type: ignore[import-not-found]
except Exception:  # pragma: no cover
    get_meter = None  # type: ignore[assignment]

from ..core.compiler import FALLBACK_METRIC
from ..core.evaluator import DECISION_SECONDS_METRIC, DECISIONS_METRIC

logger = logging.getLogger("abacx.metrics")


class OpenTelemetryMetrics:
    """``MetricsSink`` backed by the OpenTelemetry metrics API.

    Creates the same instruments as ``PrometheusMetrics`` on the meter
    ``abacx.metrics`` (or on *meter* when given). Labels are recorded as
    attributes.
    """

    def __init__(self, meter: Optional[Any] = None) -> None:
        self._counters: Dict[str, Any] = {}
        self._histograms: Dict[str, Any] = {}
        if meter is None:
            if get_meter is None:  # pragma: no cover
                logger.warning("ABACX: opentelemetry-api is not installed; metrics disabled")
                return
            meter = get_meter("abacx.metrics")
        try:
            self._counters[DECISIONS_METRIC] = meter.create_counter(
                name=DECISIONS_METRIC, description="Authorization decisions by outcome."
            )
            self._counters[FALLBACK_METRIC] = meter.create_counter(
                name=FALLBACK_METRIC, description="Allow rules compiled to an empty filter."
            )
            self._histograms[DECISION_SECONDS_METRIC] = meter.create_histogram(
                name=DECISION_SECONDS_METRIC,
                description="Authorization decision latency in seconds.",
                unit="s",
            )
        except Exception:  # pragma: no cover
            logger.warning("ABACX: could not create OpenTelemetry instruments", exc_info=True)

    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None:
        counter = self._counters.get(name)
        if counter is None:
            return
        try:
            counter.add(1, dict(labels or {}))
        except Exception:  # pragma: no cover
            logger.debug("ABACX: otel add failed for %s", name, exc_info=True)

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        hist = self._histograms.get(name)
        if hist is None:
            return
        try:
            hist.record(float(value), dict(labels or {}))
        except Exception:  # pragma: no cover
            logger.debug("ABACX: otel record failed for %s", name, exc_info=True)


__all__ = ["OpenTelemetryMetrics"]
