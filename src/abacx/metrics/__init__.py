"""Metrics sinks. Import the concrete module you need:

    from abacx.metrics.prometheus import PrometheusMetrics
    from abacx.metrics.otel import OpenTelemetryMetrics
"""
