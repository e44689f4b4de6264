"""
Monitoring module - rate gauges and the /metrics + /health HTTP server.
"""
from divisas_exporter.monitoring.metrics import (
    ExchangeRateGauges,
    ExporterMetrics,
)
from divisas_exporter.monitoring.server import MetricsServer

__all__ = [
    "ExchangeRateGauges",
    "ExporterMetrics",
    "MetricsServer",
]
