"""Divisas Exporter - CUP informal exchange rates as Prometheus metrics."""

__version__ = "1.0.0"
