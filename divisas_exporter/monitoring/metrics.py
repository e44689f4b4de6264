"""
Prometheus metrics for the exchange-rate exporter.

The six rate gauges live in a custom collector so that one poll's values
are written, and scraped, under a single lock. Poll bookkeeping (cycle
counters, duration, last update time) uses regular prometheus_client
metrics on the same registry, next to the process, platform and GC
collectors.

Usage:
    from divisas_exporter.monitoring.metrics import ExporterMetrics

    metrics = ExporterMetrics()
    metrics.gauges.update(snapshot)
    body = metrics.render()
"""
import threading
import time
from typing import Dict, Iterable, Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from divisas_exporter.rates.schema import ExchangeRateSnapshot

# Exported currencies, in exposition order, with the unit they are quoted in.
EXPORTED_CURRENCIES = ("USD", "EUR", "MLC")
QUOTE_CURRENCY = "CUP"

RATE_GAUGE_HELP: Dict[str, str] = {}
for _code in EXPORTED_CURRENCIES:
    for _side in ("buy", "sell"):
        RATE_GAUGE_HELP[f"{_code.lower()}_{_side}"] = (
            f"{_side.capitalize()} value in {QUOTE_CURRENCY} of 1 {_code}"
        )

RATE_GAUGE_NAMES = tuple(RATE_GAUGE_HELP)


class ExchangeRateGauges(Collector):
    """
    The process-wide rate gauge set: last observed buy/sell for USD, EUR, MLC.

    ``update`` replaces all six values under one lock and ``collect`` reads
    them under the same lock, so a scrape never mixes two polls. All values
    start at 0 until the first successful poll.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, float] = {name: 0.0 for name in RATE_GAUGE_NAMES}

    def update(self, snapshot: ExchangeRateSnapshot) -> None:
        """Copy the six exported values of *snapshot* into the gauge set."""
        new_values = snapshot.exported_values()
        with self._lock:
            self._values = {name: float(new_values[name]) for name in RATE_GAUGE_NAMES}

    def values(self) -> Dict[str, float]:
        """Return a consistent copy of the current gauge values."""
        with self._lock:
            return dict(self._values)

    def collect(self) -> Iterable[GaugeMetricFamily]:
        current = self.values()
        for name in RATE_GAUGE_NAMES:
            yield GaugeMetricFamily(name, RATE_GAUGE_HELP[name], value=current[name])


class ExporterMetrics:
    """
    Owns the CollectorRegistry served on /metrics.

    The registry is private to this object (not the prometheus_client
    global REGISTRY) so several instances can coexist in tests; it carries
    the same process, platform and GC collectors the global one would.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)
        GCCollector(registry=self.registry)
        self.gauges = ExchangeRateGauges()
        self.registry.register(self.gauges)

        self.polls_total = Counter(
            "exchange_rate_polls_total",
            "Total number of exchange-rate poll cycles started",
            registry=self.registry,
        )
        self.poll_failures_total = Counter(
            "exchange_rate_poll_failures_total",
            "Total number of poll cycles that failed to fetch or parse",
            registry=self.registry,
        )
        self.poll_duration = Histogram(
            "exchange_rate_poll_duration_seconds",
            "Duration of a single fetch-and-parse cycle in seconds",
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self.registry,
        )
        self.last_update_timestamp = Gauge(
            "exchange_rate_last_update_timestamp_seconds",
            "Unix time of the last successful rate update (0 = never)",
            registry=self.registry,
        )

    def inc_polls(self) -> None:
        self.polls_total.inc()

    def inc_poll_failures(self) -> None:
        self.poll_failures_total.inc()

    def successful_polls(self) -> int:
        """Poll cycles that completed, derived from the two poll counters."""
        started = self.registry.get_sample_value("exchange_rate_polls_total") or 0.0
        failed = self.registry.get_sample_value("exchange_rate_poll_failures_total") or 0.0
        return int(started - failed)

    def poll_duration_timer(self):
        """
        Return a context manager that records poll duration.

        Usage:
            with metrics.poll_duration_timer():
                snapshot = fetcher.fetch()
        """
        return self.poll_duration.time()

    def record_update(self, snapshot: ExchangeRateSnapshot) -> None:
        """Apply a successfully parsed snapshot and stamp the update time."""
        self.gauges.update(snapshot)
        self.last_update_timestamp.set(time.time())

    def render(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
