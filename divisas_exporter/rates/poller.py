"""
Fixed-cadence poll loop: fetch, update gauges, sleep, repeat.

A failed fetch or parse is fatal: the error leaves ``run`` and the
process exits, relying on the supervisor to restart it. Gauges are only
written after a snapshot parsed completely, so a failure never leaves a
partial update behind.
"""
import threading
from typing import Optional

from divisas_exporter.common.correlation import PollCycleContext
from divisas_exporter.common.exceptions import FetchError, ParseError
from divisas_exporter.common.logging_config import get_logger
from divisas_exporter.monitoring.metrics import ExporterMetrics
from divisas_exporter.rates.fetcher import ExchangeRateFetcher
from divisas_exporter.rates.schema import ExchangeRateSnapshot

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2 * 60 * 60


def _describe_interval(seconds: float) -> str:
    if seconds >= 3600 and seconds % 3600 == 0:
        hours = int(seconds // 3600)
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{seconds:g} seconds"


class ExchangeRatePoller:
    """
    Drives the fetcher on a fixed interval and publishes into the metrics.

    No jitter, no backoff, no overlap: the next fetch only starts once the
    previous wait has finished.
    """

    def __init__(
        self,
        fetcher: ExchangeRateFetcher,
        metrics: ExporterMetrics,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    ):
        self.fetcher = fetcher
        self.metrics = metrics
        self.interval = interval

    def poll_once(self) -> ExchangeRateSnapshot:
        """
        Run one fetch/update cycle.

        Raises:
            FetchError: upstream unreachable
            ParseError: upstream body malformed
        """
        self.metrics.inc_polls()
        try:
            with self.metrics.poll_duration_timer():
                snapshot = self.fetcher.fetch()
        except (FetchError, ParseError):
            self.metrics.inc_poll_failures()
            raise

        self.metrics.record_update(snapshot)
        return snapshot

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Poll until *stop_event* is set. Errors from ``poll_once`` propagate.

        Args:
            stop_event: Set to end the loop; checked between cycles and
                        interrupts the wait immediately
        """
        stop_event = stop_event or threading.Event()
        wait_description = _describe_interval(self.interval)

        while not stop_event.is_set():
            with PollCycleContext():
                logger.info("Updating exchange rates")
                snapshot = self.poll_once()
                logger.info(
                    f"Exchange rates updated. Waiting for {wait_description}"
                )
                logger.debug(f"Current rates: {snapshot.exported_values()}")
            stop_event.wait(self.interval)

        logger.info(f"Poller stopped after {self.metrics.successful_polls()} cycles")
