#!/usr/bin/env python3
"""
Divisas Exporter - CUP informal exchange rates for Prometheus.
Serves /metrics and /health in the background and polls the upstream
rates API every 2 hours on the main thread.

Environment:
    PORT        Listening port (default 6869; empty means default)
"""
import sys

from config.settings import load_settings
from divisas_exporter.common.exceptions import (
    BindError,
    ConfigurationError,
    FetchError,
    ParseError,
)
from divisas_exporter.common.logging_config import get_logger, setup_logging
from divisas_exporter.common.correlation import set_component
from divisas_exporter.common.shutdown import ShutdownManager
from divisas_exporter.monitoring.metrics import ExporterMetrics
from divisas_exporter.monitoring.server import MetricsServer
from divisas_exporter.rates.fetcher import ExchangeRateFetcher
from divisas_exporter.rates.poller import ExchangeRatePoller

logger = get_logger(__name__)

set_component("exporter")


def main() -> int:
    """
    Run the exporter until a signal arrives or a poll fails.

    Returns:
        Process exit code: 0 on clean shutdown, 1 on any fatal error
    """
    setup_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.critical(str(e))
        return 1

    setup_logging(settings.logging.level)

    metrics = ExporterMetrics()
    server = MetricsServer(metrics, port=settings.server.port)
    try:
        server.start()
    except BindError as e:
        logger.critical(str(e))
        return 1

    shutdown = ShutdownManager()
    shutdown.register(server.stop, priority=0, name="metrics-server")
    shutdown.install_signal_handlers()

    fetcher = ExchangeRateFetcher(
        url=settings.upstream.url,
        user_agent=settings.upstream.user_agent,
        timeout=settings.upstream.timeout_seconds,
    )
    poller = ExchangeRatePoller(fetcher, metrics)

    try:
        poller.run(shutdown.stop_event)
    except (FetchError, ParseError) as e:
        # Fatal by policy: no retry, the supervisor restarts the process.
        logger.critical(f"Exchange rate update failed: {e}")
        return 1

    shutdown.initiate_shutdown()
    logger.info("Exporter terminated")
    return 0


if __name__ == "__main__":
    sys.exit(main())
