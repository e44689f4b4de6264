"""
Structured logging for the exporter process.

One handler on the ``divisas_exporter`` package logger writes JSON lines
to stdout; module loggers carry no handlers of their own and propagate to
it, so ``LOG_LEVEL`` is applied in a single place. The poll-cycle ID and
component are stamped by a filter on that handler, which runs in the
emitting thread and so sees that thread's context.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import IO, Optional

from divisas_exporter.common.correlation import CorrelationFilter

PACKAGE_LOGGER = "divisas_exporter"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the poll-cycle fields when set."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in ("correlation_id", "component"):
            value = getattr(record, field, None)
            if value:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> logging.Logger:
    """
    Configure the package logger. Safe to call again to change the level.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream, stdout by default

    Returns:
        The ``divisas_exporter`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(CorrelationFilter())
    logger.addHandler(handler)

    # Keep exporter lines out of whatever the root logger is set up to do
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Return a module logger that reports through the package logger.

    Names outside the package are nested under it so they share its handler.
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
