"""
Poll-cycle correlation IDs for log tracing.
Every fetch/update cycle runs under its own ID so its log lines group together.
"""
import uuid
import logging
from typing import Optional
from contextvars import ContextVar

_cycle_id_var: ContextVar[Optional[str]] = ContextVar(
    'cycle_id', default=None
)

_component_var: ContextVar[Optional[str]] = ContextVar(
    'component', default=None
)


def generate_cycle_id() -> str:
    """Return a short random ID for one poll cycle (first 12 hex chars of a UUID4)."""
    return uuid.uuid4().hex[:12]


def set_cycle_id(cycle_id: Optional[str]) -> None:
    _cycle_id_var.set(cycle_id)


def get_cycle_id() -> Optional[str]:
    return _cycle_id_var.get()


def set_component(component: Optional[str]) -> None:
    """
    Set the component name reported in log lines.

    Args:
        component: Component name (e.g., "exporter", "poller", "server")
    """
    _component_var.set(component)


def get_component() -> Optional[str]:
    return _component_var.get()


class CorrelationFilter(logging.Filter):
    """
    Logging filter that copies the current cycle ID and component onto
    each record, read from ContextVars so callers never pass them around.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_cycle_id() or ""
        record.component = get_component() or ""
        return True


class PollCycleContext:
    """
    Context manager scoping a cycle ID to one poll.
    Restores whatever ID was active before on exit.

    Usage:
        with PollCycleContext() as cycle:
            logger.info(f"cycle {cycle.cycle_id} started")
    """

    def __init__(self, cycle_id: Optional[str] = None):
        self.cycle_id = cycle_id or generate_cycle_id()
        self._previous_id: Optional[str] = None

    def __enter__(self) -> 'PollCycleContext':
        self._previous_id = get_cycle_id()
        set_cycle_id(self.cycle_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        set_cycle_id(self._previous_id)
