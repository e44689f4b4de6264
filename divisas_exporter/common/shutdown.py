"""
Shutdown coordination for the exporter process.
Turns SIGINT/SIGTERM into a stop event the poll loop waits on, then runs
cleanup callbacks (stopping the metrics server) in priority order.
"""
import signal
import threading
from enum import Enum
from typing import Callable, List, Tuple

from divisas_exporter.common.logging_config import get_logger

logger = get_logger(__name__)


class ShutdownState(Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ShutdownManager:
    """
    Owns the process stop event and the ordered cleanup callbacks.

    Lower priority runs first. The poll loop only ever sees ``stop_event``;
    callbacks run from whichever thread calls ``initiate_shutdown``.

    Usage:
        shutdown = ShutdownManager()
        shutdown.register(server.stop, priority=0, name="metrics-server")
        shutdown.install_signal_handlers()
        poller.run(shutdown.stop_event)
    """

    def __init__(self):
        self.state = ShutdownState.RUNNING
        self.stop_event = threading.Event()
        self._callbacks: List[Tuple[int, str, Callable[[], None]]] = []
        self._state_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self.state == ShutdownState.RUNNING

    def register(
        self,
        callback: Callable[[], None],
        priority: int = 20,
        name: str = "unnamed"
    ) -> None:
        """
        Register a cleanup callback.

        Args:
            callback: Function to call during shutdown (no args)
            priority: Execution priority (lower = earlier)
            name: Descriptive name for logging
        """
        self._callbacks.append((priority, name, callback))
        self._callbacks.sort(key=lambda x: x[0])
        logger.debug(f"Registered shutdown callback: {name} (priority={priority})")

    def install_signal_handlers(self) -> None:
        """Install SIGINT and SIGTERM handlers. Must run on the main thread."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)
        logger.info("Signal handlers installed (SIGINT, SIGTERM)")

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        logger.info(f"Received {sig_name}, stopping exporter")
        self.stop_event.set()

    def initiate_shutdown(self) -> None:
        """
        Set the stop event and run every callback once.
        Safe to call more than once; later calls are ignored.
        """
        with self._state_lock:
            if self.state != ShutdownState.RUNNING:
                logger.warning("Shutdown already in progress, ignoring")
                return
            self.state = ShutdownState.SHUTTING_DOWN

        self.stop_event.set()

        for priority, name, callback in self._callbacks:
            logger.info(f"Executing shutdown callback: {name} (priority={priority})")
            try:
                callback()
            except Exception as e:
                logger.error(f"Shutdown callback failed: {name} - {e}")

        with self._state_lock:
            self.state = ShutdownState.STOPPED

        logger.info("Shutdown complete")
