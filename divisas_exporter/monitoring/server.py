"""
HTTP server exposing the exporter's metrics and liveness endpoints.
Runs in a daemon thread; each request is handled on its own thread.

Endpoints:
    GET /metrics - Prometheus text exposition of the exporter registry
    GET /health  - Liveness: always 200 "ok" while the server runs
"""
import threading
from enum import Enum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST

from divisas_exporter.common.exceptions import BindError
from divisas_exporter.common.logging_config import get_logger
from divisas_exporter.monitoring.metrics import ExporterMetrics

logger = get_logger(__name__)

METRICS_PATH = "/metrics"
HEALTH_PATH = "/health"


class ServerState(Enum):
    STARTING = "starting"
    SERVING = "serving"


class ExporterHTTPHandler(BaseHTTPRequestHandler):
    """Routes GET /metrics and GET /health; everything else is a 404."""

    # Class-level reference to the metrics (set by MetricsServer)
    metrics: Optional[ExporterMetrics] = None

    def do_GET(self):
        path = self.path.split("?", 1)[0]

        if path == METRICS_PATH:
            self._send(200, self.metrics.render(), CONTENT_TYPE_LATEST)

        elif path == HEALTH_PATH:
            self._send(200, b"ok", "text/plain; charset=utf-8")

        else:
            self.send_error(404)

    def _send(self, status_code: int, body: bytes, content_type: str):
        self.send_response(status_code)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        """Route access logs to debug level instead of stderr."""
        logger.debug(f"{self.address_string()} - {format % args}")


class MetricsServer:
    """
    Threaded HTTP server for /metrics and /health.

    Usage:
        metrics = ExporterMetrics()
        server = MetricsServer(metrics, port=6869)
        server.start()
        # ... poll loop ...
        server.stop()
    """

    def __init__(self, metrics: ExporterMetrics, port: int, host: str = "0.0.0.0"):
        """
        Args:
            metrics: Metrics whose registry is rendered on /metrics
            port: TCP port to listen on (0 picks a free port)
            host: Interface to bind
        """
        self.metrics = metrics
        self.host = host
        self.port = port
        self.state = ServerState.STARTING
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """
        Bind the port and start serving in a daemon thread.

        Raises:
            BindError: the port could not be acquired
        """
        handler = type(
            'BoundExporterHandler',
            (ExporterHTTPHandler,),
            {'metrics': self.metrics}
        )

        try:
            self._server = ThreadingHTTPServer((self.host, self.port), handler)
        except OSError as e:
            raise BindError(f"Failed to bind metrics server on port {self.port}: {e}") from e

        # Resolve port 0 to the port actually bound
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="metrics-server",
            daemon=True
        )
        self._thread.start()
        self.state = ServerState.SERVING

        logger.info(f"Starting server at port {self.port}")
        logger.info(f"Metrics available at {METRICS_PATH}")
        logger.info(f"Health check available at {HEALTH_PATH}")

    def stop(self) -> None:
        """Stop serving and release the port."""
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            logger.info("Metrics server stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
