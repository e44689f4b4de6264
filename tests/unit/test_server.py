"""
Unit tests for MetricsServer HTTP endpoints.
Servers bind port 0 so tests never fight over a fixed port.
"""
import socket
import threading
import time
import unittest
import urllib.error
import urllib.request

from prometheus_client.parser import text_string_to_metric_families

from divisas_exporter.common.exceptions import BindError
from divisas_exporter.monitoring.metrics import ExporterMetrics
from divisas_exporter.monitoring.server import MetricsServer, ServerState
from divisas_exporter.rates.schema import parse_snapshot

KNOWN_BODY = (
    '{"rates":{"USD":{"buy":120.5,"sell":125.0,"mid":122.75},'
    '"EUR":{"buy":130.0,"sell":135.0,"mid":132.5},'
    '"MLC":{"buy":90.0,"sell":95.0,"mid":92.5}}}'
)


class TestMetricsServer(unittest.TestCase):
    """Tests against a live server on an ephemeral port."""

    def setUp(self):
        self.metrics = ExporterMetrics()
        self.server = MetricsServer(self.metrics, port=0, host="127.0.0.1")
        self.server.start()

    def tearDown(self):
        self.server.stop()

    def _get(self, path: str) -> tuple:
        """Make GET request and return (status_code, headers, body)."""
        url = f"http://127.0.0.1:{self.server.port}{path}"
        try:
            resp = urllib.request.urlopen(url, timeout=2)
            return resp.status, resp.headers, resp.read()
        except urllib.error.HTTPError as e:
            return e.code, e.headers, e.read()

    def _scrape(self) -> dict:
        status, _, body = self._get("/metrics")
        self.assertEqual(status, 200)
        samples = {}
        for family in text_string_to_metric_families(body.decode("utf-8")):
            for sample in family.samples:
                if not sample.labels:
                    samples[sample.name] = sample.value
        return samples

    def test_state_serving_after_start(self):
        self.assertEqual(self.server.state, ServerState.SERVING)
        self.assertTrue(self.server.is_running)
        self.assertNotEqual(self.server.port, 0)

    def test_request_threads_are_daemon(self):
        self.assertTrue(self.server._server.daemon_threads)

    def test_health_before_any_fetch(self):
        status, headers, body = self._get("/health")
        self.assertEqual(status, 200)
        self.assertEqual(body, b"ok")
        self.assertTrue(headers["Content-Type"].startswith("text/plain"))

    def test_health_after_update(self):
        self.metrics.record_update(parse_snapshot(KNOWN_BODY))
        status, _, body = self._get("/health")
        self.assertEqual(status, 200)
        self.assertEqual(body, b"ok")

    def test_metrics_content_type(self):
        status, headers, _ = self._get("/metrics")
        self.assertEqual(status, 200)
        self.assertIn("text/plain", headers["Content-Type"])
        self.assertIn("version=", headers["Content-Type"])

    def test_metrics_initial_zero(self):
        samples = self._scrape()
        for name in ("usd_buy", "usd_sell", "eur_buy", "eur_sell", "mlc_buy", "mlc_sell"):
            self.assertEqual(samples[name], 0.0)

    def test_metrics_known_values(self):
        self.metrics.record_update(parse_snapshot(KNOWN_BODY))

        samples = self._scrape()

        self.assertEqual(samples["usd_buy"], 120.5)
        self.assertEqual(samples["usd_sell"], 125.0)
        self.assertEqual(samples["eur_buy"], 130.0)
        self.assertEqual(samples["eur_sell"], 135.0)
        self.assertEqual(samples["mlc_buy"], 90.0)
        self.assertEqual(samples["mlc_sell"], 95.0)

    def test_metrics_help_lines(self):
        _, _, body = self._get("/metrics")
        text = body.decode("utf-8")
        self.assertIn("# HELP usd_buy Buy value in CUP of 1 USD", text)
        self.assertIn("# HELP eur_sell Sell value in CUP of 1 EUR", text)

    def test_metrics_reflect_latest_update(self):
        self.metrics.record_update(parse_snapshot(KNOWN_BODY))
        self.assertEqual(self._scrape()["usd_buy"], 120.5)

        self.metrics.record_update(parse_snapshot(KNOWN_BODY.replace("120.5", "121.75")))
        self.assertEqual(self._scrape()["usd_buy"], 121.75)

    def test_query_string_ignored(self):
        status, _, body = self._get("/health?verbose=1")
        self.assertEqual(status, 200)
        self.assertEqual(body, b"ok")

    def test_unknown_paths_404(self):
        for path in ("/", "/ready", "/metrics/extra", "/healthz"):
            status, _, _ = self._get(path)
            self.assertEqual(status, 404, path)

    def test_concurrent_scrapes_during_updates(self):
        pairs = [(float(i), float(i) + 0.5) for i in range(1, 50)]
        stop = threading.Event()
        errors = []

        def writer():
            while not stop.is_set():
                for buy, sell in pairs:
                    body = KNOWN_BODY.replace("120.5", str(buy)).replace("125.0", str(sell))
                    self.metrics.record_update(parse_snapshot(body))

        def scraper():
            try:
                for _ in range(20):
                    samples = self._scrape()
                    if samples["usd_sell"] - samples["usd_buy"] != 0.5 and samples["usd_buy"] != 0.0:
                        errors.append(samples)
            except Exception as e:
                errors.append(e)

        w = threading.Thread(target=writer)
        scrapers = [threading.Thread(target=scraper) for _ in range(4)]
        w.start()
        for s in scrapers:
            s.start()
        for s in scrapers:
            s.join()
        stop.set()
        w.join()

        self.assertEqual(errors, [])


class TestMetricsServerBind(unittest.TestCase):
    """Startup behaviour."""

    def test_initial_state_is_starting(self):
        server = MetricsServer(ExporterMetrics(), port=0)
        self.assertEqual(server.state, ServerState.STARTING)
        self.assertFalse(server.is_running)

    def test_port_in_use_raises_bind_error(self):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]
        try:
            server = MetricsServer(ExporterMetrics(), port=port, host="127.0.0.1")
            with self.assertRaises(BindError):
                server.start()
            self.assertEqual(server.state, ServerState.STARTING)
        finally:
            blocker.close()

    def test_stop_releases_thread(self):
        server = MetricsServer(ExporterMetrics(), port=0, host="127.0.0.1")
        server.start()
        server.stop()
        time.sleep(0.1)
        self.assertFalse(server.is_running)

    def test_stop_before_start_is_noop(self):
        MetricsServer(ExporterMetrics(), port=0).stop()


if __name__ == "__main__":
    unittest.main()
