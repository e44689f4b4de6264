"""
HTTP client for the upstream informal exchange-rate API.
"""
from typing import Optional

import requests

from divisas_exporter.common.exceptions import FetchError
from divisas_exporter.common.logging_config import get_logger
from divisas_exporter.rates.schema import ExchangeRateSnapshot, parse_snapshot

logger = get_logger(__name__)


class ExchangeRateFetcher:
    """
    Fetches and decodes one rates snapshot per call.

    Usage:
        fetcher = ExchangeRateFetcher(url, user_agent="Divisas Exporter")
        snapshot = fetcher.fetch()
        snapshot.rates.usd.buy
    """

    def __init__(
        self,
        url: str,
        user_agent: str = "Divisas Exporter",
        timeout: Optional[float] = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Args:
            url: Upstream JSON endpoint
            user_agent: Value of the User-Agent header sent with every request
            timeout: Request timeout in seconds (None waits forever)
            session: Optional requests session, mainly for tests
        """
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self) -> ExchangeRateSnapshot:
        """
        GET the upstream endpoint and decode the body.

        The status code is not checked on its own: an error page that is
        not the expected JSON surfaces as a ParseError.

        Raises:
            FetchError: DNS, connection, timeout or body read failure
            ParseError: body is not the expected rates JSON
        """
        try:
            response = self.session.get(
                self.url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            body = response.content
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch exchange rates from {self.url}: {e}") from e

        logger.debug(
            f"Upstream responded {response.status_code} ({len(body)} bytes)"
        )
        return parse_snapshot(body)
