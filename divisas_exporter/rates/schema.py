"""
Schema for the upstream informal-market rates payload.

The upstream API answers with::

    {
      "currency": "CUP",
      "exchange_direction": "target",
      "date_time": "2024-05-02T10:00:00Z",
      "rates": {
        "USD": {"buy": 120.5, "sell": 125.0, "mid": 122.75},
        "MLC": {"buy": 90, "sell": 95, "mid": 92.5},
        "CUP": {"buy": 1, "sell": 1, "mid": 1},
        "EUR": {"buy": 130, "sell": 135, "mid": 132.5}
      }
    }

Only ``buy``/``sell`` of USD, EUR and MLC end up as metrics, so those are
required and strictly numeric. The envelope fields, ``mid`` and the CUP
triple are never exported: they may be missing or ``null`` and are carried
when present.
"""
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from divisas_exporter.common.exceptions import ParseError


class RateTriple(BaseModel):
    """Buy/sell/mid prices in CUP for one unit of a currency."""
    model_config = ConfigDict(strict=True)

    buy: float
    sell: float
    mid: Optional[float] = None


class CupTriple(BaseModel):
    """CUP against itself; informational only, so nothing here is enforced."""

    buy: Optional[float] = None
    sell: Optional[float] = None
    mid: Optional[float] = None


class Rates(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)

    usd: RateTriple = Field(alias="USD")
    eur: RateTriple = Field(alias="EUR")
    mlc: RateTriple = Field(alias="MLC")
    cup: Optional[CupTriple] = Field(default=None, alias="CUP")


class ExchangeRateSnapshot(BaseModel):
    """One decoded API response. Built per poll cycle and then discarded."""
    model_config = ConfigDict(strict=True)

    currency: Optional[str] = None
    exchange_direction: Optional[str] = None
    date_time: Optional[datetime] = None
    rates: Rates

    def exported_values(self) -> dict:
        """Map of metric name to value for the six exported gauges."""
        return {
            "usd_buy": self.rates.usd.buy,
            "usd_sell": self.rates.usd.sell,
            "eur_buy": self.rates.eur.buy,
            "eur_sell": self.rates.eur.sell,
            "mlc_buy": self.rates.mlc.buy,
            "mlc_sell": self.rates.mlc.sell,
        }


def parse_snapshot(body: Union[bytes, str]) -> ExchangeRateSnapshot:
    """
    Decode a raw response body into an ExchangeRateSnapshot.

    Args:
        body: Full response body as received

    Returns:
        Validated snapshot

    Raises:
        ParseError: body is not JSON, or does not match the rates schema
    """
    try:
        return ExchangeRateSnapshot.model_validate_json(body)
    except ValidationError as e:
        raise ParseError(
            f"Unexpected exchange-rate payload ({e.error_count()} errors): {e}"
        ) from e
