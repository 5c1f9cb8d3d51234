"""RapidAPI real-time finance data source."""

import os
from typing import Any, Optional

import requests

from sensextracker.errors import DataSourceError
from sensextracker.models import IndexQuote
from sensextracker.sources.base import SENSEX_SYMBOL, HttpQuoteSource, _to_float


class RapidApiSource(HttpQuoteSource):
    """Sensex quotes from the real-time-finance-data RapidAPI."""

    name = "RapidAPI"
    host = "real-time-finance-data.p.rapidapi.com"
    url = f"https://{host}/stock-quote"

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the source.

        Args:
            api_key: RapidAPI key, falls back to RAPID_API_KEY then "demo".
            session: HTTP session to use.
        """
        super().__init__(session)
        self.api_key = api_key or os.environ.get("RAPID_API_KEY") or "demo"

    def _params(self) -> dict:
        return {"symbol": SENSEX_SYMBOL, "language": "en"}

    def _headers(self) -> dict:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.host,
        }

    def _parse(self, payload: Any) -> IndexQuote:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not data.get("price"):
            raise DataSourceError(self.name, "no price in response")

        price = _to_float(data["price"])
        if price <= 0:
            raise DataSourceError(self.name, f"unusable price {data['price']!r}")

        return IndexQuote(
            price=price,
            change=_to_float(data.get("change")),
            change_percent=_to_float(data.get("change_percent")),
        )
