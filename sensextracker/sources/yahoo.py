"""Yahoo Finance data source."""

from typing import Any

from sensextracker.errors import DataSourceError
from sensextracker.models import IndexQuote
from sensextracker.sources.base import HttpQuoteSource, _to_float


def _raw(section: dict, key: str) -> Any:
    """Yahoo wraps numbers as {"raw": 1.0, "fmt": "1.00"}."""
    value = section.get(key)
    if isinstance(value, dict):
        return value.get("raw")
    return value


class YahooFinanceSource(HttpQuoteSource):
    """Sensex quotes from the Yahoo Finance quoteSummary endpoint."""

    name = "Yahoo Finance"
    url = "https://query1.finance.yahoo.com/v10/finance/quoteSummary/%5EBSESN"

    def _params(self) -> dict:
        return {"modules": "price,summaryDetail"}

    def _parse(self, payload: Any) -> IndexQuote:
        try:
            price_data = payload["quoteSummary"]["result"][0]["price"]
        except (KeyError, IndexError, TypeError):
            raise DataSourceError(self.name, "no price module in response")

        if not isinstance(price_data, dict):
            raise DataSourceError(self.name, "no price module in response")

        price = _to_float(_raw(price_data, "regularMarketPrice"))
        if price <= 0:
            raise DataSourceError(self.name, "no regularMarketPrice in response")

        return IndexQuote(
            price=price,
            change=_to_float(_raw(price_data, "regularMarketChange")),
            change_percent=_to_float(_raw(price_data, "regularMarketChangePercent")),
        )
