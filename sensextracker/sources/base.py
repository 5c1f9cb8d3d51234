"""Base interface for market data sources."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from sensextracker.errors import DataSourceError
from sensextracker.models import IndexQuote

# BSE Sensex symbol on the public quote APIs
SENSEX_SYMBOL = "^BSESN"

DEFAULT_TIMEOUT = 5.0


def _to_float(value: Any, default: float = 0.0) -> float:
    """Parse a numeric payload value, falling back to a default."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class BaseQuoteSource(ABC):
    """Abstract base class for Sensex quote sources.

    Sources are tried in priority order by the market data feed. A source
    must raise DataSourceError for any failure so the feed can move on to
    the next one.
    """

    name: str = "base"

    @abstractmethod
    def fetch_quote(self, timeout: float = DEFAULT_TIMEOUT) -> IndexQuote:
        """Fetch the latest Sensex quote.

        Args:
            timeout: Seconds to wait for the source.

        Returns:
            IndexQuote with the index level and change.

        Raises:
            DataSourceError: If the source fails or returns no usable price.
        """
        pass


class HttpQuoteSource(BaseQuoteSource):
    """Quote source backed by a JSON HTTP endpoint."""

    url: str = ""

    def __init__(self, session: Optional[requests.Session] = None):
        """Initialize the source.

        Args:
            session: HTTP session to use, a new one if omitted.
        """
        self.session = session or requests.Session()

    def _params(self) -> dict:
        return {}

    def _headers(self) -> dict:
        return {}

    @abstractmethod
    def _parse(self, payload: Any) -> IndexQuote:
        """Turn the decoded JSON payload into a quote or raise DataSourceError."""
        pass

    def fetch_quote(self, timeout: float = DEFAULT_TIMEOUT) -> IndexQuote:
        try:
            response = self.session.get(
                self.url,
                params=self._params(),
                headers=self._headers(),
                timeout=timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise DataSourceError(self.name, f"request failed: {e}")
        except ValueError as e:
            raise DataSourceError(self.name, f"invalid JSON: {e}")

        return self._parse(payload)
