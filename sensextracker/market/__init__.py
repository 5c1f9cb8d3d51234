"""Market hours and the market data feed.

The feed lives in ``sensextracker.market.feed``; it is not re-exported
here because the data sources depend on the market hours below.
"""

from sensextracker.market.hours import (
    EXCHANGE_TIMEZONE,
    MARKET_CLOSE,
    MARKET_OPEN,
    exchange_now,
    get_market_status,
    is_market_open,
)

__all__ = [
    "EXCHANGE_TIMEZONE",
    "MARKET_CLOSE",
    "MARKET_OPEN",
    "exchange_now",
    "get_market_status",
    "is_market_open",
]
