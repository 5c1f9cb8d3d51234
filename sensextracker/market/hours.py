"""Exchange trading hours for BSE."""

from datetime import datetime, time
from typing import Optional

import pytz

EXCHANGE_TIMEZONE = pytz.timezone("Asia/Kolkata")

# Market hours: 9:15 AM to 3:30 PM IST, Monday to Friday
MARKET_OPEN = time(9, 15)
MARKET_CLOSE = time(15, 30)


def exchange_now(now: Optional[datetime] = None) -> datetime:
    """Convert a timestamp to exchange-local time.

    Naive datetimes are taken to be exchange-local already.

    Args:
        now: Timestamp to convert, defaults to the current time.

    Returns:
        Timezone-aware datetime in IST.
    """
    if now is None:
        return datetime.now(EXCHANGE_TIMEZONE)
    if now.tzinfo is None:
        return EXCHANGE_TIMEZONE.localize(now)
    return now.astimezone(EXCHANGE_TIMEZONE)


def is_market_open(now: Optional[datetime] = None) -> bool:
    """Check if the exchange is open.

    Open on weekdays between 9:15 and 15:30 IST, both minutes inclusive.

    Args:
        now: Timestamp to check, defaults to the current time.

    Returns:
        True if the market is open.
    """
    local = exchange_now(now)
    if local.weekday() >= 5:  # Saturday = 5, Sunday = 6
        return False

    current_minute = local.time().replace(second=0, microsecond=0)
    return MARKET_OPEN <= current_minute <= MARKET_CLOSE


def get_market_status(now: Optional[datetime] = None) -> dict:
    """Get detailed market status.

    Returns:
        Dictionary with is_open, a status message, and the exchange-local
        time, date and day.
    """
    local = exchange_now(now)
    is_open = is_market_open(local)

    if local.weekday() >= 5:
        message = "Market closed (Weekend). Next open: Monday 9:15 AM"
    elif is_open:
        message = "Market is OPEN"
    elif local.time() < MARKET_OPEN:
        message = "Market opens at 9:15 AM (Pre-market)"
    else:
        message = "Market closed for today (Post-market)"

    return {
        "is_open": is_open,
        "message": message,
        "current_time": local.strftime("%H:%M:%S"),
        "date": local.strftime("%Y-%m-%d"),
        "day": local.strftime("%A"),
    }
