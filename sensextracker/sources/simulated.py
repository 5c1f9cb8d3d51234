"""Synthetic Sensex data used when every live source fails."""

import random
from datetime import datetime
from typing import Optional

from sensextracker.market.hours import exchange_now, is_market_open
from sensextracker.models import MarketSnapshot


class SimulatedSource:
    """Generates a plausible snapshot around a fixed base level.

    While the market is open the level takes a bounded random step
    around the base; otherwise it is held flat.
    """

    name = "Simulated (APIs unavailable)"

    BASE_LEVEL = 75423.0
    MAX_STEP = 100.0
    VOLATILITY_RANGE = (10.0, 35.0)

    def __init__(self, rng: Optional[random.Random] = None, base_level: float = BASE_LEVEL):
        """Initialize the generator.

        Args:
            rng: Random generator, injectable for deterministic tests.
            base_level: Index level the walk is centred on.
        """
        self._rng = rng or random.Random()
        self.base_level = base_level

    def snapshot(self, now: Optional[datetime] = None) -> MarketSnapshot:
        """Produce a synthetic snapshot for the given time."""
        local = exchange_now(now)
        market_open = is_market_open(local)

        step = self._rng.uniform(-self.MAX_STEP, self.MAX_STEP) if market_open else 0.0
        level = self.base_level + step
        low, high = self.VOLATILITY_RANGE

        return MarketSnapshot(
            index_level=round(level),
            volatility=round(self._rng.uniform(low, high), 2),
            change=round(step, 2),
            change_percent=round(step / self.base_level * 100, 2),
            market_status="OPEN" if market_open else "CLOSED",
            options_active=market_open,
            source=self.name,
            last_update=local,
            error="",
        )
