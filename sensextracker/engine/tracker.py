"""Trailing stop-loss position engine."""

import logging
import math
import threading
from datetime import datetime
from typing import Any, Callable, Optional

from sensextracker.db.store import PositionStore
from sensextracker.engine.metrics import (
    calculate_pnl,
    calculate_stoploss,
    is_stoploss_hit,
)
from sensextracker.errors import NotFoundError, ValidationError
from sensextracker.models import Position, UpdateLogEntry

logger = logging.getLogger(__name__)

OPTION_TYPES = ("CALL", "PUT")


def _require_number(value: Any, field: str) -> float:
    """Coerce a required numeric input, raising ValidationError if unusable."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field: {field}")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be numeric, got {value!r}")
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number")
    return number


def _require_positive(value: Any, field: str) -> float:
    number = _require_number(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return number


class PositionTracker:
    """Owns the working set of tracked positions.

    Applies the trailing stop-loss ratchet and the position lifecycle
    (TRACKING -> STOPLOSS_HIT / EXITED). When a store is attached the
    positions are loaded on construction and the whole collection is
    saved after every mutation.

    Mutating operations are serialized by a single lock so concurrent
    price updates cannot lose a ratchet step.

    A mutation whose save fails raises StorageError and leaves the
    working set as it was.
    """

    def __init__(
        self,
        store: Optional[PositionStore] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the tracker.

        Args:
            store: Optional persistence collaborator.
            clock: Callable returning the current time.
        """
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self._positions: dict[int, Position] = {}
        self._last_id = 0

        if store is not None:
            for position in sorted(store.load_positions(), key=lambda p: p.id):
                self._positions[position.id] = position
                self._last_id = max(self._last_id, position.id)
            logger.debug("Loaded %d tracked options", len(self._positions))

    def _next_id(self, now: datetime) -> int:
        """Millisecond timestamp id, bumped to stay strictly increasing."""
        candidate = int(now.timestamp() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    def _commit(self, positions: dict[int, Position]) -> None:
        """Persist the new collection, then make it the working set.

        If the store rejects the write the working set is left untouched,
        so memory never runs ahead of what is stored.
        """
        if self._store is not None:
            self._store.save_positions(list(positions.values()))
        self._positions = positions

    def _get(self, position_id: Any) -> Position:
        try:
            key = int(position_id)
        except (TypeError, ValueError):
            raise NotFoundError(position_id)
        position = self._positions.get(key)
        if position is None:
            raise NotFoundError(position_id)
        return position

    def create(
        self,
        entry_price: Any,
        quantity: Any,
        trailing_percent: Any,
        option_type: Any,
        strike: Any,
    ) -> Position:
        """Start tracking a new option.

        Args:
            entry_price: Premium paid, positive.
            quantity: Contract multiplier, integer >= 1.
            trailing_percent: Trailing distance, 0 < value < 100.
            option_type: "CALL" or "PUT" (case-insensitive).
            strike: Strike price, positive.

        Returns:
            The new position in TRACKING state.

        Raises:
            ValidationError: If any input is missing, non-numeric or out of range.
            StorageError: If the new position cannot be saved.
        """
        entry = _require_positive(entry_price, "entryPrice")
        strike_price = _require_positive(strike, "strike")

        qty = _require_number(quantity, "quantity")
        if not qty.is_integer() or qty < 1:
            raise ValidationError("quantity must be a whole number of at least 1")

        trailing = _require_number(trailing_percent, "trailingPercent")
        if not 0 < trailing < 100:
            raise ValidationError("trailingPercent must be between 0 and 100")

        if option_type is None or not str(option_type).strip():
            raise ValidationError("Missing required field: optionType")
        kind = str(option_type).strip().upper()
        if kind not in OPTION_TYPES:
            raise ValidationError(f"optionType must be CALL or PUT, got {option_type!r}")

        with self._lock:
            now = self._clock()
            position = Position(
                id=self._next_id(now),
                entry_price=entry,
                current_price=entry,
                highest_price=entry,
                quantity=int(qty),
                trailing_percent=trailing,
                option_type=kind,
                strike=strike_price,
                stoploss=calculate_stoploss(entry, trailing),
                status="TRACKING",
                update_log=(),
                created_at=now,
            )
            self._commit({**self._positions, position.id: position})

        logger.info(
            "Tracking %s %.2f @ %.2f x%d (trail %.2f%%, stoploss %.2f)",
            kind, strike_price, entry, position.quantity, trailing, position.stoploss,
        )
        return position

    def update_price(self, position_id: Any, new_price: Any) -> Position:
        """Apply a new observed price to a position.

        Ratchets the highest price, recomputes the stoploss from it, logs
        the update and flips TRACKING to STOPLOSS_HIT when the price is at
        or below the stoploss. Terminal positions still accept and log
        updates but never change status.

        Raises:
            ValidationError: If the price is missing, non-numeric or not positive.
            NotFoundError: If the position is unknown.
            StorageError: If the update cannot be saved.
        """
        price = _require_positive(new_price, "currentPrice")

        with self._lock:
            position = self._get(position_id)
            previous_highest = position.highest_price
            highest = max(previous_highest, price)
            stoploss = calculate_stoploss(highest, position.trailing_percent)
            pnl, pnl_percent = calculate_pnl(position.entry_price, price, position.quantity)

            entry = UpdateLogEntry(
                timestamp=self._clock(),
                previous_price=previous_highest,
                new_price=price,
                stoploss=stoploss,
                pnl=pnl,
                pnl_percent=pnl_percent,
            )

            status = position.status
            if status == "TRACKING" and is_stoploss_hit(price, stoploss):
                status = "STOPLOSS_HIT"

            updated = position.model_copy(
                update={
                    "highest_price": highest,
                    "stoploss": stoploss,
                    "current_price": price,
                    "update_log": (*position.update_log, entry),
                    "status": status,
                }
            )
            self._commit({**self._positions, updated.id: updated})

        if status != position.status:
            logger.warning(
                "Stoploss hit for option %s: %.2f <= %.2f",
                updated.id, price, stoploss,
            )
        return updated

    def exit(self, position_id: Any) -> Position:
        """Exit a position at its current price.

        Exit fields are re-stamped if called again; callers guard on status.

        Raises:
            NotFoundError: If the position is unknown.
        """
        with self._lock:
            position = self._get(position_id)
            pnl, _ = calculate_pnl(
                position.entry_price, position.current_price, position.quantity
            )
            updated = position.model_copy(
                update={
                    "status": "EXITED",
                    "exit_price": position.current_price,
                    "exited_at": self._clock(),
                    "final_pnl": pnl,
                }
            )
            self._commit({**self._positions, updated.id: updated})

        logger.info("Exited option %s at %.2f (P&L %.2f)", updated.id, updated.exit_price, pnl)
        return updated

    def remove(self, position_id: Any) -> Position:
        """Stop tracking a position entirely.

        Returns:
            The removed position.

        Raises:
            NotFoundError: If the position is unknown.
        """
        with self._lock:
            position = self._get(position_id)
            self._commit({k: p for k, p in self._positions.items() if k != position.id})

        logger.info("Removed option %s", position.id)
        return position

    def clear(self) -> int:
        """Stop tracking every position.

        Returns:
            Number of positions removed.
        """
        with self._lock:
            count = len(self._positions)
            self._commit({})

        logger.info("Cleared %d tracked options", count)
        return count

    def get(self, position_id: Any) -> Position:
        """Get a position by id.

        Raises:
            NotFoundError: If the position is unknown.
        """
        with self._lock:
            return self._get(position_id)

    def list(self) -> list[Position]:
        """All positions in creation order."""
        with self._lock:
            return list(self._positions.values())

    def stats(self) -> dict:
        """Count positions per lifecycle state."""
        positions = self.list()
        return {
            "total": len(positions),
            "active": sum(1 for p in positions if p.status == "TRACKING"),
            "stoploss": sum(1 for p in positions if p.status == "STOPLOSS_HIT"),
            "exited": sum(1 for p in positions if p.status == "EXITED"),
        }
