"""Position and update-log data models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

OptionType = Literal["CALL", "PUT"]
PositionStatus = Literal["TRACKING", "STOPLOSS_HIT", "EXITED"]

TERMINAL_STATUSES = ("STOPLOSS_HIT", "EXITED")


class UpdateLogEntry(BaseModel):
    """One recorded price update of a position."""

    timestamp: datetime = Field(..., description="When the update was applied")
    previous_price: float = Field(..., description="Highest price before the update")
    new_price: float = Field(..., gt=0, description="Observed price")
    stoploss: float = Field(..., description="Stoploss after the update")
    pnl: float = Field(..., description="P&L against the new price")
    pnl_percent: float = Field(..., description="P&L percent against the new price")

    model_config = {
        "frozen": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class Position(BaseModel):
    """A tracked option position with a trailing stop-loss.

    The stoploss always trails ``highest_price``, which only ratchets up.
    Instances are immutable; the tracker replaces them on every change.
    """

    id: int = Field(..., gt=0, description="Creation-time identifier")
    entry_price: float = Field(..., gt=0, description="Premium paid at entry")
    current_price: float = Field(..., gt=0, description="Last observed premium")
    highest_price: float = Field(..., gt=0, description="Highest observed premium")
    quantity: int = Field(..., ge=1, description="Contract multiplier")
    trailing_percent: float = Field(..., ge=0, lt=100, description="Trailing distance in percent")
    option_type: OptionType = Field(..., description="CALL or PUT")
    strike: float = Field(..., gt=0, description="Strike price")
    stoploss: float = Field(..., description="Trailing stop derived from highest_price")
    status: PositionStatus = Field(default="TRACKING", description="Lifecycle state")
    update_log: tuple[UpdateLogEntry, ...] = Field(default=(), description="Applied price updates, oldest first")
    created_at: datetime = Field(..., description="Creation timestamp")
    exit_price: Optional[float] = Field(default=None, description="Price at exit")
    exited_at: Optional[datetime] = Field(default=None, description="Exit timestamp")
    final_pnl: Optional[float] = Field(default=None, alias="finalPnL", description="P&L frozen at exit")

    model_config = {
        "frozen": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    @property
    def is_terminal(self) -> bool:
        """Whether the position is no longer actively managed."""
        return self.status in TERMINAL_STATUSES

    def to_record(self) -> dict:
        """Return the JSON-shaped record with camelCase field names."""
        return self.model_dump(by_alias=True, mode="json")
