"""Market snapshot and index quote data models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

MarketStatus = Literal["OPEN", "CLOSED"]


class IndexQuote(BaseModel):
    """Index level as reported by a single data source."""

    price: float = Field(..., gt=0, description="Index level")
    change: float = Field(default=0.0, description="Change from previous close")
    change_percent: float = Field(default=0.0, description="Percentage change")

    model_config = {
        "frozen": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class MarketSnapshot(BaseModel):
    """Latest market conditions, replaced wholesale on every refresh."""

    index_level: float = Field(..., description="Sensex level")
    volatility: float = Field(..., description="Volatility estimate in percent")
    change: float = Field(..., description="Index change")
    change_percent: float = Field(..., description="Index change in percent")
    market_status: MarketStatus = Field(..., description="OPEN or CLOSED")
    options_active: bool = Field(..., description="True while the market is open")
    source: str = Field(..., description="Producing data source")
    last_update: datetime = Field(default_factory=datetime.now, description="Production time")
    error: str = Field(default="", description="Last refresh error, empty if none")

    model_config = {
        "frozen": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_record(self) -> dict:
        """Return the JSON-shaped record with camelCase field names."""
        return self.model_dump(by_alias=True, mode="json")
