"""Market data sources for the Sensex snapshot."""

from sensextracker.sources.base import BaseQuoteSource, HttpQuoteSource
from sensextracker.sources.rapidapi import RapidApiSource
from sensextracker.sources.simulated import SimulatedSource
from sensextracker.sources.yahoo import YahooFinanceSource

# Config names for the live sources, in default priority order
SOURCE_REGISTRY = {
    "rapidapi": RapidApiSource,
    "yahoo": YahooFinanceSource,
}

__all__ = [
    "BaseQuoteSource",
    "HttpQuoteSource",
    "RapidApiSource",
    "SOURCE_REGISTRY",
    "SimulatedSource",
    "YahooFinanceSource",
]
