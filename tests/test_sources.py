"""Tests for the market data sources.

**Feature: sensex-options-tracker**
"""

import random
from datetime import datetime
from unittest.mock import MagicMock

import pytest
import requests

from sensextracker.errors import DataSourceError
from sensextracker.market.hours import EXCHANGE_TIMEZONE
from sensextracker.sources import RapidApiSource, SimulatedSource, YahooFinanceSource


def _session(payload=None, error=None):
    """Create a mock requests session returning the payload."""
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        response = MagicMock()
        response.json.return_value = payload
        session.get.return_value = response
    return session


class TestRapidApiSource:
    def test_parses_quote(self):
        session = _session({"data": {"price": "75612.4", "change": "189.2", "change_percent": "0.25"}})
        quote = RapidApiSource(api_key="key", session=session).fetch_quote(timeout=3)

        assert quote.price == 75612.4
        assert quote.change == 189.2
        assert quote.change_percent == 0.25

        _, kwargs = session.get.call_args
        assert kwargs["timeout"] == 3
        assert kwargs["params"]["symbol"] == "^BSESN"
        assert kwargs["headers"]["X-RapidAPI-Key"] == "key"

    def test_missing_change_defaults_to_zero(self):
        quote = RapidApiSource(session=_session({"data": {"price": 75000}})).fetch_quote()
        assert quote.change == 0.0
        assert quote.change_percent == 0.0

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("RAPID_API_KEY", "env-key")
        assert RapidApiSource(session=_session({})).api_key == "env-key"

    @pytest.mark.parametrize("payload", [{}, {"data": {}}, {"data": {"price": None}}, {"data": {"price": "n/a"}}, []])
    def test_missing_price_raises(self, payload):
        with pytest.raises(DataSourceError):
            RapidApiSource(session=_session(payload)).fetch_quote()

    def test_network_error_raises(self):
        source = RapidApiSource(session=_session(error=requests.ConnectionError("down")))
        with pytest.raises(DataSourceError, match="RapidAPI"):
            source.fetch_quote()

    def test_http_error_raises(self):
        session = _session({})
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("429")
        with pytest.raises(DataSourceError):
            RapidApiSource(session=session).fetch_quote()


class TestYahooFinanceSource:
    def test_parses_quote(self):
        payload = {
            "quoteSummary": {
                "result": [
                    {
                        "price": {
                            "regularMarketPrice": {"raw": 75390.5, "fmt": "75,390.50"},
                            "regularMarketChange": {"raw": -32.5},
                            "regularMarketChangePercent": {"raw": -0.04},
                        }
                    }
                ]
            }
        }
        quote = YahooFinanceSource(session=_session(payload)).fetch_quote()

        assert quote.price == 75390.5
        assert quote.change == -32.5
        assert quote.change_percent == -0.04

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"quoteSummary": {"result": []}},
            {"quoteSummary": {"result": [{"price": {}}]}},
            {"quoteSummary": {"result": None}},
        ],
    )
    def test_unusable_payload_raises(self, payload):
        with pytest.raises(DataSourceError):
            YahooFinanceSource(session=_session(payload)).fetch_quote()

    def test_invalid_json_raises(self):
        session = _session()
        session.get.return_value.json.side_effect = ValueError("Expecting value")
        with pytest.raises(DataSourceError, match="invalid JSON"):
            YahooFinanceSource(session=session).fetch_quote()

    def test_timeout_raises(self):
        source = YahooFinanceSource(session=_session(error=requests.Timeout("slow")))
        with pytest.raises(DataSourceError, match="Yahoo Finance"):
            source.fetch_quote(timeout=0.1)


class TestSimulatedSource:
    def test_open_market_walks_within_bounds(self):
        now = EXCHANGE_TIMEZONE.localize(datetime(2024, 6, 10, 11, 0))
        source = SimulatedSource(rng=random.Random(7))

        for _ in range(50):
            snapshot = source.snapshot(now)
            assert abs(snapshot.index_level - SimulatedSource.BASE_LEVEL) <= SimulatedSource.MAX_STEP + 1
            assert 10 <= snapshot.volatility <= 35
            assert snapshot.market_status == "OPEN"
            assert snapshot.options_active is True
            assert snapshot.source == SimulatedSource.name

    def test_closed_market_held_flat(self):
        now = EXCHANGE_TIMEZONE.localize(datetime(2024, 6, 15, 11, 0))
        snapshot = SimulatedSource(rng=random.Random(7)).snapshot(now)

        assert snapshot.index_level == SimulatedSource.BASE_LEVEL
        assert snapshot.change == 0
        assert snapshot.market_status == "CLOSED"
        assert snapshot.options_active is False
