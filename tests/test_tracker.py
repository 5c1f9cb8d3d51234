"""Property-based tests for the trailing stop-loss position engine.

**Feature: sensex-options-tracker**
"""

import sqlite3
import tempfile
import threading
from datetime import datetime
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from sensextracker.db.store import PositionStore
from sensextracker.engine.metrics import calculate_stoploss
from sensextracker.engine.tracker import PositionTracker
from sensextracker.errors import NotFoundError, StorageError, ValidationError

FIXED_TIME = datetime(2024, 6, 10, 10, 0, 0)

prices = st.floats(min_value=0.05, max_value=10000.0, allow_nan=False, allow_infinity=False)


@pytest.fixture
def tracker():
    """A tracker without persistence and with a frozen clock."""
    return PositionTracker(clock=lambda: FIXED_TIME)


@pytest.fixture
def temp_db_path():
    """Create a temporary database path for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "tracker.db"


def _create(tracker: PositionTracker, entry=100.0, quantity=10, trailing=5.0, option_type="CALL", strike=75000):
    return tracker.create(entry, quantity, trailing, option_type, strike)


class TestCreate:
    """Tests for starting to track an option."""

    def test_initial_state(self, tracker: PositionTracker):
        position = _create(tracker)

        assert position.entry_price == 100.0
        assert position.current_price == 100.0
        assert position.highest_price == 100.0
        assert position.stoploss == pytest.approx(95.0)
        assert position.status == "TRACKING"
        assert position.update_log == ()
        assert position.created_at == FIXED_TIME
        assert position.exit_price is None
        assert position.final_pnl is None

    def test_accepts_numeric_strings(self, tracker: PositionTracker):
        position = tracker.create("250.5", "3", "7.5", "put", "75500")

        assert position.entry_price == 250.5
        assert position.quantity == 3
        assert position.trailing_percent == 7.5
        assert position.option_type == "PUT"
        assert position.strike == 75500.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"entry": None},
            {"entry": ""},
            {"entry": "abc"},
            {"entry": 0},
            {"entry": -5},
            {"quantity": None},
            {"quantity": 0},
            {"quantity": 2.5},
            {"trailing": None},
            {"trailing": "x"},
            {"trailing": 0},
            {"trailing": 100},
            {"option_type": None},
            {"option_type": "STRADDLE"},
            {"strike": None},
            {"strike": "nan"},
        ],
    )
    def test_invalid_inputs_rejected(self, tracker: PositionTracker, kwargs: dict):
        with pytest.raises(ValidationError):
            _create(tracker, **kwargs)
        assert tracker.list() == []

    def test_ids_unique_under_rapid_creation(self, tracker: PositionTracker):
        ids = [_create(tracker).id for _ in range(50)]

        assert len(set(ids)) == 50
        assert ids == sorted(ids)

    def test_id_is_creation_timestamp(self, tracker: PositionTracker):
        position = _create(tracker)
        assert position.id == int(FIXED_TIME.timestamp() * 1000)


class TestWorkedExample:
    """Entry 100, quantity 10, 5% trail, CALL."""

    def test_ratchet_then_hit(self, tracker: PositionTracker):
        position = _create(tracker)

        position = tracker.update_price(position.id, 110)
        assert position.highest_price == 110
        assert position.stoploss == pytest.approx(104.5)
        assert position.status == "TRACKING"

        position = tracker.update_price(position.id, 104)
        assert position.highest_price == 110
        assert position.stoploss == pytest.approx(104.5)
        assert position.current_price == 104
        assert position.status == "STOPLOSS_HIT"

    def test_update_log_entry(self, tracker: PositionTracker):
        position = _create(tracker)
        position = tracker.update_price(position.id, 120)

        entry = position.update_log[0]
        assert entry.previous_price == 100
        assert entry.new_price == 120
        assert entry.stoploss == pytest.approx(114.0)
        assert entry.pnl == pytest.approx(200.0)
        assert entry.pnl_percent == pytest.approx(20.0)
        assert entry.timestamp == FIXED_TIME

    def test_update_log_is_append_only_for_callers(self, tracker: PositionTracker):
        position = _create(tracker)
        tracker.update_price(position.id, 120)

        fetched = tracker.get(position.id)
        with pytest.raises(AttributeError):
            fetched.update_log.append(fetched.update_log[0])

        assert len(tracker.get(position.id).update_log) == 1
        assert len(tracker.list()[0].update_log) == 1

    def test_put_uses_same_downward_trail(self, tracker: PositionTracker):
        position = _create(tracker, option_type="PUT")
        position = tracker.update_price(position.id, 94)

        assert position.stoploss == pytest.approx(95.0)
        assert position.status == "STOPLOSS_HIT"


class TestRatchetProperties:
    """
    **Property: Ratchet Monotonicity**

    *For any* sequence of price updates, the highest price never decreases,
    the stoploss is recomputed from it after every update, the log grows by
    one entry per update in call order, and a terminal status never reverts.
    """

    @given(
        entry=prices,
        trailing_percent=st.floats(min_value=0.5, max_value=95.0, allow_nan=False),
        updates=st.lists(prices, min_size=1, max_size=30),
    )
    @settings(max_examples=100)
    def test_ratchet_sequence(self, entry: float, trailing_percent: float, updates: list[float]):
        tracker = PositionTracker(clock=lambda: FIXED_TIME)
        position = tracker.create(entry, 1, trailing_percent, "CALL", 75000)

        previous_highest = position.highest_price
        seen_terminal = False

        for i, price in enumerate(updates, start=1):
            position = tracker.update_price(position.id, price)

            assert position.highest_price >= previous_highest
            assert position.highest_price == max([entry, *updates[:i]])
            assert position.stoploss == calculate_stoploss(position.highest_price, trailing_percent)
            assert position.stoploss < position.highest_price
            assert len(position.update_log) == i
            assert [e.new_price for e in position.update_log] == updates[:i]

            if seen_terminal:
                assert position.status == "STOPLOSS_HIT"
            seen_terminal = position.status == "STOPLOSS_HIT"
            previous_highest = position.highest_price

    def test_hit_is_one_shot(self, tracker: PositionTracker):
        position = _create(tracker)
        tracker.update_price(position.id, 90)
        position = tracker.update_price(position.id, 500)

        assert position.status == "STOPLOSS_HIT"
        assert position.highest_price == 500
        assert len(position.update_log) == 2

    def test_exited_position_still_logs_updates(self, tracker: PositionTracker):
        position = _create(tracker)
        tracker.exit(position.id)
        position = tracker.update_price(position.id, 50)

        assert position.status == "EXITED"
        assert len(position.update_log) == 1
        assert position.exit_price == 100

    @pytest.mark.parametrize("bad_price", [None, "", "abc", 0, -1])
    def test_invalid_price_rejected(self, tracker: PositionTracker, bad_price):
        position = _create(tracker)
        with pytest.raises(ValidationError):
            tracker.update_price(position.id, bad_price)
        assert tracker.get(position.id).update_log == ()

    def test_unknown_position(self, tracker: PositionTracker):
        with pytest.raises(NotFoundError):
            tracker.update_price(12345, 100)

    def test_concurrent_updates_do_not_lose_ratchet(self, tracker: PositionTracker):
        position = _create(tracker)
        update_prices = [100 + i for i in range(1, 201)]

        def worker(chunk):
            for price in chunk:
                tracker.update_price(position.id, price)

        threads = [threading.Thread(target=worker, args=(update_prices[i::4],)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = tracker.get(position.id)
        assert final.highest_price == 300
        assert len(final.update_log) == 200


class TestExitAndRemove:
    """Tests for exiting and removing positions."""

    def test_exit_freezes_fields(self, tracker: PositionTracker):
        position = _create(tracker)
        tracker.update_price(position.id, 120)
        position = tracker.exit(position.id)

        assert position.status == "EXITED"
        assert position.exit_price == 120
        assert position.exited_at == FIXED_TIME
        assert position.final_pnl == pytest.approx(200.0)

    def test_exit_after_stoploss_hit(self, tracker: PositionTracker):
        position = _create(tracker)
        tracker.update_price(position.id, 90)
        position = tracker.exit(position.id)

        assert position.status == "EXITED"
        assert position.final_pnl == pytest.approx(-100.0)

    def test_exit_unknown(self, tracker: PositionTracker):
        with pytest.raises(NotFoundError):
            tracker.exit(1)

    def test_remove_returns_position(self, tracker: PositionTracker):
        position = _create(tracker)
        removed = tracker.remove(position.id)

        assert removed == position
        assert tracker.list() == []
        with pytest.raises(NotFoundError):
            tracker.get(position.id)

    def test_remove_valid_from_any_state(self, tracker: PositionTracker):
        hit = _create(tracker)
        tracker.update_price(hit.id, 1)
        exited = _create(tracker)
        tracker.exit(exited.id)

        tracker.remove(hit.id)
        tracker.remove(exited.id)
        assert tracker.list() == []

    def test_remove_unknown(self, tracker: PositionTracker):
        with pytest.raises(NotFoundError):
            tracker.remove("not-an-id")

    def test_stats(self, tracker: PositionTracker):
        _create(tracker)
        hit = _create(tracker)
        tracker.update_price(hit.id, 1)
        exited = _create(tracker)
        tracker.exit(exited.id)

        assert tracker.stats() == {"total": 3, "active": 1, "stoploss": 1, "exited": 1}


class TestPersistence:
    """
    **Property: Save After Every Mutation**

    *For any* mutation, a new tracker over the same store sees the same
    collection.
    """

    def test_reload_after_mutations(self, temp_db_path: Path):
        tracker = PositionTracker(store=PositionStore(temp_db_path), clock=lambda: FIXED_TIME)
        kept = _create(tracker)
        tracker.update_price(kept.id, 130)
        gone = _create(tracker)
        tracker.remove(gone.id)
        exited = _create(tracker)
        tracker.exit(exited.id)

        reloaded = PositionTracker(store=PositionStore(temp_db_path), clock=lambda: FIXED_TIME)

        assert reloaded.list() == tracker.list()
        assert [p.id for p in reloaded.list()] == [kept.id, exited.id]

    def test_new_ids_stay_above_loaded_ids(self, temp_db_path: Path):
        tracker = PositionTracker(store=PositionStore(temp_db_path), clock=lambda: FIXED_TIME)
        first = _create(tracker)

        reloaded = PositionTracker(store=PositionStore(temp_db_path), clock=lambda: FIXED_TIME)
        second = _create(reloaded)

        assert second.id > first.id


def _block_writes(db_path: Path) -> None:
    """Make every rewrite of the stored collection abort."""
    conn = sqlite3.connect(db_path)
    conn.execute(
        "CREATE TRIGGER block_writes BEFORE DELETE ON positions "
        "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
    )
    conn.commit()
    conn.close()


class TestStoreFailures:
    """
    **Property: Memory Never Runs Ahead Of The Store**

    *For any* mutation whose save fails, the tracker raises StorageError
    and its working set still matches the stored collection.
    """

    @pytest.fixture
    def store(self, temp_db_path: Path) -> PositionStore:
        return PositionStore(temp_db_path)

    @pytest.fixture
    def persisted(self, store: PositionStore) -> PositionTracker:
        return PositionTracker(store=store, clock=lambda: FIXED_TIME)

    def test_failed_update_is_rolled_back(self, store: PositionStore, persisted: PositionTracker):
        position = _create(persisted)
        _block_writes(store.db_path)

        with pytest.raises(StorageError, match="disk full"):
            persisted.update_price(position.id, 90)

        current = persisted.get(position.id)
        assert current == position
        assert current.status == "TRACKING"
        assert current.update_log == ()
        assert persisted.list() == store.load_positions()

    def test_failed_create_is_not_tracked(self, store: PositionStore, persisted: PositionTracker):
        first = _create(persisted)
        _block_writes(store.db_path)

        with pytest.raises(StorageError):
            _create(persisted)

        assert persisted.list() == [first]
        assert store.load_positions() == [first]

    def test_failed_exit_remove_and_clear(self, store: PositionStore, persisted: PositionTracker):
        position = _create(persisted)
        _block_writes(store.db_path)

        with pytest.raises(StorageError):
            persisted.exit(position.id)
        with pytest.raises(StorageError):
            persisted.remove(position.id)
        with pytest.raises(StorageError):
            persisted.clear()

        assert persisted.list() == [position]
        assert persisted.stats()["active"] == 1
        assert store.load_positions() == [position]

    def test_clear(self, store: PositionStore, persisted: PositionTracker):
        _create(persisted)
        _create(persisted)

        assert persisted.clear() == 2
        assert persisted.list() == []
        assert store.load_positions() == []
