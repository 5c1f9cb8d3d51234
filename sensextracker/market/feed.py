"""Periodically refreshed Sensex market snapshot.

The feed tries each live data source in priority order, bounding every
attempt by its own timeout, and falls back to simulated data when all
of them fail. Readers always get the last snapshot immediately.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime
from typing import Callable, Iterable, Optional

from sensextracker.errors import DataSourceError, SnapshotFailure
from sensextracker.market.hours import exchange_now, is_market_open
from sensextracker.models import IndexQuote, MarketSnapshot
from sensextracker.sources.base import BaseQuoteSource
from sensextracker.sources.simulated import SimulatedSource

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 10.0
DEFAULT_SOURCE_TIMEOUT = 5.0


def default_snapshot() -> MarketSnapshot:
    """Snapshot served before the first refresh completes."""
    return MarketSnapshot(
        index_level=75423,
        volatility=18.5,
        change=120,
        change_percent=0.16,
        market_status="CLOSED",
        options_active=False,
        source="Default",
        last_update=exchange_now(),
        error="",
    )


class MarketDataFeed:
    """Owns the latest market snapshot and the refresh schedule."""

    def __init__(
        self,
        sources: Iterable[BaseQuoteSource],
        fallback: Optional[SimulatedSource] = None,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
        clock: Callable[[], datetime] = exchange_now,
    ):
        """Initialize the feed.

        Args:
            sources: Live sources in priority order.
            fallback: Synthetic generator used when every source fails.
            interval: Seconds between scheduled refreshes.
            source_timeout: Seconds allowed for each source attempt.
            clock: Callable returning the current time.
        """
        self.sources = list(sources)
        self.fallback = fallback or SimulatedSource()
        self.interval = interval
        self.source_timeout = source_timeout
        self._clock = clock

        self._lock = threading.Lock()
        self._snapshot = default_snapshot()
        self._executor = ThreadPoolExecutor(
            max_workers=max(2, len(self.sources)),
            thread_name_prefix="quote-source",
        )
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def read(self) -> MarketSnapshot:
        """Return the latest snapshot without waiting on any refresh."""
        with self._lock:
            return self._snapshot

    def _fetch(self, source: BaseQuoteSource) -> IndexQuote:
        """Run one source attempt, abandoning it once its timeout expires."""
        try:
            future = self._executor.submit(source.fetch_quote, self.source_timeout)
            return future.result(timeout=self.source_timeout)
        except FuturesTimeoutError:
            future.cancel()
            raise DataSourceError(source.name, f"timed out after {self.source_timeout}s")
        except DataSourceError:
            raise
        except Exception as e:
            raise DataSourceError(source.name, f"unexpected error: {e}")

    def _from_quote(self, source: BaseQuoteSource, quote: IndexQuote, now: datetime) -> MarketSnapshot:
        market_open = is_market_open(now)
        return MarketSnapshot(
            index_level=round(quote.price),
            volatility=round(abs(quote.change_percent) * 2, 2),
            change=round(quote.change, 2),
            change_percent=round(quote.change_percent, 2),
            market_status="OPEN" if market_open else "CLOSED",
            options_active=market_open,
            source=source.name,
            last_update=now,
            error="",
        )

    def _compute(self) -> MarketSnapshot:
        now = self._clock()

        for source in self.sources:
            try:
                quote = self._fetch(source)
            except DataSourceError as e:
                logger.warning("%s, trying next source", e)
                continue
            logger.info("Live SENSEX data fetched from %s", source.name)
            return self._from_quote(source, quote, now)

        try:
            snapshot = self.fallback.snapshot(now)
        except Exception as e:
            raise SnapshotFailure(f"All data sources failed: {e}") from e

        logger.info("Using simulated data (Market: %s)", snapshot.market_status)
        return snapshot

    def refresh(self) -> MarketSnapshot:
        """Produce and publish a new snapshot.

        Never raises: if no snapshot can be produced, the previous one is
        kept with the error message recorded on it.

        Returns:
            The snapshot now being served.
        """
        try:
            snapshot = self._compute()
        except Exception as e:
            logger.error("Error fetching live data: %s", e)
            with self._lock:
                self._snapshot = self._snapshot.model_copy(update={"error": str(e)})
                return self._snapshot

        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.refresh()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Refresh once now, then keep refreshing on a background thread."""
        if self.running:
            return

        self._stop_event.clear()
        self.refresh()
        self._thread = threading.Thread(target=self._run, name="market-feed", daemon=True)
        self._thread.start()
        logger.debug("Market feed started, refreshing every %ss", self.interval)

    def stop(self) -> None:
        """Stop the refresh schedule."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.source_timeout + 1)
            self._thread = None

    def close(self) -> None:
        """Stop refreshing and release the source workers."""
        self.stop()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "MarketDataFeed":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
