"""
Instrument Data Collection
==========================

Builds one ``InstrumentSnapshot`` per active instrument from a ``DataStore``:
the latest metrics, the latest quote and the realized returns computed from
the most recent price history.

Instruments are skipped (with a logged reason) when:

* no metrics snapshot exists,
* fewer than ``min_price_points`` prices are stored,
* none of the 30/90/180-day returns can be computed.  A 365-day return on
  its own does not keep an instrument.

A failure while processing one instrument is logged and only excludes that
instrument.  Fetches run on a bounded thread pool; the result is sorted by
ticker so it does not depend on completion order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import config
from .database import DataStore, Instrument
from .returns import calculate_returns

_LOGGER = logging.getLogger(__name__)

# Returns that can keep an instrument in the sample
QUALIFYING_RETURNS = ("return30d", "return90d", "return180d")


@dataclass(frozen=True)
class InstrumentSnapshot:
    """Features and realized returns for one instrument at collection time."""
    ticker: str
    # Valuation
    pe_ratio: Optional[float] = None
    pb_ratio: Optional[float] = None
    ps_ratio: Optional[float] = None
    forward_pe: Optional[float] = None
    # Profitability
    roe: Optional[float] = None
    roa: Optional[float] = None
    profit_margin: Optional[float] = None
    # Financial health
    debt_to_equity: Optional[float] = None
    # Growth
    revenue_growth_qoq: Optional[float] = None
    earnings_growth_qoq: Optional[float] = None
    # Market
    beta: Optional[float] = None
    market_cap: Optional[float] = None
    average_volume: Optional[float] = None
    shares_outstanding: Optional[float] = None
    held_percent_insiders: Optional[float] = None
    held_percent_institutions: Optional[float] = None
    # Quote (informational, never a feature)
    current_price: Optional[float] = None
    week52_high: Optional[float] = None
    week52_low: Optional[float] = None
    # Targets
    return30d: Optional[float] = None
    return90d: Optional[float] = None
    return180d: Optional[float] = None
    return365d: Optional[float] = None

    @classmethod
    def from_records(
        cls,
        ticker: str,
        metrics: Dict[str, Any],
        returns: Dict[str, float],
        quote: Optional[Dict[str, Any]] = None,
    ) -> "InstrumentSnapshot":
        known = {f.name for f in fields(cls)} - {"ticker"}
        values: Dict[str, Any] = {}
        for record in (metrics, quote or {}, returns):
            values.update({k: v for k, v in record.items() if k in known})
        return cls(ticker=ticker, **values)


class DataCollector:
    """
    Collects ``InstrumentSnapshot`` records from a ``DataStore``.

    Parameters
    ----------
    store : DataStore
        Source of instruments, metrics and prices.
    max_workers : int, optional
        Concurrent instrument fetches; 1 processes sequentially.
    price_lookback : int, optional
        Number of most recent prices fetched per instrument.
    min_price_points : int, optional
        Minimum stored prices required to keep an instrument.
    """

    def __init__(
        self,
        store: DataStore,
        max_workers: Optional[int] = None,
        price_lookback: Optional[int] = None,
        min_price_points: Optional[int] = None,
    ):
        self.store = store
        self.max_workers = max_workers if max_workers is not None else config.MAX_WORKERS
        self.price_lookback = (
            price_lookback if price_lookback is not None else config.PRICE_LOOKBACK
        )
        self.min_price_points = (
            min_price_points if min_price_points is not None else config.MIN_PRICE_POINTS
        )
        for name in ("max_workers", "price_lookback", "min_price_points"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")

    def collect_instrument(self, instrument: Instrument, as_of: Any) -> Optional[InstrumentSnapshot]:
        """Build the snapshot for one instrument, or None if it is skipped."""
        metrics = self.store.latest_metrics(instrument.id)
        prices = self.store.price_history(instrument.id, limit=self.price_lookback)

        if metrics is None or len(prices) < self.min_price_points:
            _LOGGER.warning(
                "Skipping %s - insufficient data (%d days of price history%s)",
                instrument.ticker, len(prices), "" if metrics is not None else ", no metrics",
            )
            return None

        returns = calculate_returns(prices, as_of)
        if all(returns.get(key) is None for key in QUALIFYING_RETURNS):
            _LOGGER.warning(
                "Skipping %s - no calculable returns (need at least 30-day history)",
                instrument.ticker,
            )
            return None

        quote = self.store.latest_quote(instrument.id)
        _LOGGER.info("Collected data for %s", instrument.ticker)
        return InstrumentSnapshot.from_records(instrument.ticker, metrics, returns, quote)

    def _safe_collect(self, instrument: Instrument, as_of: Any) -> Optional[InstrumentSnapshot]:
        try:
            return self.collect_instrument(instrument, as_of)
        except Exception:
            _LOGGER.exception("Error processing %s", instrument.ticker)
            return None

    def collect(self, as_of: Optional[Any] = None) -> List[InstrumentSnapshot]:
        """
        Collect snapshots for every active instrument.

        Parameters
        ----------
        as_of : date-like, optional
            Reference date for the return horizons; defaults to now.

        Returns
        -------
        list of InstrumentSnapshot
            Sorted by ticker.
        """
        as_of = as_of if as_of is not None else datetime.now()
        instruments = self.store.active_instruments()
        _LOGGER.info("Found %d active instruments", len(instruments))

        snapshots: List[InstrumentSnapshot] = []
        if self.max_workers == 1:
            for instrument in instruments:
                snap = self._safe_collect(instrument, as_of)
                if snap is not None:
                    snapshots.append(snap)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
                futs = [ex.submit(self._safe_collect, i, as_of) for i in instruments]
                for fut in as_completed(futs):
                    snap = fut.result()
                    if snap is not None:
                        snapshots.append(snap)

        snapshots.sort(key=lambda s: s.ticker)
        _LOGGER.info("Collected %d complete data points", len(snapshots))
        return snapshots
