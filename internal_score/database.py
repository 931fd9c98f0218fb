"""
Instrument Data Stores
======================

The learning engine reads three things per instrument: the latest metrics
snapshot, the latest quote and a most-recent-first price history.  Anything
providing those through the ``DataStore`` protocol can feed the engine.

Two implementations are provided:

* ``SQLiteDataStore`` - local SQLite database (one connection per operation)
* ``InMemoryDataStore`` - dictionaries, for tests and ad hoc experiments

Schema
------
``stocks(id, ticker, is_active)``
``metrics(stock_id, snapshot_date, <feature columns>)``
``price_history(stock_id, date, price)``
``stock_data(stock_id, current_price, week52_high, week52_low)``

Usage
-----
>>> store = SQLiteDataStore("internal_score.db")
>>> store.initialize_schema()
>>> for instrument in store.active_instruments():
...     prices = store.price_history(instrument.id, limit=365)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Protocol, Tuple, Union

import numpy as np
import pandas as pd

from .config import config
from .features import FEATURE_NAMES

_LOGGER = logging.getLogger(__name__)

PricePoint = Tuple[Any, float]

QUOTE_FIELDS: Tuple[str, ...] = ("current_price", "week52_high", "week52_low")


@dataclass(frozen=True)
class Instrument:
    """A tradable instrument known to the store."""
    id: int
    ticker: str


class DataStore(Protocol):
    """Read-only access to per-instrument metrics and prices."""

    def active_instruments(self) -> List[Instrument]:
        ...

    def latest_metrics(self, instrument_id: int) -> Optional[Dict[str, Optional[float]]]:
        ...

    def latest_quote(self, instrument_id: int) -> Optional[Dict[str, Optional[float]]]:
        ...

    def price_history(self, instrument_id: int, limit: int) -> List[PricePoint]:
        ...


def _clean_value(value: Any) -> Optional[float]:
    """Map NULL / NaN database values to None, everything else to float."""
    if value is None:
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if np.isnan(out):
        return None
    return out


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS stocks (
    id INTEGER PRIMARY KEY,
    ticker TEXT NOT NULL UNIQUE,
    is_active INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS metrics (
    id INTEGER PRIMARY KEY,
    stock_id INTEGER NOT NULL REFERENCES stocks(id),
    snapshot_date TEXT NOT NULL,
    {feature_columns}
);
CREATE INDEX IF NOT EXISTS idx_metrics_stock_date ON metrics(stock_id, snapshot_date);
CREATE TABLE IF NOT EXISTS price_history (
    stock_id INTEGER NOT NULL REFERENCES stocks(id),
    date TEXT NOT NULL,
    price REAL,
    PRIMARY KEY (stock_id, date)
);
CREATE TABLE IF NOT EXISTS stock_data (
    stock_id INTEGER PRIMARY KEY REFERENCES stocks(id),
    current_price REAL,
    week52_high REAL,
    week52_low REAL
);
"""


class SQLiteDataStore:
    """
    SQLite-backed ``DataStore``.

    Each operation opens and closes its own connection, so a single store
    can be shared by the collector's worker threads.

    Parameters
    ----------
    db_path : str or Path, optional
        Database file; defaults to ``config.DB_PATH``.
    timeout : float, default 30.0
        Seconds to wait on a locked database.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None, timeout: float = 30.0):
        self.db_path = Path(db_path or config.DB_PATH).expanduser()
        self.timeout = timeout

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield a configured connection, committing on success."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        """Create the tables if they do not exist."""
        columns = ",\n    ".join(f"{name} REAL" for name in FEATURE_NAMES)
        with self.connection() as conn:
            conn.executescript(_SCHEMA.format(feature_columns=columns))
        _LOGGER.info("Initialized schema in %s", self.db_path)

    def active_instruments(self) -> List[Instrument]:
        with self.connection() as conn:
            df = pd.read_sql(
                "SELECT id, ticker FROM stocks WHERE is_active = 1 ORDER BY ticker", conn
            )
        return [Instrument(id=int(row.id), ticker=str(row.ticker)) for row in df.itertuples()]

    def latest_metrics(self, instrument_id: int) -> Optional[Dict[str, Optional[float]]]:
        cols = ", ".join(FEATURE_NAMES)
        with self.connection() as conn:
            df = pd.read_sql(
                f"SELECT {cols} FROM metrics WHERE stock_id = ? "
                f"ORDER BY snapshot_date DESC LIMIT 1",
                conn,
                params=(instrument_id,),
            )
        if df.empty:
            return None
        row = df.iloc[0]
        return {name: _clean_value(row[name]) for name in FEATURE_NAMES}

    def latest_quote(self, instrument_id: int) -> Optional[Dict[str, Optional[float]]]:
        cols = ", ".join(QUOTE_FIELDS)
        with self.connection() as conn:
            df = pd.read_sql(
                f"SELECT {cols} FROM stock_data WHERE stock_id = ?",
                conn,
                params=(instrument_id,),
            )
        if df.empty:
            return None
        row = df.iloc[0]
        return {name: _clean_value(row[name]) for name in QUOTE_FIELDS}

    def price_history(self, instrument_id: int, limit: int) -> List[PricePoint]:
        with self.connection() as conn:
            df = pd.read_sql(
                "SELECT date, price FROM price_history WHERE stock_id = ? "
                "ORDER BY date DESC LIMIT ?",
                conn,
                params=(instrument_id, int(limit)),
            )
        return [(pd.Timestamp(d), float(p)) for d, p in zip(df["date"], df["price"])]

    # -- writers (used to seed the store) ---------------------------------

    def add_instrument(self, ticker: str, is_active: bool = True) -> int:
        with self.connection() as conn:
            cur = conn.execute(
                "INSERT INTO stocks (ticker, is_active) VALUES (?, ?)",
                (ticker.upper(), int(is_active)),
            )
            return int(cur.lastrowid)

    def add_metrics(self, instrument_id: int, snapshot_date: Any,
                    metrics: Dict[str, Optional[float]]) -> None:
        unknown = set(metrics) - set(FEATURE_NAMES)
        if unknown:
            raise ValueError(f"Unknown metric fields: {sorted(unknown)}")
        columns = ["stock_id", "snapshot_date", *metrics]
        placeholders = ", ".join("?" for _ in columns)
        with self.connection() as conn:
            conn.execute(
                f"INSERT INTO metrics ({', '.join(columns)}) VALUES ({placeholders})",
                (instrument_id, pd.Timestamp(snapshot_date).isoformat(), *metrics.values()),
            )

    def add_prices(self, instrument_id: int, prices: List[PricePoint]) -> None:
        rows = [
            (instrument_id, pd.Timestamp(d).date().isoformat(), float(p)) for d, p in prices
        ]
        with self.connection() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO price_history (stock_id, date, price) VALUES (?, ?, ?)",
                rows,
            )

    def set_quote(self, instrument_id: int, current_price: Optional[float] = None,
                  week52_high: Optional[float] = None,
                  week52_low: Optional[float] = None) -> None:
        with self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO stock_data "
                "(stock_id, current_price, week52_high, week52_low) VALUES (?, ?, ?, ?)",
                (instrument_id, current_price, week52_high, week52_low),
            )


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

@dataclass
class InMemoryDataStore:
    """
    Dictionary-backed ``DataStore``.

    ``prices`` may be given in any order; ``price_history`` always returns
    the most recent ``limit`` points, most recent first.
    """
    instruments: List[Instrument] = field(default_factory=list)
    metrics: Dict[int, Dict[str, Optional[float]]] = field(default_factory=dict)
    quotes: Dict[int, Dict[str, Optional[float]]] = field(default_factory=dict)
    prices: Dict[int, List[PricePoint]] = field(default_factory=dict)
    inactive: set = field(default_factory=set)

    def add(self, ticker: str, metrics: Optional[Dict[str, Optional[float]]] = None,
            prices: Optional[List[PricePoint]] = None,
            quote: Optional[Dict[str, Optional[float]]] = None) -> Instrument:
        instrument = Instrument(id=len(self.instruments) + 1, ticker=ticker)
        self.instruments.append(instrument)
        if metrics is not None:
            self.metrics[instrument.id] = dict(metrics)
        if quote is not None:
            self.quotes[instrument.id] = dict(quote)
        self.prices[instrument.id] = list(prices or [])
        return instrument

    def active_instruments(self) -> List[Instrument]:
        return [i for i in self.instruments if i.id not in self.inactive]

    def latest_metrics(self, instrument_id: int) -> Optional[Dict[str, Optional[float]]]:
        return self.metrics.get(instrument_id)

    def latest_quote(self, instrument_id: int) -> Optional[Dict[str, Optional[float]]]:
        return self.quotes.get(instrument_id)

    def price_history(self, instrument_id: int, limit: int) -> List[PricePoint]:
        points = sorted(
            self.prices.get(instrument_id, []),
            key=lambda p: pd.Timestamp(p[0]),
            reverse=True,
        )
        return points[:limit]
