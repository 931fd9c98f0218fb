"""
Realized Return Calculation
===========================

Computes realized percentage returns over the fixed horizons used as
regression targets.  The price series is expected most-recent-first; the
most recent price is always the "current" price and, for each horizon, the
first price dated at or before ``as_of - horizon`` is the historical price.
There is no interpolation between dates.

>>> from datetime import date
>>> prices = [(date(2024, 6, 30), 100.0), (date(2024, 5, 31), 80.0)]
>>> calculate_returns(prices, date(2024, 6, 30))
{'return30d': 25.0}
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Iterable, Sequence, Tuple

import pandas as pd

# Horizon length in days -> snapshot / output field name
RETURN_HORIZONS: Tuple[Tuple[int, str], ...] = (
    (30, "return30d"),
    (90, "return90d"),
    (180, "return180d"),
    (365, "return365d"),
)

RETURN_FIELDS: Tuple[str, ...] = tuple(key for _, key in RETURN_HORIZONS)


def to_timestamp(value: Any) -> pd.Timestamp:
    """Coerce a date-like value to a naive ``pd.Timestamp``."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def calculate_returns(
    price_history: Sequence[Tuple[Any, float]],
    as_of: Any,
    horizons: Iterable[Tuple[int, str]] = RETURN_HORIZONS,
) -> Dict[str, float]:
    """
    Calculate realized returns from a most-recent-first price series.

    Parameters
    ----------
    price_history : sequence of (date, price)
        Price points ordered most recent first.
    as_of : date-like
        Reference "current" date the horizons are measured back from.
    horizons : iterable of (days, key)
        Horizons to evaluate; defaults to 30/90/180/365 days.

    Returns
    -------
    dict
        ``{key: percent_return}`` for every horizon with a usable historical
        price.  Horizons without one are omitted, never reported as 0.
    """
    if len(price_history) == 0:
        return {}

    current_price = float(price_history[0][1])
    as_of_ts = to_timestamp(as_of)
    dated = [(to_timestamp(d), float(p)) for d, p in price_history]

    result: Dict[str, float] = {}
    for days, key in horizons:
        target = as_of_ts - timedelta(days=days)
        historical = next((price for ts, price in dated if ts <= target), None)
        if historical is not None and historical > 0:
            result[key] = (current_price - historical) / historical * 100.0

    return result
