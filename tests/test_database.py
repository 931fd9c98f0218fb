"""Tests for internal_score.database: SQLite and in-memory stores."""

from datetime import datetime

import pandas as pd
import pytest

from internal_score.database import InMemoryDataStore, Instrument, SQLiteDataStore
from internal_score.features import FEATURE_NAMES


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteDataStore(tmp_path / "nested" / "test.db")
    store.initialize_schema()
    return store


class TestSQLiteDataStore:
    def test_schema_is_idempotent(self, sqlite_store):
        sqlite_store.initialize_schema()
        assert sqlite_store.db_path.exists()
        assert sqlite_store.active_instruments() == []

    def test_active_instruments_sorted_and_filtered(self, sqlite_store):
        b = sqlite_store.add_instrument("bbb")
        a = sqlite_store.add_instrument("AAA")
        sqlite_store.add_instrument("ZZZ", is_active=False)

        assert sqlite_store.active_instruments() == [
            Instrument(id=a, ticker="AAA"),
            Instrument(id=b, ticker="BBB"),
        ]

    def test_latest_metrics_uses_newest_snapshot(self, sqlite_store):
        sid = sqlite_store.add_instrument("AAA")
        sqlite_store.add_metrics(sid, "2024-03-01", {"roe": 0.25, "beta": 1.1})
        sqlite_store.add_metrics(sid, "2024-01-01", {"roe": 0.10, "beta": 0.9})

        metrics = sqlite_store.latest_metrics(sid)

        assert set(metrics) == set(FEATURE_NAMES)
        assert metrics["roe"] == pytest.approx(0.25)
        assert metrics["beta"] == pytest.approx(1.1)
        assert metrics["pe_ratio"] is None

    def test_missing_metrics_and_quote(self, sqlite_store):
        sid = sqlite_store.add_instrument("AAA")
        assert sqlite_store.latest_metrics(sid) is None
        assert sqlite_store.latest_quote(sid) is None

    def test_unknown_metric_rejected(self, sqlite_store):
        sid = sqlite_store.add_instrument("AAA")
        with pytest.raises(ValueError, match="Unknown metric"):
            sqlite_store.add_metrics(sid, "2024-01-01", {"return90d": 3.0})

    def test_quote(self, sqlite_store):
        sid = sqlite_store.add_instrument("AAA")
        sqlite_store.set_quote(sid, current_price=101.5, week52_high=120.0)
        assert sqlite_store.latest_quote(sid) == {
            "current_price": 101.5,
            "week52_high": 120.0,
            "week52_low": None,
        }

    def test_price_history_most_recent_first_with_limit(self, sqlite_store):
        sid = sqlite_store.add_instrument("AAA")
        sqlite_store.add_prices(sid, [
            (datetime(2024, 1, 3), 12.0),
            (datetime(2024, 1, 1), 10.0),
            (datetime(2024, 1, 2), 11.0),
        ])

        history = sqlite_store.price_history(sid, limit=2)

        assert history == [
            (pd.Timestamp("2024-01-03"), 12.0),
            (pd.Timestamp("2024-01-02"), 11.0),
        ]

    def test_price_history_is_per_instrument(self, sqlite_store):
        a = sqlite_store.add_instrument("AAA")
        b = sqlite_store.add_instrument("BBB")
        sqlite_store.add_prices(a, [(datetime(2024, 1, 1), 10.0)])
        assert sqlite_store.price_history(b, limit=10) == []

    def test_failed_write_rolls_back(self, sqlite_store):
        sqlite_store.add_instrument("AAA")
        with pytest.raises(Exception):
            sqlite_store.add_instrument("AAA")
        assert len(sqlite_store.active_instruments()) == 1


class TestInMemoryDataStore:
    def test_ids_start_at_one(self):
        store = InMemoryDataStore()
        assert store.add("AAA").id == 1
        assert store.add("BBB").id == 2

    def test_price_history_sorted_and_limited(self):
        store = InMemoryDataStore()
        inst = store.add("AAA", prices=[
            (datetime(2024, 1, 1), 1.0),
            (datetime(2024, 1, 3), 3.0),
            (datetime(2024, 1, 2), 2.0),
        ])
        assert [p for _, p in store.price_history(inst.id, limit=2)] == [3.0, 2.0]

    def test_inactive_filtered(self):
        store = InMemoryDataStore()
        store.add("AAA")
        store.add("BBB")
        store.inactive.add(1)
        assert [i.ticker for i in store.active_instruments()] == ["BBB"]

    def test_missing_records(self):
        store = InMemoryDataStore()
        inst = store.add("AAA")
        assert store.latest_metrics(inst.id) is None
        assert store.latest_quote(inst.id) is None
        assert store.price_history(99, limit=5) == []
