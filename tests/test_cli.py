"""
Tests for the command line interface (python -m internal_score).
"""

import numpy as np
import pytest

from internal_score.__main__ import create_parser, main
from internal_score.config import config
from internal_score.database import SQLiteDataStore

from conftest import make_metrics, make_prices


def _seed(db_path, n_instruments=12):
    store = SQLiteDataStore(db_path)
    store.initialize_schema()
    rng = np.random.RandomState(21)
    for i in range(n_instruments):
        sid = store.add_instrument(f"TCK{i:02d}")
        store.add_metrics(sid, "2024-06-01", make_metrics(rng))
        store.add_prices(sid, make_prices(100.0 + i, 120, rng.uniform(-0.003, 0.003)))
        store.set_quote(sid, current_price=100.0 + i, week52_high=130.0, week52_low=80.0)
    return store


@pytest.fixture
def paths(tmp_path):
    return {
        "db": tmp_path / "internal_score.db",
        "output": tmp_path / "internal-score-analysis.json",
        "history": tmp_path / "history",
    }


def _run_args(paths, *extra):
    return [
        "run",
        "--db", str(paths["db"]),
        "--output", str(paths["output"]),
        "--history-dir", str(paths["history"]),
        "--as-of", "2024-06-30",
        *extra,
    ]


class TestParser:
    def test_run_arguments(self):
        args = create_parser().parse_args(["run", "--workers", "2", "--coefficients"])
        assert args.command == "run"
        assert args.workers == 2
        assert args.coefficients is True
        assert args.db is None

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0


class TestInitDb:
    def test_creates_schema(self, paths, capsys):
        assert main(["init-db", "--db", str(paths["db"])]) == 0
        assert paths["db"].exists()
        assert SQLiteDataStore(paths["db"]).active_instruments() == []


class TestRun:
    def test_full_run(self, paths, capsys):
        _seed(paths["db"])

        assert main(_run_args(paths, "--workers", "2", "--coefficients")) == 0

        out = capsys.readouterr().out
        assert "Analysis complete" in out
        assert "Collected 12 complete data points" in out
        assert "internal-score" in out
        assert "ridge_0.1" in out
        assert paths["output"].exists()
        assert len(list(paths["history"].glob("internal-score-*.json"))) == 1

    def test_second_run_prints_delta(self, paths, capsys):
        _seed(paths["db"])
        main(_run_args(paths))
        capsys.readouterr()

        assert main(_run_args(paths)) == 0
        assert "FACTOR WEIGHT CHANGES" in capsys.readouterr().out

    def test_missing_database(self, paths, capsys):
        assert main(_run_args(paths)) == 1
        assert "Database not found" in capsys.readouterr().out

    def test_insufficient_data(self, paths, capsys):
        _seed(paths["db"], n_instruments=5)
        assert main(_run_args(paths)) == 1
        assert "Not enough data points" in capsys.readouterr().out
        assert not paths["output"].exists()

    def test_invalid_configuration(self, paths, capsys, monkeypatch):
        _seed(paths["db"])
        monkeypatch.setattr(config, "MAX_WORKERS", 0)
        assert main(_run_args(paths)) == 1
        assert "Configuration Error" in capsys.readouterr().out

    @pytest.mark.parametrize("workers", ["0", "-1"])
    def test_invalid_worker_count(self, paths, capsys, workers):
        _seed(paths["db"])
        assert main(_run_args(paths, "--workers", workers)) == 1
        assert "max_workers must be >= 1" in capsys.readouterr().out
        assert not paths["output"].exists()


class TestShowAndHistory:
    def test_show_without_analysis(self, paths, capsys):
        assert main(["show", "--output", str(paths["output"])]) == 1
        assert "No analysis found" in capsys.readouterr().out

    def test_show_and_history_after_run(self, paths, capsys):
        _seed(paths["db"])
        main(_run_args(paths))
        capsys.readouterr()

        assert main(["show", "--output", str(paths["output"])]) == 0
        out = capsys.readouterr().out
        assert "Data points: 12" in out
        assert "90-day returns" in out

        assert main(["history", "--history-dir", str(paths["history"])]) == 0
        assert "Found 1 snapshot(s)" in capsys.readouterr().out

    def test_empty_history(self, paths, capsys):
        assert main(["history", "--history-dir", str(paths["history"])]) == 0
        assert "No analysis history found" in capsys.readouterr().out
