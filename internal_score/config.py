"""
Centralized Configuration for the Internal Score Engine
=======================================================

Environment variables are loaded once (from a ``.env`` file when present)
and exposed through the module-level ``config`` instance.

Usage
-----
>>> from internal_score.config import config
>>> config.DB_PATH
PosixPath('internal_score.db')
>>> config.validate()  # Raises if a setting is out of range

Environment Variables
---------------------
- INTERNAL_SCORE_DB: SQLite database holding metrics and price history
- INTERNAL_SCORE_OUTPUT: "latest" analysis JSON file
- INTERNAL_SCORE_HISTORY_DIR: directory of dated analysis snapshots
- INTERNAL_SCORE_MAX_WORKERS: concurrent instrument fetches (1 = sequential)
- INTERNAL_SCORE_PRICE_LOOKBACK: price points fetched per instrument
- INTERNAL_SCORE_MIN_PRICE_POINTS: minimum price history to keep an instrument
- INTERNAL_SCORE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _find_and_load_env() -> Optional[Path]:
    """Find and load .env file from the project root."""
    current = Path(__file__).parent
    for _ in range(5):  # Search up to 5 levels up
        env_file = current / '.env'
        if env_file.exists():
            load_dotenv(env_file)
            return env_file
        current = current.parent

    # Fall back to the current working directory
    load_dotenv()
    return None


_env_file = _find_and_load_env()


class Configuration:
    """
    Centralized configuration for the Internal Score engine.

    Attributes
    ----------
    DB_PATH : Path
        SQLite database with stocks, metrics and price history
    OUTPUT_PATH : Path
        Overwritten "latest" analysis file
    HISTORY_DIR : Path
        Directory for dated, immutable analysis snapshots
    MAX_WORKERS : int
        Upper bound on concurrent instrument fetches
    PRICE_LOOKBACK : int
        Most recent price points fetched per instrument
    MIN_PRICE_POINTS : int
        Instruments with shorter price history are skipped
    LOG_LEVEL : str
        Logging level (DEBUG, INFO, WARNING, ERROR)
    """

    def __init__(self):
        self.DB_PATH: Path = Path(os.getenv('INTERNAL_SCORE_DB', 'internal_score.db'))
        self.OUTPUT_PATH: Path = Path(
            os.getenv('INTERNAL_SCORE_OUTPUT', 'internal-score-analysis.json')
        )
        self.HISTORY_DIR: Path = Path(
            os.getenv('INTERNAL_SCORE_HISTORY_DIR', '.internal-score-history')
        )
        self.MAX_WORKERS: int = int(os.getenv('INTERNAL_SCORE_MAX_WORKERS', '4'))
        self.PRICE_LOOKBACK: int = int(os.getenv('INTERNAL_SCORE_PRICE_LOOKBACK', '365'))
        self.MIN_PRICE_POINTS: int = int(os.getenv('INTERNAL_SCORE_MIN_PRICE_POINTS', '30'))
        self.LOG_LEVEL: str = os.getenv('INTERNAL_SCORE_LOG_LEVEL', 'INFO')

    def validate(self) -> None:
        """
        Validate that settings are usable.

        Raises
        ------
        ValueError
            If any setting is out of range
        """
        errors = []

        if self.MAX_WORKERS < 1:
            errors.append(f"INTERNAL_SCORE_MAX_WORKERS must be >= 1, got {self.MAX_WORKERS}")
        if self.PRICE_LOOKBACK < 1:
            errors.append(
                f"INTERNAL_SCORE_PRICE_LOOKBACK must be >= 1, got {self.PRICE_LOOKBACK}"
            )
        if self.MIN_PRICE_POINTS < 1:
            errors.append(
                f"INTERNAL_SCORE_MIN_PRICE_POINTS must be >= 1, got {self.MIN_PRICE_POINTS}"
            )
        if self.MIN_PRICE_POINTS > self.PRICE_LOOKBACK:
            errors.append(
                "INTERNAL_SCORE_MIN_PRICE_POINTS cannot exceed INTERNAL_SCORE_PRICE_LOOKBACK"
            )
        if self.LOG_LEVEL.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"Unknown INTERNAL_SCORE_LOG_LEVEL: {self.LOG_LEVEL}")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))

    def __repr__(self) -> str:
        return (
            f"Configuration("
            f"DB_PATH={self.DB_PATH}, "
            f"OUTPUT_PATH={self.OUTPUT_PATH}, "
            f"HISTORY_DIR={self.HISTORY_DIR}, "
            f"MAX_WORKERS={self.MAX_WORKERS}, "
            f"LOG_LEVEL={self.LOG_LEVEL}"
            f")"
        )


# Global configuration instance
config = Configuration()


def validate_config() -> None:
    """Quick validation of the global configuration."""
    config.validate()
