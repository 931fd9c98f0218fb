#!/usr/bin/env python3
"""
Command Line Interface for the Internal Score Engine
====================================================

Usage
-----
    # Learn factor weights from the local database
    python -m internal_score run --db internal_score.db

    # Show the latest stored analysis
    python -m internal_score show

    # List dated analysis snapshots
    python -m internal_score history

    # Create an empty database schema
    python -m internal_score init-db --db internal_score.db

For help on any command:
    python -m internal_score <command> --help
"""

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from internal_score import __version__
from internal_score.collector import DataCollector
from internal_score.config import config, validate_config
from internal_score.database import SQLiteDataStore
from internal_score.engine import FactorWeightLearner
from internal_score.errors import InsufficientDataError
from internal_score.history import JsonSnapshotRepository
from internal_score.reporting import format_learning_result, format_snapshot


def _configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s  %(levelname)s  %(message)s")


def _repository(args) -> JsonSnapshotRepository:
    return JsonSnapshotRepository(
        history_dir=getattr(args, 'history_dir', None) or config.HISTORY_DIR,
        latest_path=getattr(args, 'output', None) or config.OUTPUT_PATH,
    )


# =============================================================================
# Commands
# =============================================================================

def cmd_run(args) -> int:
    """Run the factor-weight learning engine."""
    try:
        validate_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        return 1

    store = SQLiteDataStore(args.db or config.DB_PATH)
    if not store.db_path.exists():
        print(f"❌ Database not found: {store.db_path}")
        return 1

    try:
        collector = DataCollector(store, max_workers=args.workers)
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        return 1
    learner = FactorWeightLearner(store, _repository(args), collector=collector)
    as_of = pd.Timestamp(args.as_of).to_pydatetime() if args.as_of else None

    print("🔬 Running Internal Score statistical analysis...")
    try:
        result = learner.run(as_of=as_of)
    except InsufficientDataError as e:
        print(f"❌ {e}")
        return 1

    print(format_learning_result(result, show_coefficients=args.coefficients))
    print("\n✅ Analysis complete!")
    return 0


def cmd_show(args) -> int:
    """Print the latest stored analysis."""
    snapshot = _repository(args).load_latest()
    if snapshot is None:
        print("No analysis found. Run `python -m internal_score run` first.")
        return 1
    print(format_snapshot(snapshot))
    return 0


def cmd_history(args) -> int:
    """List dated analysis snapshots."""
    paths = _repository(args).list_history()
    if not paths:
        print("No analysis history found.")
        return 0
    print(f"Found {len(paths)} snapshot(s):")
    for path in paths:
        print(f"   {path.name}")
    return 0


def cmd_init_db(args) -> int:
    """Create the database schema."""
    store = SQLiteDataStore(args.db or config.DB_PATH)
    store.initialize_schema()
    print(f"🗄️  Schema ready in {store.db_path}")
    return 0


# =============================================================================
# Parser
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog='python -m internal_score',
        description='Internal Score factor-weight learning engine',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser(
        'run',
        help='Learn factor weights',
        description='Collect metrics and returns, fit OLS/ridge models and save a snapshot',
    )
    run_parser.add_argument('--db', help=f'SQLite database (default: {config.DB_PATH})')
    run_parser.add_argument('--output', help=f'Latest analysis file (default: {config.OUTPUT_PATH})')
    run_parser.add_argument(
        '--history-dir', help=f'Dated snapshot directory (default: {config.HISTORY_DIR})'
    )
    run_parser.add_argument(
        '--workers', type=int, default=None,
        help=f'Concurrent instrument fetches (default: {config.MAX_WORKERS})'
    )
    run_parser.add_argument('--as-of', help='Reference date for returns (YYYY-MM-DD), default: now')
    run_parser.add_argument(
        '--coefficients', action='store_true', help='Print the full coefficient table'
    )

    show_parser = subparsers.add_parser('show', help='Show the latest analysis')
    show_parser.add_argument('--output', help=f'Latest analysis file (default: {config.OUTPUT_PATH})')

    history_parser = subparsers.add_parser('history', help='List dated analysis snapshots')
    history_parser.add_argument(
        '--history-dir', help=f'Dated snapshot directory (default: {config.HISTORY_DIR})'
    )

    init_parser = subparsers.add_parser('init-db', help='Create the database schema')
    init_parser.add_argument('--db', help=f'SQLite database (default: {config.DB_PATH})')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    _configure_logging(args.verbose)

    command_map = {
        'run': cmd_run,
        'show': cmd_show,
        'history': cmd_history,
        'init-db': cmd_init_db,
    }
    return command_map[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
