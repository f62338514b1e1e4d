import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import UTC, date, datetime
from pathlib import Path

from visitlab.adapters.sqlite.migrator import SQLiteMigrator
from visitlab.adapters.sqlite_db import SQLiteVisitRepo
from visitlab.components.analytics import StatsService
from visitlab.core.ports import VisitStoreError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

DB_PATH = "data/visitlab.db"
MIGRATIONS_DIR = "migrations"


def handle_migrate(args: argparse.Namespace) -> None:
    if not Path(args.migrations_dir).is_dir():
        logger.error(f"Migrations directory {args.migrations_dir} not found.")
        sys.exit(1)

    applied = SQLiteMigrator(args.db, args.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migrations.")


def handle_stats(args: argparse.Namespace) -> None:
    if args.date:
        try:
            day = date.fromisoformat(args.date)
        except ValueError:
            logger.error(f"Invalid date {args.date}; expected YYYY-MM-DD.")
            sys.exit(1)
    else:
        day = datetime.now(UTC).date()

    try:
        stats = StatsService(SQLiteVisitRepo(args.db)).daily_stats(day)
    except VisitStoreError as e:
        logger.error(f"Failed to read stats: {e}")
        sys.exit(1)

    print(json.dumps(asdict(stats), default=str, indent=2))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Visitlab CLI")
    parser.add_argument("--db", default=DB_PATH, help="Path to the SQLite database")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending migrations")
    migrate_parser.add_argument(
        "--migrations-dir", default=MIGRATIONS_DIR, help="Directory of .sql migrations"
    )

    # stats
    stats_parser = subparsers.add_parser("stats", help="Print daily totals as JSON")
    stats_parser.add_argument("--date", help="UTC day (YYYY-MM-DD); defaults to today")

    args = parser.parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args)
    elif args.command == "stats":
        handle_stats(args)


if __name__ == "__main__":
    main()
