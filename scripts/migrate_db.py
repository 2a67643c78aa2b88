"""Create the tables for vacancies, users and saved vacancies."""

from __future__ import annotations

import argparse

from config.settings import DATABASE_URL
from src.db.base import create_schema


def migrate(database_url: str) -> None:
    create_schema(database_url)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create database tables for the JobFlow tracker.")
    parser.add_argument(
        "--database-url",
        dest="database_url",
        default=DATABASE_URL,
        help="SQLAlchemy database URL (default: %(default)s)",
    )
    args = parser.parse_args()
    migrate(args.database_url)
    print(f"Database migrated at {args.database_url}")


if __name__ == "__main__":
    main()
