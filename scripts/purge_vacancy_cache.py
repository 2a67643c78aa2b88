"""Delete vacancy cache rows whose expiry has passed.

Meant to run from cron. Permanent snapshots (rows without an expiry) are
never removed. Lookups already ignore expired rows, so a late or skipped run
only leaves dead rows behind.
"""

from __future__ import annotations

import argparse
import logging

from config.settings import DATABASE_URL, LOG_LEVEL
from src.services.vacancy_store import VacancyStore

logger = logging.getLogger("purge_vacancy_cache")


def purge(database_url: str) -> int:
    store = VacancyStore(database_url=database_url)
    store.create_schema()
    return store.purge_expired()


def main() -> None:
    parser = argparse.ArgumentParser(description="Remove expired vacancy cache rows.")
    parser.add_argument(
        "--database-url",
        dest="database_url",
        default=DATABASE_URL,
        help="SQLAlchemy database URL (default: %(default)s)",
    )
    args = parser.parse_args()
    logging.basicConfig(level=getattr(logging, LOG_LEVEL))
    removed = purge(args.database_url)
    logger.info("Removed %d expired vacancy cache rows from %s", removed, args.database_url)


if __name__ == "__main__":
    main()
