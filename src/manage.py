"""Database management CLI for the ordering domain.

Usage:
    python src/manage.py setup-db   # Create order tables
    python src/manage.py drop-db    # Drop order tables
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)


def setup_database():
    from ordering.domain import ordering
    from ordering.utils.db import setup_db

    ordering.init()
    setup_db(ordering)
    logger.info("Schema ready", domain=ordering.name)


def drop_database():
    from ordering.domain import ordering
    from ordering.utils.db import drop_db

    ordering.init()
    drop_db(ordering)
    logger.info("Schema dropped", domain=ordering.name)


def main():
    parser = argparse.ArgumentParser(description="Pharmacy order service database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
