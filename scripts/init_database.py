#!/usr/bin/env python3
"""
Initialize the Library Catalog database.

This script:
1. Creates all database tables
2. Optionally loads Faker-generated sample data
3. Verifies every expected table exists

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from library_catalog.config import get_config
from library_catalog.database import get_db_manager
from library_catalog.database.seed import seed_database

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"authors", "categories", "book_categories", "books", "members", "loans"}


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Library Catalog database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override the configured database URL",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for sample data",
    )

    args = parser.parse_args()

    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            config = get_config()
            logger.info("Loading sample data...")
            with db_manager.session_scope() as session:
                counts = seed_database(
                    session,
                    loan_period_days=config.loan_period_days,
                    max_active_loans=config.max_active_loans,
                    seed=args.seed,
                )
            logger.info("Sample data loaded: %s", counts)

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Tables: %s", ", ".join(sorted(tables)))

        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", missing_tables)
            sys.exit(1)

        logger.info("Database initialization complete")
    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
