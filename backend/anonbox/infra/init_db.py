# anonbox/infra/init_db.py

import argparse
import logging
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

import anonbox.models  # noqa: F401  (registers every table on Base.metadata)
from anonbox.models.base import Base
from anonbox.utils.logger import setup_logger

logger = logging.getLogger(__name__)


def init_db(bind: Engine | None = None, drop: bool = False) -> list[str]:
    """Create all tables in the database, optionally dropping them first"""
    if bind is None:
        from anonbox.infra.postgres import engine as bind

    if drop:
        logger.warning("Dropping all tables...")
        Base.metadata.drop_all(bind=bind)

    Base.metadata.create_all(bind=bind)
    tables = inspect(bind).get_table_names()
    logger.info("Tables ready: %s", tables)
    return tables


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create the anonbox database tables")
    parser.add_argument("--drop", action="store_true", help="drop and recreate all tables")
    args = parser.parse_args(argv)

    setup_logger()
    init_db(drop=args.drop)


if __name__ == "__main__":
    main()
