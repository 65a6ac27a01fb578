# rxprint/db/init_db.py
from __future__ import annotations

import argparse
import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rxprint.db.base import Base
# Import all models so metadata is complete
from rxprint.models import prescription  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind: Engine) -> set:
    """Create missing tables; safe to run multiple times."""
    Base.metadata.create_all(bind=bind)
    names = set(inspect(bind).get_table_names())
    logger.info("Tables present: %s", sorted(names))
    return names


def main() -> None:
    from rxprint.db.session import engine

    parser = argparse.ArgumentParser(
        description="Create prescription tables")
    parser.add_argument("--drop",
                        action="store_true",
                        help="drop existing tables first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    try:
        if args.drop:
            Base.metadata.drop_all(bind=engine)
            logger.warning("Dropped all tables")
        init_db(engine)
    except SQLAlchemyError:
        logger.exception("Database initialisation failed")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
