"""Database factory functions."""

import logging
import os
from pathlib import Path
from typing import Optional

from spendtrail.database.sqlalchemy_db import SQLAlchemyDatabase

logger = logging.getLogger(__name__)

DEFAULT_DB_DIR = Path.home() / ".spendtrail"
MEMORY = ":memory:"


def default_database_path() -> str:
    """Return SPENDTRAIL_DB_PATH, or ~/.spendtrail/spendtrail.db when unset."""
    return os.environ.get("SPENDTRAIL_DB_PATH") or str(DEFAULT_DB_DIR / "spendtrail.db")


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed database.

    Args:
        database_path: Database file, or ":memory:" for a throwaway database.
            Defaults to ``default_database_path()``. Missing parent
            directories are created.

    Returns:
        SQLAlchemyDatabase instance (not yet connected)
    """
    path = database_path or default_database_path()
    if path == MEMORY:
        return SQLAlchemyDatabase("sqlite://")

    Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Using database at {path}")
    return SQLAlchemyDatabase(f"sqlite:///{Path(path).expanduser()}")
