"""Storage layer: the Database interface and its SQLAlchemy implementation."""

from spendtrail.database.base import Database
from spendtrail.database.factories import create_sqlite_database, default_database_path
from spendtrail.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_sqlite_database", "default_database_path"]
