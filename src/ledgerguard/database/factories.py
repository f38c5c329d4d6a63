"""Database factory functions for creating store instances."""

from typing import Optional

from ledgerguard.config import default_database_path, load_settings
from ledgerguard.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None, timeout: Optional[float] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks the
            LEDGERGUARD_DB_PATH environment variable, then defaults to
            ~/.ledgerguard/ledger.db
        timeout: Seconds to wait on a locked database. If None, uses
            LEDGERGUARD_STORE_TIMEOUT (default 5)

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = default_database_path()

    if timeout is None:
        timeout = load_settings().store_timeout_seconds

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, timeout=timeout)
