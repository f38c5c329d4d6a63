"""Store layer for ledgerguard."""

from ledgerguard.database.base import Database
from ledgerguard.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
