"""Sequential identifier service backed by the store's atomic counters."""

from ledgerguard.database.base import Database


class SequenceService:
    """Issue human-readable sequential ids such as ``T00042``."""

    def __init__(self, db: Database):
        self.db = db

    def next_value(self, name: str) -> int:
        """Atomically advance a named counter."""
        return self.db.next_sequence_value(name)

    def next_id(self, name: str, prefix: str = "", width: int = 5) -> str:
        """Return the next counter value formatted with a prefix and zero padding."""
        return f"{prefix}{self.next_value(name):0{width}d}"

    def next_transaction_id(self) -> str:
        return self.next_id("transactions", prefix="T")

    def next_record_id(self, record_type: str) -> str:
        prefix = "C" if record_type == "cash" else "U"
        return self.next_id(f"records_{record_type}", prefix=prefix)
