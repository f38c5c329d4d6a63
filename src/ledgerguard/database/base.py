"""Abstract store interface."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid pulling the domain services in
from ledgerguard.domain.entities import (
    Account,
    Classification,
    Currency,
    FxRate,
    JournalEntry,
    JournalEntryDraft,
    RecordStatus,
    SourceRecord,
    Transaction,
    TransactionStatus,
)


class Database(ABC):
    """Abstract store interface for ledgerguard.

    Implementations raise ``StoreError`` for transport or availability
    failures. The domain layer never assumes joins or multi-row transactions
    beyond what the individual methods document.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the store."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the store."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize the schema (create tables)."""
        pass

    # Chart of accounts
    @abstractmethod
    def create_account(
        self,
        account_id: str,
        name: str,
        classification: Classification,
        is_group: bool = False,
        parent_id: Optional[str] = None,
        currency: Optional[Currency] = None,
        priority: int = 0,
    ) -> str:
        """Create an account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts ordered by priority, then ID."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        currency: Optional[Currency] = None,
        priority: Optional[int] = None,
    ) -> None:
        """Update mutable account fields."""
        pass

    @abstractmethod
    def delete_account(self, account_id: str) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def count_child_accounts(self, account_id: str) -> int:
        """Count direct children of an account."""
        pass

    # Journal
    @abstractmethod
    def add_journal_entries(self, drafts: Sequence[JournalEntryDraft]) -> list[int]:
        """Write all drafts in one unit. Returns the new entry IDs in order."""
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID."""
        pass

    @abstractmethod
    def list_journal_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[str] = None,
        source_transaction_id: Optional[str] = None,
    ) -> list[JournalEntry]:
        """List journal entries ordered by date, then ID.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            account_id: Only entries with a leg on this account
            source_transaction_id: Only entries posted for this transaction
        """
        pass

    @abstractmethod
    def count_account_entries(self, account_id: str) -> int:
        """Count journal entries with a leg on an account."""
        pass

    @abstractmethod
    def delete_journal_entries(self, entry_ids: Sequence[int]) -> int:
        """Delete entries by ID in one unit. Returns number deleted."""
        pass

    @abstractmethod
    def record_posting(
        self, drafts: Sequence[JournalEntryDraft], used_record_ids: Sequence[str]
    ) -> list[int]:
        """Write a transaction's entries and mark its records Used in one unit."""
        pass

    # Transactions and source records
    @abstractmethod
    def create_transaction(self, transaction: Transaction) -> str:
        """Store a transaction with its legs. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction (with legs) by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        on_date: Optional[date] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[Transaction]:
        """List transactions, optionally restricted to a calendar day or status."""
        pass

    @abstractmethod
    def list_transactions_for_record(
        self, record_id: str, on_date: Optional[date] = None
    ) -> list[Transaction]:
        """List transactions whose legs reference a source record."""
        pass

    @abstractmethod
    def update_transaction_status(
        self, transaction_id: str, status: TransactionStatus
    ) -> None:
        """Update a transaction's status."""
        pass

    @abstractmethod
    def create_source_record(self, record: SourceRecord) -> str:
        """Store a source record. Returns record ID."""
        pass

    @abstractmethod
    def get_source_record(self, record_id: str) -> Optional[SourceRecord]:
        """Get source record by ID."""
        pass

    @abstractmethod
    def list_source_records(
        self,
        client_id: Optional[str] = None,
        status: Optional[RecordStatus] = None,
    ) -> list[SourceRecord]:
        """List source records with optional filters."""
        pass

    @abstractmethod
    def update_record_status(self, record_ids: Sequence[str], status: RecordStatus) -> None:
        """Set the status of several records in one unit."""
        pass

    # Exchange rate history
    @abstractmethod
    def add_fx_rate(
        self,
        currency: Currency,
        buy_rate: Decimal,
        sell_rate: Decimal,
        recorded_at: Optional[datetime] = None,
    ) -> int:
        """Append a rate to the history. Returns rate ID."""
        pass

    @abstractmethod
    def latest_fx_rate(self, currency: Currency, at: datetime) -> Optional[FxRate]:
        """Most recent rate for a currency recorded at or before ``at``."""
        pass

    @abstractmethod
    def list_fx_rates(self, currency: Optional[Currency] = None) -> list[FxRate]:
        """List rate history, newest first."""
        pass

    # Counters
    @abstractmethod
    def next_sequence_value(self, name: str) -> int:
        """Atomically increment a named counter and return the new value."""
        pass
