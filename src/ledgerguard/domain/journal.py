"""Journal domain service: append-only posting and lookups."""

from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerguard.config import LedgerSettings
from ledgerguard.database.base import Database
from ledgerguard.domain.account import AccountService
from ledgerguard.domain.entities import EntrySide, JournalEntry
from ledgerguard.domain.errors import DuplicatePostingError, StoreError, ValidationError
from ledgerguard.domain.fx import FxRateProvider
from ledgerguard.domain.notifications import (
    NotificationSink,
    NullNotificationSink,
    format_posting_message,
    notify_safely,
)
from ledgerguard.domain.posting import AutoPostingEngine
from ledgerguard.domain.reconciliation import ReconciliationGuard
from ledgerguard.logging_config import get_logger

logger = get_logger("journal")


class JournalService:
    """Service for the journal. Entries are never edited once written."""

    def __init__(
        self,
        db: Database,
        settings: Optional[LedgerSettings] = None,
        fx_provider: Optional[FxRateProvider] = None,
        notifier: Optional[NotificationSink] = None,
        guard: Optional[ReconciliationGuard] = None,
    ):
        """Initialize journal service.

        Args:
            db: Database instance
            settings: Ledger settings (defaults used if omitted)
            fx_provider: Rate source for entries on non-USD accounts
            notifier: Sink announcing new entries
            guard: Reconciliation guard (built from ``db`` if omitted)
        """
        self.db = db
        self.settings = settings or LedgerSettings()
        self.accounts = AccountService(db, self.settings)
        self.fx_provider = fx_provider
        self.notifier = notifier or NullNotificationSink()
        self.guard = guard or ReconciliationGuard(db, self.settings)

    def post_manual_entry(
        self,
        entry_date: date,
        description: str,
        debit_account_id: str,
        credit_account_id: str,
        amount: Decimal,
        entered_side: EntrySide = EntrySide.DEBIT,
        source_transaction_id: Optional[str] = None,
    ) -> int:
        """Post a manual two-leg entry.

        Args:
            entry_date: Entry date
            description: Free text description
            debit_account_id: Leaf account to debit
            credit_account_id: Leaf account to credit
            amount: Amount in the currency of the ``entered_side`` account
            entered_side: Which account's currency ``amount`` is given in
            source_transaction_id: Optional transaction this entry belongs to

        Returns:
            Journal entry ID

        Raises:
            ValidationError: If the input is malformed or an account is a group
            NotFoundError: If an account does not exist
            DuplicatePostingError: If the source transaction already has entries
            RateUnavailableError: If a non-USD account has no usable rate
        """
        if entry_date is None:
            raise ValidationError("Entry date is required")

        if source_transaction_id is not None:
            check = self.guard.verify_no_existing_entries(source_transaction_id)
            if not check.is_clean:
                if check.existing_entries:
                    raise DuplicatePostingError(check.error_message)
                raise StoreError(check.error_message)

        snapshot = self.fx_provider.snapshot() if self.fx_provider is not None else None
        engine = AutoPostingEngine(self.accounts, self.settings, snapshot)
        draft = engine.build_manual_entry(
            entry_date,
            description,
            debit_account_id,
            credit_account_id,
            amount,
            entered_side=entered_side,
            source_transaction_id=source_transaction_id,
        )

        entry_id = self.db.add_journal_entries([draft])[0]
        logger.info(
            "journal_entry_posted",
            extra={"account_id": f"{draft.debit_account}/{draft.credit_account}", "entry_count": 1},
        )
        notify_safely(self.notifier, format_posting_message([draft]))
        return entry_id

    def get_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID, or None if not found."""
        return self.db.get_journal_entry(entry_id)

    def list_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[str] = None,
    ) -> list[JournalEntry]:
        """List entries ordered by date, then ID."""
        return self.db.list_journal_entries(
            start_date=start_date, end_date=end_date, account_id=account_id
        )

    def entries_for_transaction(self, transaction_id: str) -> list[JournalEntry]:
        return self.db.list_journal_entries(source_transaction_id=transaction_id)
