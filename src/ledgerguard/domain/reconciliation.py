"""Reconciliation guard: duplicate and balance safeguards around postings.

Every check here is a read-only verification returning a structured result,
except ``cleanup_duplicate_journal_entries``, which is an explicit repair
action and never runs as part of normal posting. Store failures always yield
a not-clean result; an unreadable ledger is never reported as verified.

Callers own the decision: the posting workflow turns a not-clean pre-check
into an aborted write.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Sequence, Union

from ledgerguard.config import LedgerSettings
from ledgerguard.database.base import Database
from ledgerguard.domain.balance import ClientBalanceService
from ledgerguard.domain.entities import (
    JournalEntry,
    JournalEntryDraft,
    LegDirection,
    RecordStatus,
    RecordType,
    SourceRecord,
    Transaction,
)
from ledgerguard.domain.errors import (
    DomainError,
    NotFoundError,
    StoreError,
    entries_not_balanced,
    existing_entries_for_transaction,
    record_not_found,
)
from ledgerguard.logging_config import get_logger

logger = get_logger("reconciliation")

ZERO = Decimal("0")


class ReconciliationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    DUPLICATES_FOUND = "duplicates_found"
    UNBALANCED = "unbalanced"
    ERROR = "error"


class RecordRef(NamedTuple):
    """Pointer to a client-submitted source record."""

    record_id: str
    record_type: RecordType


@dataclass(frozen=True)
class ExistingEntriesCheck:
    is_clean: bool
    existing_entries: tuple[JournalEntry, ...] = ()
    error_message: Optional[str] = None


@dataclass(frozen=True)
class UsedRecord:
    record_id: str
    status: RecordStatus
    linked_transactions: tuple[str, ...]


@dataclass(frozen=True)
class RecordUsageCheck:
    all_clean: bool
    already_used_records: tuple[UsedRecord, ...] = ()
    error_message: Optional[str] = None


@dataclass(frozen=True)
class RecordConflict:
    record_id: str
    linked_transaction_ids: tuple[str, ...]


@dataclass(frozen=True)
class DuplicateProcessingCheck:
    is_clean: bool
    conflicts: tuple[RecordConflict, ...] = ()
    error_message: Optional[str] = None


@dataclass(frozen=True)
class BalanceCheck:
    is_balanced: bool
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    error_message: Optional[str] = None


@dataclass(frozen=True)
class ReconciliationReport:
    transaction_id: str
    status: ReconciliationStatus
    journal_entries_created: int
    entries_are_balanced: bool
    total_debits: Decimal
    total_credits: Decimal
    duplicate_count: int
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class CleanupResult:
    duplicates_removed: int
    entries_remaining: int


@dataclass(frozen=True)
class RecordJourney:
    """A source record with every transaction and entry derived from it."""

    record: SourceRecord
    linked_transactions: tuple[Transaction, ...]
    journal_entries: tuple[JournalEntry, ...]
    balance_impact: Decimal

    @property
    def processed_count(self) -> int:
        return len(self.linked_transactions)

    @property
    def is_fully_processed(self) -> bool:
        return self.record.status == RecordStatus.USED and bool(self.linked_transactions)


def _error_report(transaction_id: str, warning: str) -> ReconciliationReport:
    return ReconciliationReport(
        transaction_id=transaction_id,
        status=ReconciliationStatus.ERROR,
        journal_entries_created=0,
        entries_are_balanced=False,
        total_debits=ZERO,
        total_credits=ZERO,
        duplicate_count=0,
        warnings=(warning,),
    )


def _calendar_day(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


class ReconciliationGuard:
    """Pre- and post-posting integrity checks over the journal."""

    def __init__(
        self,
        db: Database,
        settings: Optional[LedgerSettings] = None,
        client_balances: Optional[ClientBalanceService] = None,
    ):
        self.db = db
        self.settings = settings or LedgerSettings()
        self.client_balances = client_balances or ClientBalanceService(db, self.settings)

    def verify_no_existing_entries(self, transaction_id: str) -> ExistingEntriesCheck:
        """Check that no journal entries were posted for a transaction yet."""
        try:
            existing = self.db.list_journal_entries(source_transaction_id=transaction_id)
        except StoreError as exc:
            logger.error(
                "verify_existing_entries_failed",
                extra={"transaction_id": transaction_id, "error": str(exc)},
            )
            return ExistingEntriesCheck(
                is_clean=False, error_message=f"Error during verification: {exc}"
            )

        if existing:
            logger.warning(
                "existing_entries_found",
                extra={"transaction_id": transaction_id, "entry_count": len(existing)},
            )
            return ExistingEntriesCheck(
                is_clean=False,
                existing_entries=tuple(existing),
                error_message=existing_entries_for_transaction(transaction_id, len(existing)),
            )
        return ExistingEntriesCheck(is_clean=True)

    def verify_records_not_already_used(
        self, records: Iterable[RecordRef]
    ) -> RecordUsageCheck:
        """Report records already marked Used, with the transactions that consumed them."""
        already_used: list[UsedRecord] = []
        try:
            for record_id, record_type in records:
                record = self.db.get_source_record(record_id)
                if record is None or record.status != RecordStatus.USED:
                    continue
                if record.record_type != record_type:
                    logger.warning(
                        "record_type_mismatch",
                        extra={"record_id": record_id, "status": record.record_type.value},
                    )
                linked = self.db.list_transactions_for_record(record_id)
                already_used.append(
                    UsedRecord(
                        record_id=record_id,
                        status=record.status,
                        linked_transactions=tuple(txn.id for txn in linked),
                    )
                )
        except StoreError as exc:
            logger.error("verify_record_status_failed", extra={"error": str(exc)})
            return RecordUsageCheck(
                all_clean=False, error_message=f"Error during verification: {exc}"
            )

        for used in already_used:
            logger.warning(
                "record_already_used",
                extra={"record_id": used.record_id, "status": ",".join(used.linked_transactions)},
            )
        return RecordUsageCheck(
            all_clean=not already_used, already_used_records=tuple(already_used)
        )

    def verify_no_duplicate_record_processing(
        self, record_ids: Sequence[str], transaction_date: Union[date, datetime]
    ) -> DuplicateProcessingCheck:
        """Detect a record referenced by more than one transaction on the same day.

        Status flags alone can race; two transactions dated the same calendar
        day that share a record are a collision regardless of record status.
        """
        day = _calendar_day(transaction_date)
        conflicts: list[RecordConflict] = []
        try:
            for record_id in record_ids:
                linked = self.db.list_transactions_for_record(record_id, on_date=day)
                if len(linked) > 1:
                    conflicts.append(
                        RecordConflict(
                            record_id=record_id,
                            linked_transaction_ids=tuple(sorted(txn.id for txn in linked)),
                        )
                    )
        except StoreError as exc:
            logger.error("verify_duplicate_processing_failed", extra={"error": str(exc)})
            return DuplicateProcessingCheck(
                is_clean=False, error_message=f"Error during verification: {exc}"
            )

        for conflict in conflicts:
            logger.warning(
                "duplicate_record_processing",
                extra={
                    "record_id": conflict.record_id,
                    "status": ",".join(conflict.linked_transaction_ids),
                },
            )
        return DuplicateProcessingCheck(is_clean=not conflicts, conflicts=tuple(conflicts))

    def validate_entries_balanced(
        self, entries: Sequence[Union[JournalEntryDraft, JournalEntry]]
    ) -> BalanceCheck:
        """Check that debit and credit legs agree in USD terms within tolerance."""
        total_debits = sum((entry.debit_usd for entry in entries), ZERO)
        total_credits = sum((entry.credit_usd for entry in entries), ZERO)
        difference = abs(total_debits - total_credits)
        is_balanced = difference < self.settings.balance_tolerance
        return BalanceCheck(
            is_balanced=is_balanced,
            total_debits=total_debits,
            total_credits=total_credits,
            difference=difference,
            error_message=None if is_balanced else entries_not_balanced(total_debits, total_credits),
        )

    def reconcile_transaction_posting(
        self, transaction_id: str, client_id: Optional[str] = None
    ) -> ReconciliationReport:
        """Re-read a posted transaction's entries and report on their integrity.

        Reports duplicates and imbalance; never repairs them.
        """
        try:
            entries = self.db.list_journal_entries(source_transaction_id=transaction_id)
        except StoreError as exc:
            logger.error(
                "reconciliation_failed",
                extra={"transaction_id": transaction_id, "error": str(exc)},
            )
            return _error_report(transaction_id, f"Reconciliation error: {exc}")

        if not entries:
            return _error_report(
                transaction_id, f"No journal entries found for transaction {transaction_id}"
            )

        hash_counts: dict[str, int] = defaultdict(int)
        for entry in entries:
            hash_counts[entry.content_hash] += 1
        duplicate_count = sum(count - 1 for count in hash_counts.values() if count > 1)

        balance = self.validate_entries_balanced(entries)

        warnings: list[str] = []
        if not balance.is_balanced:
            warnings.append(balance.error_message)
        if duplicate_count:
            warnings.append(f"Found {duplicate_count} duplicate entr{'ies' if duplicate_count != 1 else 'y'}")

        if client_id is not None:
            try:
                client_balance = self.client_balances.get_client_balance(client_id)
            except (DomainError, StoreError) as exc:
                warnings.append(f"Client balance unavailable: {exc}")
            else:
                if not client_balance.is_valid:
                    warnings.append(
                        f"Client balance validation failed: {', '.join(client_balance.issues)}"
                    )

        if duplicate_count:
            status = ReconciliationStatus.DUPLICATES_FOUND
        elif not balance.is_balanced:
            status = ReconciliationStatus.UNBALANCED
        else:
            status = ReconciliationStatus.VERIFIED

        log = logger.info if status == ReconciliationStatus.VERIFIED else logger.warning
        log(
            "transaction_reconciled",
            extra={
                "transaction_id": transaction_id,
                "status": status.value,
                "entry_count": len(entries),
                "duplicates": duplicate_count,
            },
        )
        return ReconciliationReport(
            transaction_id=transaction_id,
            status=status,
            journal_entries_created=len(entries),
            entries_are_balanced=balance.is_balanced,
            total_debits=balance.total_debits,
            total_credits=balance.total_credits,
            duplicate_count=duplicate_count,
            warnings=tuple(warnings),
        )

    def cleanup_duplicate_journal_entries(self, transaction_id: str) -> CleanupResult:
        """Delete exact-duplicate entries of a transaction, keeping the first written.

        Operator-invoked repair. Running it twice is a no-op the second time.

        Raises:
            StoreError: If the journal cannot be read or the deletion fails
        """
        entries = sorted(
            self.db.list_journal_entries(source_transaction_id=transaction_id),
            key=lambda entry: entry.id,
        )
        kept: dict[str, JournalEntry] = {}
        to_delete: list[int] = []
        for entry in entries:
            if entry.content_hash in kept:
                to_delete.append(entry.id)
            else:
                kept[entry.content_hash] = entry

        removed = self.db.delete_journal_entries(to_delete) if to_delete else 0
        if removed:
            logger.warning(
                "duplicate_entries_removed",
                extra={"transaction_id": transaction_id, "duplicates": removed},
            )
        return CleanupResult(duplicates_removed=removed, entries_remaining=len(kept))

    def audit_duplicate_record_usage(self) -> tuple[RecordConflict, ...]:
        """Find records referenced by more than one transaction on any date.

        Raises:
            StoreError: If transactions cannot be read
        """
        usage: dict[str, set[str]] = defaultdict(set)
        for txn in self.db.list_transactions():
            for record_id in txn.record_ids:
                usage[record_id].add(txn.id)
        return tuple(
            RecordConflict(record_id=record_id, linked_transaction_ids=tuple(sorted(txn_ids)))
            for record_id, txn_ids in sorted(usage.items())
            if len(txn_ids) > 1
        )

    def record_journey(self, record_id: str) -> RecordJourney:
        """Trace a source record through the transactions and entries that used it.

        The balance impact is the net inflow (inflow legs minus outflow legs)
        of every linked transaction.

        Raises:
            NotFoundError: If the record does not exist
            StoreError: If the store cannot be read
        """
        record = self.db.get_source_record(record_id)
        if record is None:
            raise NotFoundError(record_not_found(record_id))

        linked = tuple(self.db.list_transactions_for_record(record_id))
        entries: list[JournalEntry] = []
        impact = ZERO
        for txn in linked:
            entries.extend(self.db.list_journal_entries(source_transaction_id=txn.id))
            for leg in txn.legs:
                if leg.direction == LegDirection.INFLOW:
                    impact += leg.amount_usd
                else:
                    impact -= leg.amount_usd

        return RecordJourney(
            record=record,
            linked_transactions=linked,
            journal_entries=tuple(entries),
            balance_impact=impact,
        )
