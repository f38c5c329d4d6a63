"""Boundary validation for transactions and source records.

Producers (SMS ingestion, blockchain sync, manual forms) hand their data to
these services; required and optional fields are checked here once, so the
posting engine can rely on well-formed input.
"""

from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional, Sequence

from ledgerguard.database.base import Database
from ledgerguard.domain.entities import (
    Classification,
    Currency,
    RecordStatus,
    RecordType,
    SourceRecord,
    Transaction,
    TransactionLeg,
    TransactionStatus,
    TransactionType,
)
from ledgerguard.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_not_found,
    group_account_not_postable,
    record_not_found,
    transaction_not_found,
)
from ledgerguard.domain.sequence import SequenceService
from ledgerguard.logging_config import get_logger

logger = get_logger("intake")

ZERO = Decimal("0")


def _require_non_negative(value: Decimal, field_name: str) -> Decimal:
    if value is None:
        return ZERO
    if value < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return value


class SourceRecordService:
    """Service for client-submitted cash and USDT records."""

    def __init__(self, db: Database, sequence: Optional[SequenceService] = None):
        self.db = db
        self.sequence = sequence or SequenceService(db)

    def create_record(
        self,
        record_type: RecordType,
        record_date: date,
        account_id: str,
        amount: Decimal,
        currency: Currency,
        amount_usd: Decimal,
        client_id: Optional[str] = None,
    ) -> str:
        """Register a new Pending source record.

        Args:
            record_type: cash or usdt
            record_date: Date the money moved
            account_id: Leaf asset account the money moved through
            amount: Amount in ``currency``
            currency: Record currency
            amount_usd: USD equivalent
            client_id: Optional owning client

        Returns:
            Record ID (``C00001`` for cash, ``U00001`` for USDT)

        Raises:
            ValidationError: If an amount is not positive or the account is
                not a leaf asset account
            NotFoundError: If the account does not exist
        """
        if record_date is None:
            raise ValidationError("Record date is required")
        if amount is None or amount <= 0:
            raise ValidationError("Record amount must be positive")
        if amount_usd is None or amount_usd <= 0:
            raise ValidationError("Record USD amount must be positive")

        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.is_group:
            raise ValidationError(group_account_not_postable(account_id))
        if account.classification != Classification.ASSETS:
            raise ValidationError(f"Account {account_id} is not an asset account")

        record_id = self.sequence.next_record_id(RecordType(record_type).value)
        self.db.create_source_record(
            SourceRecord(
                id=record_id,
                record_type=RecordType(record_type),
                client_id=client_id,
                date=record_date,
                account_id=account_id,
                amount=amount,
                currency=Currency(currency),
                amount_usd=amount_usd,
                status=RecordStatus.PENDING,
                created_at=datetime.now(UTC),
            )
        )
        logger.info("source_record_created", extra={"record_id": record_id, "client_id": client_id})
        return record_id

    def get_record(self, record_id: str) -> Optional[SourceRecord]:
        return self.db.get_source_record(record_id)

    def list_records(
        self,
        client_id: Optional[str] = None,
        status: Optional[RecordStatus] = None,
    ) -> list[SourceRecord]:
        return self.db.list_source_records(client_id=client_id, status=status)

    def cancel_record(self, record_id: str) -> None:
        """Cancel a record that has not been consumed.

        Raises:
            NotFoundError: If the record does not exist
            ConflictError: If the record is already Used
        """
        record = self.db.get_source_record(record_id)
        if record is None:
            raise NotFoundError(record_not_found(record_id))
        if record.status == RecordStatus.USED:
            raise ConflictError(f"Source record {record_id} is already used")
        self.db.update_record_status([record_id], RecordStatus.CANCELLED)


class TransactionService:
    """Service for exchange transactions produced by intake collaborators."""

    def __init__(self, db: Database, sequence: Optional[SequenceService] = None):
        self.db = db
        self.sequence = sequence or SequenceService(db)

    def _validate_legs(
        self, legs: Sequence[TransactionLeg], client_id: Optional[str]
    ) -> tuple[TransactionLeg, ...]:
        seen: set[str] = set()
        for leg in legs:
            if leg.record_id in seen:
                raise ValidationError(f"Source record {leg.record_id} is linked twice")
            seen.add(leg.record_id)
            if leg.amount_usd is None or leg.amount_usd <= 0:
                raise ValidationError(f"Leg amount for record {leg.record_id} must be positive")

            record = self.db.get_source_record(leg.record_id)
            if record is None:
                raise NotFoundError(record_not_found(leg.record_id))
            if record.record_type != leg.record_type:
                raise ValidationError(
                    f"Source record {leg.record_id} is a {record.record_type.value} record, "
                    f"not {leg.record_type.value}"
                )
            if record.status == RecordStatus.CANCELLED:
                raise ValidationError(f"Source record {leg.record_id} is cancelled")
            if client_id and record.client_id and record.client_id != client_id:
                raise ValidationError(
                    f"Source record {leg.record_id} belongs to client {record.client_id}"
                )
        return tuple(legs)

    def _validate_account(self, account_id: Optional[str]) -> None:
        if account_id is None:
            return
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.is_group:
            raise ValidationError(group_account_not_postable(account_id))

    def create_transaction(
        self,
        transaction_date: date,
        transaction_type: TransactionType,
        amount: Decimal,
        currency: Currency,
        amount_usd: Decimal,
        client_id: Optional[str] = None,
        fee_usd: Decimal = ZERO,
        expense_usd: Decimal = ZERO,
        exchange_rate_commission_usd: Decimal = ZERO,
        bank_account_id: Optional[str] = None,
        crypto_wallet_id: Optional[str] = None,
        legs: Sequence[TransactionLeg] = (),
        status: TransactionStatus = TransactionStatus.PENDING,
    ) -> str:
        """Validate and store a transaction.

        Returns:
            Transaction ID (``T00001`` style)

        Raises:
            ValidationError: If a required field is missing or an amount is
                out of range
            NotFoundError: If a referenced account or record does not exist
        """
        if transaction_date is None:
            raise ValidationError("Transaction date is required")
        if amount is None or amount <= 0:
            raise ValidationError("Transaction amount must be positive")
        if amount_usd is None or amount_usd < 0:
            raise ValidationError("Transaction USD amount cannot be negative")
        fee_usd = _require_non_negative(fee_usd, "Fee")
        expense_usd = _require_non_negative(expense_usd, "Expense")
        commission = _require_non_negative(
            exchange_rate_commission_usd, "Exchange rate commission"
        )
        if legs and not client_id:
            raise ValidationError("Transactions with linked records require a client")

        self._validate_account(bank_account_id)
        self._validate_account(crypto_wallet_id)
        checked_legs = self._validate_legs(legs, client_id)

        transaction_id = self.sequence.next_transaction_id()
        self.db.create_transaction(
            Transaction(
                id=transaction_id,
                date=transaction_date,
                client_id=client_id,
                type=TransactionType(transaction_type),
                status=TransactionStatus(status),
                amount=amount,
                currency=Currency(currency),
                amount_usd=amount_usd,
                fee_usd=fee_usd,
                expense_usd=expense_usd,
                bank_account_id=bank_account_id,
                crypto_wallet_id=crypto_wallet_id,
                created_at=datetime.now(UTC),
                exchange_rate_commission_usd=commission,
                legs=checked_legs,
            )
        )
        logger.info(
            "transaction_created",
            extra={"transaction_id": transaction_id, "client_id": client_id, "status": TransactionStatus(status).value},
        )
        return transaction_id

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        on_date: Optional[date] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[Transaction]:
        return self.db.list_transactions(on_date=on_date, status=status)

    def confirm_transaction(self, transaction_id: str) -> None:
        """Move a Pending transaction to Confirmed.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If it is not Pending
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if transaction.status != TransactionStatus.PENDING:
            raise ValidationError(
                f"Transaction {transaction_id} is {transaction.status.value}, not Pending"
            )
        self.db.update_transaction_status(transaction_id, TransactionStatus.CONFIRMED)

    def cancel_transaction(self, transaction_id: str) -> None:
        """Cancel a transaction that has no journal entries.

        Raises:
            NotFoundError: If the transaction does not exist
            DependencyError: If entries were already posted for it
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        posted = self.db.list_journal_entries(source_transaction_id=transaction_id)
        if posted:
            raise DependencyError(
                f"Cannot cancel transaction {transaction_id}: "
                f"{len(posted)} journal entr{'ies' if len(posted) != 1 else 'y'} posted"
            )
        self.db.update_transaction_status(transaction_id, TransactionStatus.CANCELLED)
