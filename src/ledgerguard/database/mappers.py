"""Mapper functions to convert between domain entities and SQLAlchemy models.

Enum-valued columns are stored as their string values; this layer is the only
place that converts them back.
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

from ledgerguard.domain import entities as domain
from ledgerguard.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    Transaction as ORMTransaction,
    TransactionLeg as ORMTransactionLeg,
    SourceRecord as ORMSourceRecord,
    FxRate as ORMFxRate,
)


def _decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _utc(value: datetime) -> datetime:
    # DateTime columns hold naive UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _currency(value: Optional[str]) -> Optional[domain.Currency]:
    return domain.Currency(value) if value else None


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        classification=domain.Classification(orm_account.classification),
        is_group=bool(orm_account.is_group),
        parent_id=orm_account.parent_id,
        currency=_currency(orm_account.currency),
        priority=orm_account.priority or 0,
        created_at=orm_account.created_at,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model to domain JournalEntry entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        date=orm_entry.date,
        description=orm_entry.description,
        debit_account=orm_entry.debit_account,
        credit_account=orm_entry.credit_account,
        debit_amount=_decimal(orm_entry.debit_amount),
        credit_amount=_decimal(orm_entry.credit_amount),
        amount_usd=_decimal(orm_entry.amount_usd),
        debit_currency=domain.Currency(orm_entry.debit_currency),
        credit_currency=domain.Currency(orm_entry.credit_currency),
        debit_rate=_decimal(orm_entry.debit_rate),
        credit_rate=_decimal(orm_entry.credit_rate),
        debit_account_name=orm_entry.debit_account_name or "",
        credit_account_name=orm_entry.credit_account_name or "",
        source_transaction_id=orm_entry.source_transaction_id,
        created_at=orm_entry.created_at,
    )


def draft_to_orm(draft: domain.JournalEntryDraft) -> ORMJournalEntry:
    """Build an unsaved SQLAlchemy JournalEntry from a draft."""
    return ORMJournalEntry(
        date=draft.date,
        description=draft.description,
        debit_account=draft.debit_account,
        credit_account=draft.credit_account,
        debit_amount=draft.debit_amount,
        debit_currency=draft.debit_currency.value,
        debit_rate=draft.debit_rate,
        credit_amount=draft.credit_amount,
        credit_currency=draft.credit_currency.value,
        credit_rate=draft.credit_rate,
        amount_usd=draft.amount_usd,
        debit_account_name=draft.debit_account_name,
        credit_account_name=draft.credit_account_name,
        source_transaction_id=draft.source_transaction_id,
    )


def leg_to_domain(orm_leg: ORMTransactionLeg) -> domain.TransactionLeg:
    """Convert SQLAlchemy TransactionLeg model to domain TransactionLeg."""
    return domain.TransactionLeg(
        record_id=orm_leg.record_id,
        record_type=domain.RecordType(orm_leg.record_type),
        direction=domain.LegDirection(orm_leg.direction),
        amount_usd=_decimal(orm_leg.amount_usd),
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        date=orm_transaction.date,
        client_id=orm_transaction.client_id,
        type=domain.TransactionType(orm_transaction.type),
        status=domain.TransactionStatus(orm_transaction.status),
        amount=_decimal(orm_transaction.amount),
        currency=domain.Currency(orm_transaction.currency),
        amount_usd=_decimal(orm_transaction.amount_usd),
        fee_usd=_decimal(orm_transaction.fee_usd),
        expense_usd=_decimal(orm_transaction.expense_usd),
        exchange_rate_commission_usd=_decimal(orm_transaction.exchange_rate_commission_usd),
        bank_account_id=orm_transaction.bank_account_id,
        crypto_wallet_id=orm_transaction.crypto_wallet_id,
        created_at=orm_transaction.created_at,
        legs=tuple(leg_to_domain(leg) for leg in orm_transaction.legs),
    )


def transaction_to_orm(transaction: domain.Transaction) -> ORMTransaction:
    """Build an unsaved SQLAlchemy Transaction (with legs) from a domain entity."""
    return ORMTransaction(
        id=transaction.id,
        date=transaction.date,
        client_id=transaction.client_id,
        type=transaction.type.value,
        status=transaction.status.value,
        amount=transaction.amount,
        currency=transaction.currency.value,
        amount_usd=transaction.amount_usd,
        fee_usd=transaction.fee_usd,
        expense_usd=transaction.expense_usd,
        exchange_rate_commission_usd=transaction.exchange_rate_commission_usd,
        bank_account_id=transaction.bank_account_id,
        crypto_wallet_id=transaction.crypto_wallet_id,
        created_at=transaction.created_at,
        legs=[
            ORMTransactionLeg(
                record_id=leg.record_id,
                record_type=leg.record_type.value,
                direction=leg.direction.value,
                amount_usd=leg.amount_usd,
            )
            for leg in transaction.legs
        ],
    )


def source_record_to_domain(orm_record: ORMSourceRecord) -> domain.SourceRecord:
    """Convert SQLAlchemy SourceRecord model to domain SourceRecord entity."""
    return domain.SourceRecord(
        id=orm_record.id,
        record_type=domain.RecordType(orm_record.record_type),
        client_id=orm_record.client_id,
        date=orm_record.date,
        account_id=orm_record.account_id,
        amount=_decimal(orm_record.amount),
        currency=domain.Currency(orm_record.currency),
        amount_usd=_decimal(orm_record.amount_usd),
        status=domain.RecordStatus(orm_record.status),
        created_at=orm_record.created_at,
    )


def fx_rate_to_domain(orm_rate: ORMFxRate) -> domain.FxRate:
    """Convert SQLAlchemy FxRate model to domain FxRate entity."""
    return domain.FxRate(
        id=orm_rate.id,
        currency=domain.Currency(orm_rate.currency),
        buy_rate=_decimal(orm_rate.buy_rate),
        sell_rate=_decimal(orm_rate.sell_rate),
        recorded_at=_utc(orm_rate.recorded_at),
    )
