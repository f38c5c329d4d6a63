"""Shared pytest fixtures for ledgerguard tests."""

import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from ledgerguard.cli.commands.init_accounts import default_chart
from ledgerguard.config import LedgerSettings
from ledgerguard.database.factories import create_sqlite_database
from ledgerguard.domain.account import AccountService
from ledgerguard.domain.entities import (
    Classification,
    Currency,
    JournalEntryDraft,
    LegDirection,
    RecordType,
    TransactionLeg,
    TransactionStatus,
    TransactionType,
)
from ledgerguard.domain.errors import StoreError
from ledgerguard.domain.intake import SourceRecordService, TransactionService
from ledgerguard.domain.journal import JournalService
from ledgerguard.domain.notifications import LoggingNotificationSink
from ledgerguard.domain.posting import TransactionPostingService
from ledgerguard.domain.reconciliation import ReconciliationGuard
from ledgerguard.domain.reports import ReportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path, timeout=5)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    """Default settings with fallback rates for the non-USD currencies."""
    return LedgerSettings(fallback_rates={Currency.YER: Decimal("530"), Currency.SAR: Decimal("3.75")})


@pytest.fixture
def account_service(temp_db, settings):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db, settings)


@pytest.fixture
def chart(account_service, settings):
    """Seed the default chart of accounts plus a YER bank account."""
    for code, name, classification, is_group, parent, currency in default_chart(settings):
        account_service.create_account(
            account_id=code,
            name=name,
            classification=classification,
            is_group=is_group,
            parent_id=parent,
            currency=currency,
        )
    account_service.create_account(
        account_id="1004",
        name="Sanaa Bank YER",
        classification=Classification.ASSETS,
        parent_id="1000",
        currency=Currency.YER,
    )
    account_service.create_account(
        account_id="1500",
        name="Office Equipment",
        classification=Classification.ASSETS,
        parent_id="1000",
        currency=Currency.USD,
    )
    return {acc.id: acc for acc in account_service.list_accounts()}


@pytest.fixture
def notifier():
    return LoggingNotificationSink()


@pytest.fixture
def guard(temp_db, settings):
    return ReconciliationGuard(temp_db, settings)


@pytest.fixture
def journal_service(temp_db, settings, notifier):
    return JournalService(temp_db, settings, notifier=notifier)


@pytest.fixture
def posting_service(temp_db, settings, notifier):
    return TransactionPostingService(temp_db, settings, notifier=notifier)


@pytest.fixture
def report_service(temp_db, settings):
    return ReportService(temp_db, settings)


@pytest.fixture
def transaction_service(temp_db):
    return TransactionService(temp_db)


@pytest.fixture
def record_service(temp_db):
    return SourceRecordService(temp_db)


@pytest.fixture
def write_entry(temp_db):
    """Write a USD journal entry straight to the store, bypassing the guard."""

    def _write(debit, credit, amount, entry_date=date(2024, 1, 15), transaction_id=None, description=None):
        amount = Decimal(str(amount))
        draft = JournalEntryDraft(
            date=entry_date,
            description=description or f"Entry {debit}/{credit}",
            debit_account=debit,
            credit_account=credit,
            debit_amount=amount,
            credit_amount=amount,
            amount_usd=amount,
            source_transaction_id=transaction_id,
        )
        return temp_db.add_journal_entries([draft])[0]

    return _write


@pytest.fixture
def make_record(record_service, chart):
    """Create a Pending cash record for client 7 on the cash box."""

    def _make(amount_usd, client_id="7", account_id="1001", record_date=date(2024, 1, 15),
              record_type=RecordType.CASH):
        amount_usd = Decimal(str(amount_usd))
        return record_service.create_record(
            record_type=record_type,
            record_date=record_date,
            account_id=account_id,
            amount=amount_usd,
            currency=Currency.USD,
            amount_usd=amount_usd,
            client_id=client_id,
        )

    return _make


@pytest.fixture
def make_transaction(transaction_service, chart):
    """Create a Confirmed deposit; ``records`` are linked as inflow legs."""

    def _make(records=(), amount_usd=100, client_id="7", transaction_date=date(2024, 1, 15),
              fee_usd=0, expense_usd=0, commission_usd=0,
              transaction_type=TransactionType.DEPOSIT,
              direction=LegDirection.INFLOW, status=TransactionStatus.CONFIRMED):
        legs = [
            TransactionLeg(
                record_id=record_id,
                record_type=RecordType.CASH,
                direction=direction,
                amount_usd=Decimal(str(leg_amount)),
            )
            for record_id, leg_amount in records
        ]
        return transaction_service.create_transaction(
            transaction_date=transaction_date,
            transaction_type=transaction_type,
            amount=Decimal(str(amount_usd)),
            currency=Currency.USD,
            amount_usd=Decimal(str(amount_usd)),
            client_id=client_id,
            fee_usd=Decimal(str(fee_usd)),
            expense_usd=Decimal(str(expense_usd)),
            exchange_rate_commission_usd=Decimal(str(commission_usd)),
            bank_account_id="1002",
            crypto_wallet_id="1003",
            legs=legs,
            status=status,
        )

    return _make


class FailingStore:
    """Delegate to a real store but fail the named operations."""

    def __init__(self, db, *failing):
        self.db = db
        self.failing = set(failing)

    def __getattr__(self, name):
        if name in self.failing:
            def fail(*args, **kwargs):
                raise StoreError(f"Store operation '{name}' failed: database is locked")
            return fail
        return getattr(self.db, name)


@pytest.fixture
def failing_store(temp_db):
    """Build a store whose named operations raise StoreError."""

    def _make(*operations):
        return FailingStore(temp_db, *operations)

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
