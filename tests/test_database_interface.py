"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime, UTC
from decimal import Decimal

from ledgerguard.domain import entities
from ledgerguard.domain.entities import (
    Classification,
    Currency,
    JournalEntryDraft,
    LegDirection,
    RecordStatus,
    RecordType,
    TransactionStatus,
)
from ledgerguard.domain.errors import NotFoundError, RecordAlreadyUsedError, StoreError
from ledgerguard.domain.sequence import SequenceService


def _draft(debit="1001", credit="3001", amount="100", transaction_id=None):
    amount = Decimal(amount)
    return JournalEntryDraft(
        date=date(2024, 1, 15),
        description="Opening capital",
        debit_account=debit,
        credit_account=credit,
        debit_amount=amount,
        credit_amount=amount,
        amount_usd=amount,
        debit_account_name="Cash Box",
        credit_account_name="Owner Capital",
        source_transaction_id=transaction_id,
    )


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db):
        """Test that get_account returns a domain Account entity."""
        temp_db.create_account("1000", "Assets", Classification.ASSETS, is_group=True)
        temp_db.create_account(
            "1004", "Sanaa Bank YER", Classification.ASSETS, parent_id="1000", currency=Currency.YER
        )

        account = temp_db.get_account("1004")

        assert isinstance(account, entities.Account)
        assert account.classification == Classification.ASSETS
        assert account.currency == Currency.YER
        assert account.parent_id == "1000"
        assert account.is_group is False
        assert isinstance(account.created_at, datetime)

    def test_get_missing_account(self, temp_db):
        """Test that a missing account is None, not an error."""
        assert temp_db.get_account("9999") is None

    def test_list_accounts_ordered(self, temp_db):
        """Test that list_accounts orders by priority, then code."""
        temp_db.create_account("2000", "Liabilities", Classification.LIABILITIES, priority=1)
        temp_db.create_account("3000", "Equity", Classification.EQUITY)
        temp_db.create_account("1000", "Assets", Classification.ASSETS, priority=1)

        assert [acc.id for acc in temp_db.list_accounts()] == ["3000", "1000", "2000"]

    def test_update_missing_account(self, temp_db):
        """Test updating a missing account raises NotFoundError."""
        with pytest.raises(NotFoundError):
            temp_db.update_account("9999", name="Nothing")

    def test_add_journal_entries_returns_ids(self, temp_db, chart):
        """Test that entries are written in order and read back as domain models."""
        ids = temp_db.add_journal_entries([_draft(), _draft("1002", "4001", "5")])

        assert len(ids) == 2
        assert ids[0] < ids[1]
        entry = temp_db.get_journal_entry(ids[0])
        assert isinstance(entry, entities.JournalEntry)
        assert entry.amount_usd == Decimal("100")
        assert entry.debit_currency == Currency.USD
        assert entry.debit_rate == Decimal("1")
        assert entry.debit_account_name == "Cash Box"
        assert isinstance(entry.created_at, datetime)

    def test_content_hash_ignores_scale(self, temp_db, chart):
        """Test that stored amounts hash like the amounts that were written."""
        (entry_id,) = temp_db.add_journal_entries([_draft(amount="100.00")])

        entry = temp_db.get_journal_entry(entry_id)

        assert entry.content_hash == "2024-01-15|1001|3001|1E+2"

    def test_delete_journal_entries(self, temp_db, chart):
        """Test deleting entries by id."""
        ids = temp_db.add_journal_entries([_draft(), _draft(), _draft()])

        assert temp_db.delete_journal_entries(ids[1:]) == 2
        assert [e.id for e in temp_db.list_journal_entries()] == ids[:1]
        assert temp_db.delete_journal_entries([]) == 0

    def test_record_posting_marks_records_used(self, temp_db, make_record):
        """Test that entries and record status are written together."""
        r1 = make_record(100)

        ids = temp_db.record_posting([_draft(transaction_id="T00001")], used_record_ids=[r1])

        assert len(ids) == 1
        assert temp_db.get_source_record(r1).status == RecordStatus.USED
        assert temp_db.list_source_records(status=RecordStatus.USED)[0].id == r1

    def test_record_posting_refuses_used_records(self, temp_db, make_record):
        """Test that records already Used are not claimed a second time."""
        r1 = make_record(100)
        r2 = make_record(50)
        temp_db.record_posting([_draft(transaction_id="T00001")], used_record_ids=[r1])

        with pytest.raises(RecordAlreadyUsedError, match=r1):
            temp_db.record_posting([_draft(transaction_id="T00002")], used_record_ids=[r2, r1])

        assert temp_db.list_journal_entries(source_transaction_id="T00002") == []
        assert temp_db.get_source_record(r2).status == RecordStatus.PENDING

    def test_record_posting_rolls_back_on_failure(self, temp_db, make_record):
        """Test that a failing write leaves neither entries nor Used flags."""
        r1 = make_record(100)
        bad = JournalEntryDraft(
            date=date(2024, 1, 15),
            description=None,
            debit_account="1001",
            credit_account="3001",
            debit_amount=Decimal("1"),
            credit_amount=Decimal("1"),
            amount_usd=Decimal("1"),
        )

        with pytest.raises(StoreError):
            temp_db.record_posting([_draft(), bad], used_record_ids=[r1])

        assert temp_db.list_journal_entries() == []
        assert temp_db.get_source_record(r1).status == RecordStatus.PENDING

    def test_transaction_round_trip_with_legs(self, temp_db, make_record, make_transaction):
        """Test that transactions come back with their legs."""
        r1 = make_record(60)
        tx_id = make_transaction(records=[(r1, 60)], amount_usd=60, fee_usd="1.25")

        txn = temp_db.get_transaction(tx_id)

        assert isinstance(txn, entities.Transaction)
        assert txn.status == TransactionStatus.CONFIRMED
        assert txn.fee_usd == Decimal("1.25")
        (leg,) = txn.legs
        assert leg.record_id == r1
        assert leg.record_type == RecordType.CASH
        assert leg.direction == LegDirection.INFLOW
        assert leg.amount_usd == Decimal("60")

    def test_transactions_for_record(self, temp_db, make_record, make_transaction):
        """Test finding transactions by linked record and date."""
        r1 = make_record(60)
        t1 = make_transaction(records=[(r1, 60)], amount_usd=60)
        t2 = make_transaction(records=[(r1, 60)], amount_usd=60, transaction_date=date(2024, 1, 16))
        make_transaction()

        assert [t.id for t in temp_db.list_transactions_for_record(r1)] == [t1, t2]
        assert [t.id for t in temp_db.list_transactions_for_record(r1, on_date=date(2024, 1, 16))] == [t2]

    def test_update_missing_transaction(self, temp_db):
        """Test updating a missing transaction raises NotFoundError."""
        with pytest.raises(NotFoundError):
            temp_db.update_transaction_status("T00404", TransactionStatus.CONFIRMED)

    def test_latest_fx_rate(self, temp_db):
        """Test that the latest rate at or before a time is returned."""
        now = datetime(2024, 3, 1, tzinfo=UTC)
        temp_db.add_fx_rate(Currency.YER, Decimal("520"), Decimal("525"), datetime(2024, 2, 1, tzinfo=UTC))
        temp_db.add_fx_rate(Currency.YER, Decimal("530"), Decimal("535"), datetime(2024, 2, 20, tzinfo=UTC))
        temp_db.add_fx_rate(Currency.SAR, Decimal("3.75"), Decimal("3.76"), datetime(2024, 2, 25, tzinfo=UTC))

        rate = temp_db.latest_fx_rate(Currency.YER, now)

        assert isinstance(rate, entities.FxRate)
        assert rate.buy_rate == Decimal("530")
        assert temp_db.latest_fx_rate(Currency.YER, datetime(2024, 1, 1, tzinfo=UTC)) is None
        assert len(temp_db.list_fx_rates()) == 3


class TestSequenceService:
    def test_counters_are_independent(self, temp_db):
        sequence = SequenceService(temp_db)

        assert sequence.next_transaction_id() == "T00001"
        assert sequence.next_transaction_id() == "T00002"
        assert sequence.next_record_id("cash") == "C00001"
        assert sequence.next_record_id("usdt") == "U00001"
        assert sequence.next_record_id("cash") == "C00002"

    def test_counter_shared_between_connections(self, temp_db):
        from ledgerguard.database.factories import create_sqlite_database

        other = create_sqlite_database(temp_db.database_path, timeout=5)
        try:
            assert SequenceService(temp_db).next_value("transactions") == 1
            assert SequenceService(other).next_value("transactions") == 2
            assert SequenceService(temp_db).next_value("transactions") == 3
        finally:
            other.disconnect()

    def test_custom_width(self, temp_db):
        assert SequenceService(temp_db).next_id("batches", prefix="B", width=3) == "B001"
