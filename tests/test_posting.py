"""Tests for the auto-posting engine and the transaction posting workflow."""

from datetime import date, datetime, UTC
from decimal import Decimal

import pytest

from ledgerguard.config import LedgerSettings
from ledgerguard.domain.account import AccountService
from ledgerguard.domain.entities import (
    Currency,
    EntrySide,
    JournalEntryDraft,
    LegDirection,
    RecordStatus,
    RecordType,
    Transaction,
    TransactionLeg,
    TransactionStatus,
    TransactionType,
)
from ledgerguard.domain.errors import (
    DuplicatePostingError,
    DuplicateRecordUsageError,
    NotFoundError,
    RateUnavailableError,
    RecordAlreadyUsedError,
    StoreError,
    UnbalancedEntryError,
    ValidationError,
)
from ledgerguard.domain.fx import StoreFxRateProvider
from ledgerguard.domain.notifications import LoggingNotificationSink, notify_safely
from ledgerguard.domain.posting import AutoPostingEngine, TransactionPostingService
from ledgerguard.domain.reconciliation import ReconciliationGuard, ReconciliationStatus

DAY = date(2024, 1, 15)


def make_txn(
    transaction_type=TransactionType.DEPOSIT,
    fee="0",
    expense="0",
    commission="0",
    bank="1002",
    wallet="1003",
    client_id=None,
    legs=(),
):
    return Transaction(
        id="T00001",
        date=DAY,
        client_id=client_id,
        type=transaction_type,
        status=TransactionStatus.CONFIRMED,
        amount=Decimal("100"),
        currency=Currency.USD,
        amount_usd=Decimal("100"),
        fee_usd=Decimal(fee),
        expense_usd=Decimal(expense),
        bank_account_id=bank,
        crypto_wallet_id=wallet,
        created_at=datetime(2024, 1, 15, tzinfo=UTC),
        exchange_rate_commission_usd=Decimal(commission),
        legs=tuple(legs),
    )


@pytest.fixture
def engine(account_service, settings, chart):
    return AutoPostingEngine(account_service, settings)


class TestFeeEntries:
    def test_deposit_fee_and_expense(self, engine):
        drafts = engine.build_fee_entries(make_txn(fee="5", expense="2"))

        assert [(d.debit_account, d.credit_account, d.amount_usd) for d in drafts] == [
            ("1002", "4001", Decimal("5")),
            ("5001", "1003", Decimal("2")),
        ]
        assert drafts[0].description == "Fee income from Tx #T00001"
        assert drafts[1].description == "Expense from Tx #T00001"
        assert all(d.source_transaction_id == "T00001" for d in drafts)

    def test_withdraw_swaps_operating_account(self, engine):
        drafts = engine.build_fee_entries(
            make_txn(transaction_type=TransactionType.WITHDRAW, fee="5", expense="2")
        )

        assert [(d.debit_account, d.credit_account) for d in drafts] == [
            ("1003", "4001"),
            ("5001", "1002"),
        ]

    def test_commission_posts_to_commission_income(self, engine):
        (draft,) = engine.build_fee_entries(make_txn(commission="1.50"))

        assert (draft.debit_account, draft.credit_account) == ("1002", "4002")
        assert draft.amount_usd == Decimal("1.50")
        assert draft.description == "Exchange rate commission from Tx #T00001"

    def test_zero_amounts_post_nothing(self, engine):
        assert engine.build_fee_entries(make_txn()) == []

    def test_expense_without_fee(self, engine):
        (draft,) = engine.build_fee_entries(make_txn(expense="2"))

        assert (draft.debit_account, draft.credit_account) == ("5001", "1003")

    def test_missing_operating_account(self, engine):
        with pytest.raises(ValidationError, match="operating asset"):
            engine.build_fee_entries(make_txn(fee="5", bank=None))

    def test_missing_account_not_needed_without_amount(self, engine):
        drafts = engine.build_fee_entries(make_txn(fee="5", wallet=None))

        assert len(drafts) == 1

    def test_unknown_account(self, engine):
        with pytest.raises(NotFoundError):
            engine.build_fee_entries(make_txn(fee="5", bank="1999"))

    def test_group_account_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.build_fee_entries(make_txn(fee="5", bank="1000"))

    def test_non_usd_account_amount(self, engine):
        (draft,) = engine.build_fee_entries(make_txn(fee="10", bank="1004"))

        assert draft.debit_currency == Currency.YER
        assert draft.debit_rate == Decimal("530")
        assert draft.debit_amount == Decimal("5300")
        assert draft.credit_amount == Decimal("10")
        assert draft.debit_usd == draft.credit_usd

    def test_missing_rate_refuses_to_post(self, temp_db, chart):
        accounts = AccountService(temp_db, LedgerSettings())
        engine = AutoPostingEngine(accounts, LedgerSettings())

        with pytest.raises(RateUnavailableError):
            engine.build_fee_entries(make_txn(fee="10", bank="1004"))


class TestPrincipalEntries:
    def test_inflow_credits_client(self, engine, account_service, make_record):
        r1 = make_record(60)
        r2 = make_record(40)
        account_service.ensure_client_account("7")
        txn = make_txn(
            client_id="7",
            legs=[
                TransactionLeg(r1, RecordType.CASH, LegDirection.INFLOW, Decimal("60")),
                TransactionLeg(r2, RecordType.CASH, LegDirection.INFLOW, Decimal("40")),
            ],
        )

        (draft,) = engine.build_principal_entries(txn)

        assert (draft.debit_account, draft.credit_account) == ("1001", "60007")
        assert draft.amount_usd == Decimal("100")
        assert draft.description == "Deposit received for Tx #T00001"

    def test_outflow_debits_client(self, engine, account_service, make_record):
        r1 = make_record(80, account_id="1002")
        account_service.ensure_client_account("7")
        txn = make_txn(
            transaction_type=TransactionType.WITHDRAW,
            client_id="7",
            legs=[TransactionLeg(r1, RecordType.CASH, LegDirection.OUTFLOW, Decimal("80"))],
        )

        (draft,) = engine.build_principal_entries(txn)

        assert (draft.debit_account, draft.credit_account) == ("60007", "1002")
        assert draft.description == "Withdraw paid out for Tx #T00001"

    def test_legs_on_different_accounts(self, engine, account_service, make_record):
        r1 = make_record(60)
        r2 = make_record(40, account_id="1002")
        account_service.ensure_client_account("7")
        txn = make_txn(
            client_id="7",
            legs=[
                TransactionLeg(r1, RecordType.CASH, LegDirection.INFLOW, Decimal("60")),
                TransactionLeg(r2, RecordType.CASH, LegDirection.INFLOW, Decimal("40")),
            ],
        )

        drafts = engine.build_principal_entries(txn)

        assert sorted((d.debit_account, d.amount_usd) for d in drafts) == [
            ("1001", Decimal("60")),
            ("1002", Decimal("40")),
        ]

    def test_no_legs(self, engine):
        assert engine.build_principal_entries(make_txn(client_id="7")) == []

    def test_legs_require_client(self, engine, make_record):
        r1 = make_record(60)
        txn = make_txn(legs=[TransactionLeg(r1, RecordType.CASH, LegDirection.INFLOW, Decimal("60"))])

        with pytest.raises(ValidationError):
            engine.build_principal_entries(txn)


class TestManualEntry:
    def test_usd_entry(self, engine):
        draft = engine.build_manual_entry(DAY, "Capital", "1001", "3001", Decimal("250"))

        assert draft.amount_usd == Decimal("250")
        assert draft.debit_amount == draft.credit_amount == Decimal("250")
        assert draft.debit_account_name == "Cash Box"

    def test_foreign_debit_side(self, engine):
        draft = engine.build_manual_entry(DAY, "Buy YER", "1004", "1001", Decimal("53000"))

        assert draft.amount_usd == Decimal("100.00")
        assert draft.debit_amount == Decimal("53000")
        assert draft.debit_rate == Decimal("530")
        assert draft.credit_amount == Decimal("100.00")

    def test_foreign_credit_side(self, engine):
        draft = engine.build_manual_entry(
            DAY, "Sell YER", "1001", "1004", Decimal("26500"), entered_side=EntrySide.CREDIT
        )

        assert draft.amount_usd == Decimal("50.00")
        assert draft.debit_amount == Decimal("50.00")
        assert draft.credit_amount == Decimal("26500")

    def test_usd_amount_rounded_to_cents(self, engine):
        draft = engine.build_manual_entry(DAY, "Odd", "1004", "1001", Decimal("1000"))

        assert draft.amount_usd == Decimal("1.89")

    @pytest.mark.parametrize(
        "debit,credit,amount,description",
        [
            ("1001", "1001", "10", "Same"),
            ("1001", "3001", "0", "Zero"),
            ("1001", "3001", "-5", "Negative"),
            ("1001", "3001", "10", "  "),
            ("1000", "3001", "10", "Group"),
        ],
    )
    def test_rejects_bad_input(self, engine, debit, credit, amount, description):
        with pytest.raises(ValidationError):
            engine.build_manual_entry(DAY, description, debit, credit, Decimal(amount))

    def test_dust_amount(self, engine):
        with pytest.raises(ValidationError, match="less than one cent"):
            engine.build_manual_entry(DAY, "Dust", "1004", "1001", Decimal("1"))


class FailingNotifier:
    def __init__(self):
        self.calls = 0

    def send(self, message):
        self.calls += 1
        raise RuntimeError("chat service unavailable")


class TestLoggingNotificationSink:
    def test_keeps_only_recent_messages(self):
        sink = LoggingNotificationSink(max_kept=3)

        for n in range(5):
            notify_safely(sink, f"Journal entries posted: {n}")

        assert list(sink.sent) == [f"Journal entries posted: {n}" for n in (2, 3, 4)]

    def test_default_cap(self):
        sink = LoggingNotificationSink()

        for n in range(250):
            sink.send(str(n))

        assert len(sink.sent) == 100
        assert sink.sent[-1] == "249"


class TestPostTransaction:
    def test_posts_principal_and_fees(self, posting_service, temp_db, notifier, make_record, make_transaction):
        r1 = make_record(100)
        tx_id = make_transaction(records=[(r1, 100)], fee_usd=5, expense_usd=2)

        result = posting_service.post_transaction(tx_id)

        assert len(result.entry_ids) == 3
        entries = temp_db.list_journal_entries(source_transaction_id=tx_id)
        assert sorted((e.debit_account, e.credit_account, e.amount_usd) for e in entries) == [
            ("1001", "60007", Decimal("100")),
            ("1002", "4001", Decimal("5")),
            ("5001", "1003", Decimal("2")),
        ]
        assert result.report.status == ReconciliationStatus.VERIFIED
        assert notifier.sent[0].startswith("Journal entries posted: 3")

    def test_records_marked_used(self, posting_service, temp_db, make_record, make_transaction):
        r1 = make_record(60)
        r2 = make_record(40)
        tx_id = make_transaction(records=[(r1, 60), (r2, 40)])

        posting_service.post_transaction(tx_id)

        assert temp_db.get_source_record(r1).status == RecordStatus.USED
        assert temp_db.get_source_record(r2).status == RecordStatus.USED

    def test_creates_client_account(self, posting_service, temp_db, make_record, make_transaction):
        tx_id = make_transaction(records=[(make_record(50), 50)], amount_usd=50)

        posting_service.post_transaction(tx_id)

        account = temp_db.get_account("60007")
        assert account is not None
        assert account.parent_id == "6000"

    def test_unknown_transaction(self, posting_service, chart):
        with pytest.raises(NotFoundError):
            posting_service.post_transaction("T99999")

    def test_pending_transaction_rejected(self, posting_service, temp_db, make_transaction):
        tx_id = make_transaction(fee_usd=5, status=TransactionStatus.PENDING)

        with pytest.raises(ValidationError, match="Confirmed"):
            posting_service.post_transaction(tx_id)
        assert temp_db.list_journal_entries() == []

    def test_second_posting_rejected(self, posting_service, temp_db, make_transaction):
        tx_id = make_transaction(fee_usd=5, expense_usd=2)
        posting_service.post_transaction(tx_id)

        with pytest.raises(DuplicatePostingError):
            posting_service.post_transaction(tx_id)
        assert len(temp_db.list_journal_entries(source_transaction_id=tx_id)) == 2

    def test_used_record_rejected(self, posting_service, temp_db, make_record, make_transaction):
        r1 = make_record(100)
        first = make_transaction(records=[(r1, 100)])
        posting_service.post_transaction(first)
        second = make_transaction(records=[(r1, 100)], transaction_date=date(2024, 1, 16))

        with pytest.raises(RecordAlreadyUsedError, match=first):
            posting_service.post_transaction(second)
        assert temp_db.list_journal_entries(source_transaction_id=second) == []

    def test_record_consumed_after_checks_rejected(
        self, posting_service, temp_db, settings, make_record, make_transaction, monkeypatch
    ):
        r1 = make_record(100)
        first = make_transaction(records=[(r1, 100)])
        second = make_transaction(records=[(r1, 100)], transaction_date=date(2024, 1, 16))
        rival = TransactionPostingService(temp_db, settings)

        def engine_after_rival_posts():
            rival.post_transaction(second)
            return TransactionPostingService._engine(posting_service)

        monkeypatch.setattr(posting_service, "_engine", engine_after_rival_posts)

        with pytest.raises(RecordAlreadyUsedError, match=r1):
            posting_service.post_transaction(first)
        assert temp_db.list_journal_entries(source_transaction_id=first) == []
        assert len(temp_db.list_journal_entries(source_transaction_id=second)) == 1
        assert temp_db.get_source_record(r1).status == RecordStatus.USED

    def test_same_day_collision_rejected(self, posting_service, temp_db, make_record, make_transaction):
        r1 = make_record(100)
        first = make_transaction(records=[(r1, 100)])
        make_transaction(records=[(r1, 100)])

        with pytest.raises(DuplicateRecordUsageError):
            posting_service.post_transaction(first)
        assert temp_db.list_journal_entries() == []
        assert temp_db.get_source_record(r1).status == RecordStatus.PENDING

    def test_store_failure_fails_closed(self, temp_db, settings, failing_store, make_transaction):
        tx_id = make_transaction(fee_usd=5)
        guard = ReconciliationGuard(failing_store("list_journal_entries"), settings)
        service = TransactionPostingService(temp_db, settings, guard=guard)

        with pytest.raises(StoreError):
            service.post_transaction(tx_id)
        assert temp_db.count_account_entries("4001") == 0

    def test_nothing_to_post(self, posting_service, make_transaction):
        tx_id = make_transaction()

        result = posting_service.post_transaction(tx_id)

        assert result.entry_ids == ()
        assert result.report is None

    def test_unbalanced_drafts_never_written(self, posting_service, temp_db, make_transaction, monkeypatch):
        tx_id = make_transaction(fee_usd=5)
        lopsided = JournalEntryDraft(
            date=DAY,
            description="Lopsided",
            debit_account="1002",
            credit_account="4001",
            debit_amount=Decimal("5"),
            credit_amount=Decimal("4"),
            amount_usd=Decimal("5"),
            source_transaction_id=tx_id,
        )
        monkeypatch.setattr(AutoPostingEngine, "build_fee_entries", lambda self, txn: [lopsided])

        with pytest.raises(UnbalancedEntryError):
            posting_service.post_transaction(tx_id)
        assert temp_db.list_journal_entries() == []

    def test_failed_notification_keeps_posting(self, temp_db, settings, make_transaction):
        tx_id = make_transaction(fee_usd=5)
        notifier = FailingNotifier()
        service = TransactionPostingService(temp_db, settings, notifier=notifier)

        result = service.post_transaction(tx_id)

        assert notifier.calls == 1
        assert len(result.entry_ids) == 1
        assert len(temp_db.list_journal_entries(source_transaction_id=tx_id)) == 1

    def test_skip_reconcile(self, posting_service, make_transaction):
        result = posting_service.post_transaction(make_transaction(fee_usd=5), reconcile=False)

        assert result.report is None

    def test_uses_recorded_rates(self, temp_db, chart):
        provider = StoreFxRateProvider(temp_db)
        provider.record_rate(Currency.YER, Decimal("540"), Decimal("545"))
        service = TransactionPostingService(temp_db, LedgerSettings(), fx_provider=provider)

        (draft,) = service._engine().build_fee_entries(make_txn(fee="10", bank="1004"))

        assert draft.debit_rate == Decimal("540")
        assert draft.debit_amount == Decimal("5400")
