"""Auto-posting engine and the transaction posting workflow."""

from dataclasses import dataclass
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional

from ledgerguard.config import LedgerSettings
from ledgerguard.database.base import Database
from ledgerguard.domain.account import AccountService
from ledgerguard.domain.entities import (
    Account,
    EntrySide,
    JournalEntryDraft,
    LegDirection,
    RateDirection,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledgerguard.domain.errors import (
    DuplicatePostingError,
    DuplicateRecordUsageError,
    NotFoundError,
    RecordAlreadyUsedError,
    StoreError,
    UnbalancedEntryError,
    ValidationError,
    record_not_found,
    transaction_not_found,
)
from ledgerguard.domain.fx import FxRateProvider, FxRateSnapshot
from ledgerguard.domain.notifications import (
    NotificationSink,
    NullNotificationSink,
    format_posting_message,
    notify_safely,
)
from ledgerguard.domain.reconciliation import (
    ReconciliationGuard,
    ReconciliationReport,
    RecordRef,
)
from ledgerguard.logging_config import get_logger

logger = get_logger("posting")

ZERO = Decimal("0")
CENT = Decimal("0.01")


def _positive(value: Optional[Decimal]) -> bool:
    return value is not None and value > 0


class AutoPostingEngine:
    """Derive balanced journal drafts without manual account selection.

    Rates come from the snapshot handed in at construction; the engine never
    looks them up on its own.
    """

    def __init__(
        self,
        accounts: AccountService,
        settings: Optional[LedgerSettings] = None,
        fx_snapshot: Optional[FxRateSnapshot] = None,
    ):
        self.accounts = accounts
        self.settings = settings or accounts.settings
        self.fx_snapshot = fx_snapshot or FxRateSnapshot(
            taken_at=datetime.now(UTC),
            fallback_rates=dict(self.settings.fallback_rates),
        )

    def _draft(
        self,
        entry_date: date,
        description: str,
        debit: Account,
        credit: Account,
        amount_usd: Decimal,
        source_transaction_id: Optional[str] = None,
    ) -> JournalEntryDraft:
        """Build a draft whose legs carry the USD amount in each account's currency."""
        debit_rate = self.fx_snapshot.rate_for(debit.effective_currency, RateDirection.BUY)
        credit_rate = self.fx_snapshot.rate_for(credit.effective_currency, RateDirection.SELL)
        return JournalEntryDraft(
            date=entry_date,
            description=description,
            debit_account=debit.id,
            credit_account=credit.id,
            debit_amount=amount_usd * debit_rate,
            credit_amount=amount_usd * credit_rate,
            amount_usd=amount_usd,
            debit_currency=debit.effective_currency,
            credit_currency=credit.effective_currency,
            debit_rate=debit_rate,
            credit_rate=credit_rate,
            debit_account_name=debit.name,
            credit_account_name=credit.name,
            source_transaction_id=source_transaction_id,
        )

    def _require_asset(self, account_id: Optional[str], role: str, transaction: Transaction) -> Account:
        if not account_id:
            raise ValidationError(
                f"Transaction {transaction.id} has no {role} account to post against"
            )
        return self.accounts.require_postable(account_id)

    def build_fee_entries(self, transaction: Transaction) -> list[JournalEntryDraft]:
        """Fee, commission and expense postings for a confirmed transaction.

        For a Deposit the bank account is the operating asset and the crypto
        wallet the other side; a Withdraw is the reverse. Each amount is
        posted only when positive.

        Raises:
            ValidationError: If a required asset account is missing or is a
                group account
            NotFoundError: If a referenced account does not exist
            RateUnavailableError: If an account currency has no usable rate
        """
        if transaction.type == TransactionType.DEPOSIT:
            operating_id, other_id = transaction.bank_account_id, transaction.crypto_wallet_id
        else:
            operating_id, other_id = transaction.crypto_wallet_id, transaction.bank_account_id

        drafts: list[JournalEntryDraft] = []
        tx_token = f"Tx #{transaction.id}"

        if _positive(transaction.fee_usd):
            operating = self._require_asset(operating_id, "operating asset", transaction)
            fee_income = self.accounts.require_postable(self.settings.fee_income_account)
            drafts.append(
                self._draft(
                    transaction.date,
                    f"Fee income from {tx_token}",
                    operating,
                    fee_income,
                    transaction.fee_usd,
                    transaction.id,
                )
            )

        if _positive(transaction.exchange_rate_commission_usd):
            operating = self._require_asset(operating_id, "operating asset", transaction)
            commission = self.accounts.require_postable(self.settings.commission_income_account)
            drafts.append(
                self._draft(
                    transaction.date,
                    f"Exchange rate commission from {tx_token}",
                    operating,
                    commission,
                    transaction.exchange_rate_commission_usd,
                    transaction.id,
                )
            )

        if _positive(transaction.expense_usd):
            other = self._require_asset(other_id, "counter asset", transaction)
            expense = self.accounts.require_postable(self.settings.expense_account)
            drafts.append(
                self._draft(
                    transaction.date,
                    f"Expense from {tx_token}",
                    expense,
                    other,
                    transaction.expense_usd,
                    transaction.id,
                )
            )

        return drafts

    def build_principal_entries(self, transaction: Transaction) -> list[JournalEntryDraft]:
        """Principal postings through the client's liability account.

        Inflow legs debit the source record's asset account and credit the
        client; outflow legs do the reverse. Legs landing on the same asset
        account in the same direction are combined into one entry. Leg
        amounts are the principal attributed to the client; fees and
        commission are posted separately by ``build_fee_entries``.

        Raises:
            ValidationError: If the transaction has legs but no client
            NotFoundError: If a source record or account does not exist
        """
        if not transaction.legs:
            return []
        if not transaction.client_id:
            raise ValidationError(
                f"Transaction {transaction.id} has linked records but no client"
            )

        client = self.accounts.require_postable(
            self.settings.client_account_id(transaction.client_id)
        )

        totals: dict[tuple[str, LegDirection], Decimal] = {}
        for leg in transaction.legs:
            record = self.accounts.db.get_source_record(leg.record_id)
            if record is None:
                raise NotFoundError(record_not_found(leg.record_id))
            key = (record.account_id, leg.direction)
            totals[key] = totals.get(key, ZERO) + leg.amount_usd

        drafts: list[JournalEntryDraft] = []
        label = transaction.type.value
        for (account_id, direction), amount_usd in totals.items():
            if amount_usd <= 0:
                continue
            asset = self.accounts.require_postable(account_id)
            if direction == LegDirection.INFLOW:
                debit, credit = asset, client
                description = f"{label} received for Tx #{transaction.id}"
            else:
                debit, credit = client, asset
                description = f"{label} paid out for Tx #{transaction.id}"
            drafts.append(
                self._draft(
                    transaction.date,
                    description,
                    debit,
                    credit,
                    amount_usd,
                    transaction.id,
                )
            )
        return drafts

    def build_manual_entry(
        self,
        entry_date: date,
        description: str,
        debit_account_id: str,
        credit_account_id: str,
        amount: Decimal,
        entered_side: EntrySide = EntrySide.DEBIT,
        source_transaction_id: Optional[str] = None,
    ) -> JournalEntryDraft:
        """Build a manual two-leg entry, converting between account currencies.

        ``amount`` is expressed in the currency of the ``entered_side``
        account. It is converted to USD with that side's rate (BUY for the
        debit side, SELL for the credit side) and then into the other
        account's currency.

        Raises:
            ValidationError: If the accounts are equal, not postable, or the
                amount is not positive
            NotFoundError: If an account does not exist
            RateUnavailableError: If a non-USD account has no usable rate
        """
        if debit_account_id == credit_account_id:
            raise ValidationError("Debit and credit accounts must be different")
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be positive")
        if not description or not description.strip():
            raise ValidationError("Description is required")

        debit = self.accounts.require_postable(debit_account_id)
        credit = self.accounts.require_postable(credit_account_id)

        debit_rate = self.fx_snapshot.rate_for(debit.effective_currency, RateDirection.BUY)
        credit_rate = self.fx_snapshot.rate_for(credit.effective_currency, RateDirection.SELL)

        if entered_side == EntrySide.DEBIT:
            amount_usd = (amount / debit_rate).quantize(CENT)
            debit_amount, credit_amount = amount, amount_usd * credit_rate
        else:
            amount_usd = (amount / credit_rate).quantize(CENT)
            debit_amount, credit_amount = amount_usd * debit_rate, amount

        if amount_usd <= 0:
            raise ValidationError(f"Amount {amount} is worth less than one cent in USD")

        return JournalEntryDraft(
            date=entry_date,
            description=description.strip(),
            debit_account=debit.id,
            credit_account=credit.id,
            debit_amount=debit_amount,
            credit_amount=credit_amount,
            amount_usd=amount_usd,
            debit_currency=debit.effective_currency,
            credit_currency=credit.effective_currency,
            debit_rate=debit_rate,
            credit_rate=credit_rate,
            debit_account_name=debit.name,
            credit_account_name=credit.name,
            source_transaction_id=source_transaction_id,
        )


@dataclass(frozen=True)
class PostingResult:
    transaction_id: str
    entry_ids: tuple[int, ...]
    report: Optional[ReconciliationReport] = None


class TransactionPostingService:
    """Fail-closed posting workflow for confirmed transactions."""

    def __init__(
        self,
        db: Database,
        settings: Optional[LedgerSettings] = None,
        fx_provider: Optional[FxRateProvider] = None,
        notifier: Optional[NotificationSink] = None,
        guard: Optional[ReconciliationGuard] = None,
    ):
        """Initialize posting service.

        Args:
            db: Database instance
            settings: Ledger settings (defaults used if omitted)
            fx_provider: Rate source; a fresh snapshot is taken per posting
            notifier: Sink announcing successful postings
            guard: Reconciliation guard (built from ``db`` if omitted)
        """
        self.db = db
        self.settings = settings or LedgerSettings()
        self.accounts = AccountService(db, self.settings)
        self.fx_provider = fx_provider
        self.notifier = notifier or NullNotificationSink()
        self.guard = guard or ReconciliationGuard(db, self.settings)

    def _engine(self) -> AutoPostingEngine:
        snapshot = self.fx_provider.snapshot() if self.fx_provider is not None else None
        return AutoPostingEngine(self.accounts, self.settings, snapshot)

    def post_transaction(self, transaction_id: str, reconcile: bool = True) -> PostingResult:
        """Post a confirmed transaction's journal entries exactly once.

        Every guard check runs before anything is written. The entries and
        the Used flags of the consumed records are stored in a single write.

        Args:
            transaction_id: Transaction to post
            reconcile: Re-read and reconcile the posted entries afterwards

        Returns:
            PostingResult with the new entry IDs and the reconciliation report

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If the transaction is not Confirmed or references
                unusable accounts
            DuplicatePostingError: If entries were already posted for it
            RecordAlreadyUsedError: If a linked record is already Used
            DuplicateRecordUsageError: If a linked record is claimed by
                another transaction on the same day
            UnbalancedEntryError: If the derived entries do not balance
            RateUnavailableError: If a non-USD account has no usable rate
            StoreError: If a guard check could not read the store
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if transaction.status != TransactionStatus.CONFIRMED:
            raise ValidationError(
                f"Transaction {transaction_id} is {transaction.status.value}; "
                "only Confirmed transactions are posted"
            )

        existing = self.guard.verify_no_existing_entries(transaction_id)
        if not existing.is_clean:
            if existing.existing_entries:
                raise DuplicatePostingError(existing.error_message)
            raise StoreError(existing.error_message)

        refs = [RecordRef(leg.record_id, leg.record_type) for leg in transaction.legs]
        usage = self.guard.verify_records_not_already_used(refs)
        if not usage.all_clean:
            if usage.already_used_records:
                used = ", ".join(
                    f"{rec.record_id} (by {', '.join(rec.linked_transactions) or 'unknown'})"
                    for rec in usage.already_used_records
                )
                raise RecordAlreadyUsedError(f"Source records already used: {used}")
            raise StoreError(usage.error_message)

        processing = self.guard.verify_no_duplicate_record_processing(
            transaction.record_ids, transaction.date
        )
        if not processing.is_clean:
            if processing.conflicts:
                details = "; ".join(
                    f"{c.record_id} in {', '.join(c.linked_transaction_ids)}"
                    for c in processing.conflicts
                )
                raise DuplicateRecordUsageError(
                    f"Source records claimed by several transactions on "
                    f"{transaction.date.isoformat()}: {details}"
                )
            raise StoreError(processing.error_message)

        if transaction.legs and transaction.client_id:
            self.accounts.ensure_client_account(transaction.client_id)

        engine = self._engine()
        drafts = engine.build_principal_entries(transaction) + engine.build_fee_entries(transaction)
        if not drafts:
            logger.info("nothing_to_post", extra={"transaction_id": transaction_id})
            return PostingResult(transaction_id=transaction_id, entry_ids=())

        balance = self.guard.validate_entries_balanced(drafts)
        if not balance.is_balanced:
            raise UnbalancedEntryError(balance.error_message)

        entry_ids = self.db.record_posting(drafts, used_record_ids=transaction.record_ids)
        logger.info(
            "transaction_posted",
            extra={
                "transaction_id": transaction_id,
                "client_id": transaction.client_id,
                "entry_count": len(entry_ids),
            },
        )

        notify_safely(self.notifier, format_posting_message(drafts))

        report = None
        if reconcile:
            report = self.guard.reconcile_transaction_posting(
                transaction_id, transaction.client_id if transaction.legs else None
            )
        return PostingResult(
            transaction_id=transaction_id, entry_ids=tuple(entry_ids), report=report
        )
