"""Balance calculation replayed from the journal.

Two representations are kept side by side and must agree on net figures:

* gross activity per account over an interval (``increases``/``decreases``,
  interpreted through the account's normal side), used by the account
  balances, income statement and cash flow reports;
* a signed running balance per account (``+`` debit, ``-`` credit), used by
  the trial balance and balance sheet.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledgerguard.config import LedgerSettings
from ledgerguard.database.base import Database
from ledgerguard.domain.entities import Account, EntrySide, JournalEntry
from ledgerguard.domain.errors import NotFoundError, account_not_found
from ledgerguard.logging_config import get_logger

logger = get_logger("balance")

ZERO = Decimal("0")


@dataclass(frozen=True)
class AccountActivity:
    """Gross movement of one account over an interval."""

    increases: Decimal = ZERO
    decreases: Decimal = ZERO

    @property
    def net_change(self) -> Decimal:
        return self.increases - self.decreases

    def __add__(self, other: "AccountActivity") -> "AccountActivity":
        return AccountActivity(
            increases=self.increases + other.increases,
            decreases=self.decreases + other.decreases,
        )


def in_period(entry_date: date, start: Optional[date], end: Optional[date]) -> bool:
    """Closed-interval membership; a missing bound is open."""
    if start is not None and entry_date < start:
        return False
    if end is not None and entry_date > end:
        return False
    return True


def is_increase(account: Account, side: EntrySide) -> bool:
    """Whether a leg on ``side`` moves ``account`` toward its normal balance."""
    if side == EntrySide.DEBIT:
        return account.is_normal_debit
    return not account.is_normal_debit


class BalanceCalculator:
    """Pure aggregation over journal entries and the chart of accounts."""

    def __init__(self, activity_threshold: Decimal = Decimal("0.01")):
        self.activity_threshold = activity_threshold

    @staticmethod
    def _leaf_index(accounts: Iterable[Account]) -> dict[str, Account]:
        return {acc.id: acc for acc in accounts if not acc.is_group}

    def compute_activity(
        self,
        entries: Iterable[JournalEntry],
        accounts: Iterable[Account],
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> dict[str, AccountActivity]:
        """Gross increases and decreases per leaf account within ``[start, end]``.

        Every leaf account appears in the result, with zero activity if it was
        not touched. Legs on group or unknown accounts are ignored.
        """
        leaves = self._leaf_index(accounts)
        totals = {account_id: [ZERO, ZERO] for account_id in leaves}

        for entry in entries:
            if not in_period(entry.date, start, end):
                continue
            for account_id, side in (
                (entry.debit_account, EntrySide.DEBIT),
                (entry.credit_account, EntrySide.CREDIT),
            ):
                account = leaves.get(account_id)
                if account is None:
                    continue
                slot = 0 if is_increase(account, side) else 1
                totals[account_id][slot] += entry.amount_usd

        return {
            account_id: AccountActivity(increases=inc, decreases=dec)
            for account_id, (inc, dec) in totals.items()
        }

    def running_balances(
        self,
        entries: Iterable[JournalEntry],
        accounts: Iterable[Account],
        as_of: Optional[date] = None,
        start: Optional[date] = None,
    ) -> dict[str, Decimal]:
        """Signed balance per leaf account: ``+amount_usd`` on debit, ``-`` on credit."""
        leaves = self._leaf_index(accounts)
        balances = {account_id: ZERO for account_id in leaves}

        for entry in entries:
            if not in_period(entry.date, start, as_of):
                continue
            if entry.debit_account in balances:
                balances[entry.debit_account] += entry.amount_usd
            if entry.credit_account in balances:
                balances[entry.credit_account] -= entry.amount_usd

        return balances

    @staticmethod
    def trial_balance_columns(account: Account, balance: Decimal) -> tuple[Decimal, Decimal, bool]:
        """Split a signed balance into ``(debit, credit, is_abnormal)``.

        A normal-debit account with a positive balance shows as a debit; a
        negative one shows as an abnormal credit. Normal-credit accounts
        mirror that.
        """
        if balance >= 0:
            return balance, ZERO, not account.is_normal_debit and balance > 0
        return ZERO, -balance, account.is_normal_debit

    def trial_totals(
        self,
        entries: Iterable[JournalEntry],
        accounts: Sequence[Account],
        as_of: Optional[date] = None,
        start: Optional[date] = None,
    ) -> tuple[Decimal, Decimal]:
        """Total debit and credit columns of the trial balance."""
        leaves = self._leaf_index(accounts)
        total_debits = ZERO
        total_credits = ZERO
        for account_id, balance in self.running_balances(entries, accounts, as_of, start).items():
            debit, credit, _ = self.trial_balance_columns(leaves[account_id], balance)
            total_debits += debit
            total_credits += credit
        return total_debits, total_credits

    def rollup_groups(
        self,
        accounts: Sequence[Account],
        activity: dict[str, AccountActivity],
    ) -> dict[str, AccountActivity]:
        """Sum the activity of every non-group descendant into each group account."""
        children: dict[str, list[Account]] = {}
        for acc in accounts:
            if acc.parent_id is not None:
                children.setdefault(acc.parent_id, []).append(acc)

        rollups: dict[str, AccountActivity] = {}

        def total(group_id: str, seen: frozenset[str]) -> AccountActivity:
            if group_id in rollups:
                return rollups[group_id]
            result = AccountActivity()
            for child in children.get(group_id, []):
                if child.id in seen:
                    continue
                if child.is_group:
                    result = result + total(child.id, seen | {child.id})
                else:
                    result = result + activity.get(child.id, AccountActivity())
            rollups[group_id] = result
            return result

        for acc in accounts:
            if acc.is_group:
                total(acc.id, frozenset({acc.id}))
        return rollups

    def is_significant(self, activity: AccountActivity) -> bool:
        """Whether an account had enough activity to appear in a report."""
        return (
            abs(activity.increases) >= self.activity_threshold
            or abs(activity.decreases) >= self.activity_threshold
        )


@dataclass(frozen=True)
class ClientBalance:
    """What the exchange owes one client, computed from the journal only."""

    client_id: str
    account_id: str
    balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    entries_processed: int
    duplicates_detected: int
    issues: tuple[str, ...]

    @property
    def is_valid(self) -> bool:
        return not self.issues


class ClientBalanceService:
    """Independent client balance computation with duplicate detection."""

    def __init__(
        self,
        db: Database,
        settings: Optional[LedgerSettings] = None,
        calculator: Optional[BalanceCalculator] = None,
    ):
        self.db = db
        self.settings = settings or LedgerSettings()
        self.calculator = calculator or BalanceCalculator(self.settings.activity_threshold)

    def get_client_balance(
        self,
        client_id: str,
        as_of: Optional[date] = None,
        validate_ledger: bool = False,
    ) -> ClientBalance:
        """Compute a client's balance as ``credits - debits`` on their liability account.

        Entries with identical content hashes are counted once and reported as
        duplicates.

        Args:
            client_id: Client identifier
            as_of: Optional inclusive cut-off date
            validate_ledger: Also check that the whole trial balance foots

        Raises:
            NotFoundError: If the client has no liability account
        """
        account_id = self.settings.client_account_id(client_id)
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        entries = self.db.list_journal_entries(end_date=as_of, account_id=account_id)

        seen: set[str] = set()
        duplicates = 0
        total_credits = ZERO
        total_debits = ZERO
        processed = 0
        for entry in entries:
            key = entry.content_hash
            if key in seen:
                duplicates += 1
                logger.warning(
                    "duplicate_client_entry_skipped",
                    extra={"client_id": client_id, "account_id": account_id},
                )
                continue
            seen.add(key)
            processed += 1
            if entry.credit_account == account_id:
                total_credits += entry.amount_usd
            elif entry.debit_account == account_id:
                total_debits += entry.amount_usd

        issues: list[str] = []
        if duplicates:
            issues.append(
                f"{duplicates} duplicate journal entr{'ies' if duplicates != 1 else 'y'} "
                f"on account {account_id}"
            )

        if validate_ledger:
            accounts = self.db.list_accounts()
            all_entries = self.db.list_journal_entries(end_date=as_of)
            debits, credits = self.calculator.trial_totals(all_entries, accounts, as_of)
            if abs(debits - credits) >= self.settings.balance_tolerance:
                issues.append(f"Trial balance broken: Debits {debits} != Credits {credits}")

        return ClientBalance(
            client_id=client_id,
            account_id=account_id,
            balance=total_credits - total_debits,
            total_credits=total_credits,
            total_debits=total_debits,
            entries_processed=processed,
            duplicates_detected=duplicates,
            issues=tuple(issues),
        )
