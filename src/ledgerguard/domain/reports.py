"""Financial report generators.

Every report is a read-only snapshot built from a single fetch of the chart of
accounts and the journal; all figures are replayed by ``BalanceCalculator``.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerguard.config import LedgerSettings
from ledgerguard.database.base import Database
from ledgerguard.domain.balance import (
    AccountActivity,
    BalanceCalculator,
    ClientBalance,
    ClientBalanceService,
    ZERO,
    in_period,
    is_increase,
)
from ledgerguard.domain.entities import (
    Account,
    Classification,
    EntrySide,
    JournalEntry,
)
from ledgerguard.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    group_account_not_postable,
)
from ledgerguard.logging_config import get_logger

logger = get_logger("reports")

CLASSIFICATION_ORDER = (
    Classification.ASSETS,
    Classification.LIABILITIES,
    Classification.EQUITY,
    Classification.INCOME,
    Classification.EXPENSES,
)


@dataclass(frozen=True)
class AccountBalanceRow:
    account_id: str
    account_name: str
    is_group: bool
    increases: Decimal
    decreases: Decimal
    net_change: Decimal

    @property
    def ending_balance(self) -> Decimal:
        return self.net_change


@dataclass(frozen=True)
class ClassificationSection:
    classification: Classification
    rows: tuple[AccountBalanceRow, ...]
    total_increases: Decimal
    total_decreases: Decimal
    total_net_change: Decimal


@dataclass(frozen=True)
class AccountBalancesReport:
    start: Optional[date]
    end: Optional[date]
    sections: tuple[ClassificationSection, ...]
    total_debit_normal: Decimal
    total_credit_normal: Decimal
    is_balanced: bool

    def section(self, classification: Classification) -> ClassificationSection:
        for section in self.sections:
            if section.classification == classification:
                return section
        raise KeyError(classification)


@dataclass(frozen=True)
class LedgerLine:
    entry_id: int
    date: date
    description: str
    counter_account: str
    counter_account_name: str
    debit: Decimal
    credit: Decimal
    is_increase: bool
    balance_before: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class AccountLedger:
    account: Account
    start: Optional[date]
    end: Optional[date]
    opening_balance: Decimal
    lines: tuple[LedgerLine, ...]
    total_increases: Decimal
    total_decreases: Decimal

    @property
    def closing_balance(self) -> Decimal:
        return self.lines[-1].balance_after if self.lines else self.opening_balance


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: str
    account_name: str
    classification: Classification
    debit: Decimal
    credit: Decimal
    is_abnormal: bool


@dataclass(frozen=True)
class TrialBalanceReport:
    as_of: Optional[date]
    period_start: Optional[date]
    rows: tuple[TrialBalanceRow, ...]
    total_debits: Decimal
    total_credits: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_debits - self.total_credits

    @property
    def is_balanced(self) -> bool:
        return abs(self.difference) < Decimal("0.01")


@dataclass(frozen=True)
class StatementRow:
    account_id: str
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class IncomeStatement:
    start: Optional[date]
    end: Optional[date]
    revenues: tuple[StatementRow, ...]
    expenses: tuple[StatementRow, ...]
    total_revenue: Decimal
    total_expenses: Decimal

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expenses


@dataclass(frozen=True)
class CashFlowLine:
    label: str
    inflow: Decimal
    outflow: Decimal

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow


@dataclass(frozen=True)
class CashFlowSection:
    name: str
    lines: tuple[CashFlowLine, ...]

    @property
    def total_inflows(self) -> Decimal:
        return sum((line.inflow for line in self.lines), ZERO)

    @property
    def total_outflows(self) -> Decimal:
        return sum((line.outflow for line in self.lines), ZERO)

    @property
    def net(self) -> Decimal:
        return self.total_inflows - self.total_outflows


@dataclass(frozen=True)
class CashFlowStatement:
    start: Optional[date]
    end: Optional[date]
    cash_accounts: tuple[str, ...]
    operating: CashFlowSection
    investing: CashFlowSection
    other: CashFlowSection
    opening_cash: Decimal

    @property
    def sections(self) -> tuple[CashFlowSection, ...]:
        return (self.operating, self.investing, self.other)

    @property
    def total_inflows(self) -> Decimal:
        return sum((s.total_inflows for s in self.sections), ZERO)

    @property
    def total_outflows(self) -> Decimal:
        return sum((s.total_outflows for s in self.sections), ZERO)

    @property
    def net_change(self) -> Decimal:
        return self.operating.net + self.investing.net + self.other.net

    @property
    def closing_cash(self) -> Decimal:
        return self.opening_cash + self.net_change


@dataclass(frozen=True)
class BalanceSheetRow:
    account_id: str
    account_name: str
    is_group: bool
    balance: Decimal


@dataclass(frozen=True)
class BalanceSheetSection:
    classification: Classification
    rows: tuple[BalanceSheetRow, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheet:
    as_of: Optional[date]
    assets: BalanceSheetSection
    liabilities: BalanceSheetSection
    equity: BalanceSheetSection
    current_earnings: Decimal

    @property
    def total_equity(self) -> Decimal:
        return self.equity.total + self.current_earnings

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return self.liabilities.total + self.total_equity

    @property
    def is_balanced(self) -> bool:
        return abs(self.assets.total - self.total_liabilities_and_equity) < Decimal("0.01")


# Cash flow line labels
CLIENT_RECEIPTS = "Client receipts"
REVENUE_RECEIVED = "Revenue received"
CLIENT_PAYMENTS = "Client payments"
EXPENSES_PAID = "Operating expenses paid"
ASSET_SALES = "Asset sales"
ASSET_PURCHASES = "Asset purchases"
OTHER_INFLOWS = "Other inflows"
OTHER_OUTFLOWS = "Other outflows"


class ReportService:
    """Service producing reports over the ledger."""

    def __init__(
        self,
        db: Database,
        settings: Optional[LedgerSettings] = None,
        calculator: Optional[BalanceCalculator] = None,
    ):
        """Initialize report service.

        Args:
            db: Database instance
            settings: Ledger settings (defaults used if omitted)
            calculator: Balance calculator (built from settings if omitted)
        """
        self.db = db
        self.settings = settings or LedgerSettings()
        self.calculator = calculator or BalanceCalculator(self.settings.activity_threshold)

    def _snapshot(self, end: Optional[date] = None) -> tuple[list[Account], list[JournalEntry]]:
        return self.db.list_accounts(), self.db.list_journal_entries(end_date=end)

    def cash_account_ids(self, accounts: Optional[list[Account]] = None) -> set[str]:
        """Leaf asset accounts treated as cash.

        An account is cash if its code starts with a configured prefix or its
        name mentions one of the configured keywords.
        """
        if accounts is None:
            accounts = self.db.list_accounts()
        cash_ids = set()
        for acc in accounts:
            if acc.is_group or acc.classification != Classification.ASSETS:
                continue
            name = acc.name.lower()
            if acc.id.startswith(tuple(self.settings.cash_account_prefixes)) or any(
                keyword in name for keyword in self.settings.cash_name_keywords
            ):
                cash_ids.add(acc.id)
        return cash_ids

    def account_balances(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> AccountBalancesReport:
        """Gross activity and net change per account, grouped by classification."""
        accounts, entries = self._snapshot(end)
        activity = self.calculator.compute_activity(entries, accounts, start, end)
        rollups = self.calculator.rollup_groups(accounts, activity)

        sections = []
        total_debit_normal = ZERO
        total_credit_normal = ZERO
        for classification in CLASSIFICATION_ORDER:
            rows = []
            section_total = AccountActivity()
            for acc in accounts:
                if acc.classification != classification:
                    continue
                if acc.is_group:
                    act = rollups.get(acc.id, AccountActivity())
                else:
                    act = activity[acc.id]
                    section_total = section_total + act
                if not self.calculator.is_significant(act):
                    continue
                rows.append(
                    AccountBalanceRow(
                        account_id=acc.id,
                        account_name=acc.name,
                        is_group=acc.is_group,
                        increases=act.increases,
                        decreases=act.decreases,
                        net_change=act.net_change,
                    )
                )
            sections.append(
                ClassificationSection(
                    classification=classification,
                    rows=tuple(rows),
                    total_increases=section_total.increases,
                    total_decreases=section_total.decreases,
                    total_net_change=section_total.net_change,
                )
            )
            if classification.is_normal_debit:
                total_debit_normal += section_total.net_change
            else:
                total_credit_normal += section_total.net_change

        return AccountBalancesReport(
            start=start,
            end=end,
            sections=tuple(sections),
            total_debit_normal=total_debit_normal,
            total_credit_normal=total_credit_normal,
            is_balanced=abs(total_debit_normal - total_credit_normal)
            < self.settings.balance_tolerance,
        )

    def account_transactions(
        self,
        account_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AccountLedger:
        """Running ledger of one account.

        The opening balance is replayed from entries dated before ``start``.
        Balances are expressed on the account's normal side.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the account is a group account
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.is_group:
            raise ValidationError(group_account_not_postable(account_id))

        entries = self.db.list_journal_entries(end_date=end, account_id=account_id)

        opening = ZERO
        lines = []
        total_increases = ZERO
        total_decreases = ZERO
        balance = ZERO
        for entry in entries:
            side = EntrySide.DEBIT if entry.debit_account == account_id else EntrySide.CREDIT
            increase = is_increase(account, side)
            delta = entry.amount_usd if increase else -entry.amount_usd

            if start is not None and entry.date < start:
                opening += delta
                balance = opening
                continue
            if not in_period(entry.date, start, end):
                continue

            before = balance
            balance += delta
            if increase:
                total_increases += entry.amount_usd
            else:
                total_decreases += entry.amount_usd

            if side == EntrySide.DEBIT:
                counter, counter_name = entry.credit_account, entry.credit_account_name
            else:
                counter, counter_name = entry.debit_account, entry.debit_account_name
            lines.append(
                LedgerLine(
                    entry_id=entry.id,
                    date=entry.date,
                    description=entry.description,
                    counter_account=counter,
                    counter_account_name=counter_name,
                    debit=entry.amount_usd if side == EntrySide.DEBIT else ZERO,
                    credit=entry.amount_usd if side == EntrySide.CREDIT else ZERO,
                    is_increase=increase,
                    balance_before=before,
                    balance_after=balance,
                )
            )

        return AccountLedger(
            account=account,
            start=start,
            end=end,
            opening_balance=opening,
            lines=tuple(lines),
            total_increases=total_increases,
            total_decreases=total_decreases,
        )

    def trial_balance(
        self, as_of: Optional[date] = None, period_start: Optional[date] = None
    ) -> TrialBalanceReport:
        """Debit and credit columns per leaf account as of a date.

        A ledger that does not foot is reported with ``is_balanced`` False and
        the ``difference``; it is never adjusted.
        """
        accounts, entries = self._snapshot(as_of)
        balances = self.calculator.running_balances(entries, accounts, as_of, period_start)
        leaves = {acc.id: acc for acc in accounts if not acc.is_group}

        rows = []
        total_debits = ZERO
        total_credits = ZERO
        for acc in accounts:
            if acc.id not in balances:
                continue
            debit, credit, abnormal = self.calculator.trial_balance_columns(
                leaves[acc.id], balances[acc.id]
            )
            total_debits += debit
            total_credits += credit
            if debit == 0 and credit == 0:
                continue
            rows.append(
                TrialBalanceRow(
                    account_id=acc.id,
                    account_name=acc.name,
                    classification=acc.classification,
                    debit=debit,
                    credit=credit,
                    is_abnormal=abnormal,
                )
            )

        report = TrialBalanceReport(
            as_of=as_of,
            period_start=period_start,
            rows=tuple(rows),
            total_debits=total_debits,
            total_credits=total_credits,
        )
        if not report.is_balanced:
            logger.warning(
                "trial_balance_out_of_balance",
                extra={"status": f"difference {report.difference}"},
            )
        return report

    def income_statement(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> IncomeStatement:
        """Revenue and expenses over a period, largest first."""
        accounts, entries = self._snapshot(end)
        activity = self.calculator.compute_activity(entries, accounts, start, end)

        revenues = []
        expenses = []
        for acc in accounts:
            if acc.is_group or acc.classification not in (
                Classification.INCOME,
                Classification.EXPENSES,
            ):
                continue
            act = activity[acc.id]
            if not self.calculator.is_significant(act):
                continue
            row = StatementRow(account_id=acc.id, account_name=acc.name, amount=act.net_change)
            if acc.classification == Classification.INCOME:
                revenues.append(row)
            else:
                expenses.append(row)

        revenues.sort(key=lambda row: abs(row.amount), reverse=True)
        expenses.sort(key=lambda row: abs(row.amount), reverse=True)
        return IncomeStatement(
            start=start,
            end=end,
            revenues=tuple(revenues),
            expenses=tuple(expenses),
            total_revenue=sum((row.amount for row in revenues), ZERO),
            total_expenses=sum((row.amount for row in expenses), ZERO),
        )

    def _is_client_account(self, account: Account) -> bool:
        group_id = self.settings.client_group_account
        if account.parent_id == group_id:
            return True
        return (
            account.classification == Classification.LIABILITIES
            and account.id.startswith(group_id)
            and account.id != group_id
        )

    def cash_flow(self, start: Optional[date] = None, end: Optional[date] = None) -> CashFlowStatement:
        """Cash movements over a period, bucketed by the counter account.

        Transfers between two cash accounts are not flows. ``net_change``
        always equals the combined net change of the cash accounts.
        """
        accounts, entries = self._snapshot(end)
        by_id = {acc.id: acc for acc in accounts}
        cash_ids = self.cash_account_ids(accounts)

        buckets: dict[str, dict[str, list[Decimal]]] = {
            "operating": {},
            "investing": {},
            "other": {},
        }

        def add(section: str, label: str, inflow: Decimal, outflow: Decimal) -> None:
            totals = buckets[section].setdefault(label, [ZERO, ZERO])
            totals[0] += inflow
            totals[1] += outflow

        opening = ZERO
        for entry in entries:
            debit_cash = entry.debit_account in cash_ids
            credit_cash = entry.credit_account in cash_ids
            if debit_cash == credit_cash:
                continue

            if start is not None and entry.date < start:
                opening += entry.amount_usd if debit_cash else -entry.amount_usd
                continue
            if not in_period(entry.date, start, end):
                continue

            if debit_cash:
                counter = by_id.get(entry.credit_account)
                if counter is not None and self._is_client_account(counter):
                    add("operating", CLIENT_RECEIPTS, entry.amount_usd, ZERO)
                elif counter is not None and counter.classification == Classification.INCOME:
                    add("operating", REVENUE_RECEIVED, entry.amount_usd, ZERO)
                elif counter is not None and counter.classification == Classification.ASSETS:
                    add("investing", ASSET_SALES, entry.amount_usd, ZERO)
                else:
                    add("other", OTHER_INFLOWS, entry.amount_usd, ZERO)
            else:
                counter = by_id.get(entry.debit_account)
                if counter is not None and self._is_client_account(counter):
                    add("operating", CLIENT_PAYMENTS, ZERO, entry.amount_usd)
                elif counter is not None and counter.classification == Classification.EXPENSES:
                    add("operating", EXPENSES_PAID, ZERO, entry.amount_usd)
                elif counter is not None and counter.classification == Classification.ASSETS:
                    add("investing", ASSET_PURCHASES, ZERO, entry.amount_usd)
                else:
                    add("other", OTHER_OUTFLOWS, ZERO, entry.amount_usd)

        def section(name: str) -> CashFlowSection:
            return CashFlowSection(
                name=name,
                lines=tuple(
                    CashFlowLine(label=label, inflow=inflow, outflow=outflow)
                    for label, (inflow, outflow) in buckets[name].items()
                ),
            )

        return CashFlowStatement(
            start=start,
            end=end,
            cash_accounts=tuple(sorted(cash_ids)),
            operating=section("operating"),
            investing=section("investing"),
            other=section("other"),
            opening_cash=opening,
        )

    def balance_sheet(self, as_of: Optional[date] = None) -> BalanceSheet:
        """Assets, liabilities and equity as of a date, with group subtotals.

        Income less expenses to date is shown as current earnings in equity.
        """
        accounts, entries = self._snapshot(as_of)
        signed = self.calculator.running_balances(entries, accounts, as_of)

        normal: dict[str, AccountActivity] = {}
        for acc in accounts:
            if acc.id in signed:
                value = signed[acc.id] if acc.is_normal_debit else -signed[acc.id]
                normal[acc.id] = AccountActivity(increases=value)
        rollups = self.calculator.rollup_groups(accounts, normal)

        def section(classification: Classification) -> BalanceSheetSection:
            rows = []
            total = ZERO
            for acc in accounts:
                if acc.classification != classification:
                    continue
                source = rollups if acc.is_group else normal
                value = source.get(acc.id, AccountActivity()).net_change
                if not acc.is_group:
                    total += value
                if abs(value) < self.settings.activity_threshold:
                    continue
                rows.append(
                    BalanceSheetRow(
                        account_id=acc.id,
                        account_name=acc.name,
                        is_group=acc.is_group,
                        balance=value,
                    )
                )
            return BalanceSheetSection(classification=classification, rows=tuple(rows), total=total)

        income = sum(
            (normal[acc.id].net_change for acc in accounts
             if acc.id in normal and acc.classification == Classification.INCOME),
            ZERO,
        )
        expenses = sum(
            (normal[acc.id].net_change for acc in accounts
             if acc.id in normal and acc.classification == Classification.EXPENSES),
            ZERO,
        )

        return BalanceSheet(
            as_of=as_of,
            assets=section(Classification.ASSETS),
            liabilities=section(Classification.LIABILITIES),
            equity=section(Classification.EQUITY),
            current_earnings=income - expenses,
        )

    def client_balance(self, client_id: str, as_of: Optional[date] = None) -> ClientBalance:
        """Client balance with ledger-wide validation."""
        return ClientBalanceService(self.db, self.settings, self.calculator).get_client_balance(
            client_id, as_of=as_of, validate_ledger=True
        )

