"""Domain model entities for ledgerguard.

These are pure data classes representing ledger concepts, independent of the
storage schema. Services and report generators only ever see these types, so
the store adapter can change without touching the ledger core.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class Classification(str, Enum):
    """Top-level account classification."""

    ASSETS = "Assets"
    LIABILITIES = "Liabilities"
    EQUITY = "Equity"
    INCOME = "Income"
    EXPENSES = "Expenses"

    @property
    def is_normal_debit(self) -> bool:
        """Assets and Expenses increase on the debit side."""
        return self in (Classification.ASSETS, Classification.EXPENSES)


class Currency(str, Enum):
    """Currencies an account or record may be held in."""

    USD = "USD"
    YER = "YER"
    SAR = "SAR"
    USDT = "USDT"

    @property
    def is_usd_pegged(self) -> bool:
        return self in (Currency.USD, Currency.USDT)


class TransactionType(str, Enum):
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"


class TransactionStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class RecordType(str, Enum):
    """Kind of client-submitted source record."""

    CASH = "cash"
    USDT = "usdt"


class RecordStatus(str, Enum):
    PENDING = "Pending"
    MATCHED = "Matched"
    USED = "Used"
    CANCELLED = "Cancelled"


class LegDirection(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class RateDirection(str, Enum):
    """Side of the exchange a rate is quoted for."""

    BUY = "buy"
    SELL = "sell"


class EntrySide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True)
class Account:
    """Chart of accounts entry."""

    id: str
    name: str
    classification: Classification
    is_group: bool
    parent_id: Optional[str]
    currency: Optional[Currency]
    priority: int
    created_at: datetime

    @property
    def is_normal_debit(self) -> bool:
        return self.classification.is_normal_debit

    @property
    def effective_currency(self) -> Currency:
        """Currency used for postings; accounts without one are USD."""
        return self.currency or Currency.USD


@dataclass(frozen=True)
class JournalEntryDraft:
    """A balanced two-leg posting that has not been written yet."""

    date: date
    description: str
    debit_account: str
    credit_account: str
    debit_amount: Decimal
    credit_amount: Decimal
    amount_usd: Decimal
    debit_currency: Currency = Currency.USD
    credit_currency: Currency = Currency.USD
    debit_rate: Decimal = Decimal("1")
    credit_rate: Decimal = Decimal("1")
    debit_account_name: str = ""
    credit_account_name: str = ""
    source_transaction_id: Optional[str] = None

    @property
    def debit_usd(self) -> Decimal:
        """USD equivalent of the debit leg."""
        return self.debit_amount / self.debit_rate

    @property
    def credit_usd(self) -> Decimal:
        """USD equivalent of the credit leg."""
        return self.credit_amount / self.credit_rate


@dataclass(frozen=True)
class JournalEntry:
    """Persisted journal entry. Never updated in place."""

    id: int
    date: date
    description: str
    debit_account: str
    credit_account: str
    debit_amount: Decimal
    credit_amount: Decimal
    amount_usd: Decimal
    debit_currency: Currency
    credit_currency: Currency
    debit_rate: Decimal
    credit_rate: Decimal
    debit_account_name: str
    credit_account_name: str
    source_transaction_id: Optional[str]
    created_at: datetime

    @property
    def debit_usd(self) -> Decimal:
        return self.debit_amount / self.debit_rate

    @property
    def credit_usd(self) -> Decimal:
        return self.credit_amount / self.credit_rate

    @property
    def content_hash(self) -> str:
        """Identity of an entry's economic content, used to spot duplicate writes."""
        return f"{self.date.isoformat()}|{self.debit_account}|{self.credit_account}|{self.amount_usd.normalize()}"

    def touches(self, account_id: str) -> bool:
        return account_id in (self.debit_account, self.credit_account)


@dataclass(frozen=True)
class TransactionLeg:
    """One source record consumed by a transaction."""

    record_id: str
    record_type: RecordType
    direction: LegDirection
    amount_usd: Decimal


@dataclass(frozen=True)
class Transaction:
    """Client exchange transaction produced by intake collaborators."""

    id: str
    date: date
    client_id: Optional[str]
    type: TransactionType
    status: TransactionStatus
    amount: Decimal
    currency: Currency
    amount_usd: Decimal
    fee_usd: Decimal
    expense_usd: Decimal
    bank_account_id: Optional[str]
    crypto_wallet_id: Optional[str]
    created_at: datetime
    exchange_rate_commission_usd: Decimal = Decimal("0")
    legs: tuple[TransactionLeg, ...] = ()

    @property
    def record_ids(self) -> tuple[str, ...]:
        return tuple(leg.record_id for leg in self.legs)


@dataclass(frozen=True)
class SourceRecord:
    """Client-submitted cash or USDT movement."""

    id: str
    record_type: RecordType
    client_id: Optional[str]
    date: date
    account_id: str
    amount: Decimal
    currency: Currency
    amount_usd: Decimal
    status: RecordStatus
    created_at: datetime


@dataclass(frozen=True)
class FxRate:
    """One row of the exchange rate history (units of currency per USD)."""

    id: int
    currency: Currency
    buy_rate: Decimal
    sell_rate: Decimal
    recorded_at: datetime


@dataclass(frozen=True)
class AccountTreeNode:
    """Chart of accounts node with nested children."""

    account: Account
    children: tuple["AccountTreeNode", ...] = field(default_factory=tuple)
