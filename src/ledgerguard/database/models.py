"""SQLAlchemy models for the ledgerguard store."""

from datetime import datetime, UTC
from typing import Optional
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(20, 6)
RATE = Numeric(20, 8)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Chart of accounts model."""

    __tablename__ = "accounts"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    classification = Column(String, nullable=False)
    is_group = Column(Boolean, default=False, nullable=False)
    parent_id = Column(String, ForeignKey("accounts.id"), nullable=True)
    currency = Column(String, nullable=True)
    priority = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    parent = relationship("Account", remote_side=[id], backref="children")


class JournalEntry(Base):
    """Append-only two-leg journal entry model."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    debit_account = Column(String, ForeignKey("accounts.id"), nullable=False)
    credit_account = Column(String, ForeignKey("accounts.id"), nullable=False)
    debit_amount = Column(MONEY, nullable=False)
    debit_currency = Column(String, nullable=False, default="USD")
    debit_rate = Column(RATE, nullable=False, default=1)
    credit_amount = Column(MONEY, nullable=False)
    credit_currency = Column(String, nullable=False, default="USD")
    credit_rate = Column(RATE, nullable=False, default=1)
    amount_usd = Column(MONEY, nullable=False)
    debit_account_name = Column(String, nullable=False, default="")
    credit_account_name = Column(String, nullable=False, default="")
    source_transaction_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_journal_entries_date", "date"),
        Index("ix_journal_entries_source_transaction", "source_transaction_id"),
        Index("ix_journal_entries_debit_account", "debit_account"),
        Index("ix_journal_entries_credit_account", "credit_account"),
    )


class Transaction(Base):
    """Client exchange transaction model."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    date = Column(Date, nullable=False)
    client_id = Column(String, nullable=True)
    type = Column(String, nullable=False)
    status = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    currency = Column(String, nullable=False)
    amount_usd = Column(MONEY, nullable=False)
    fee_usd = Column(MONEY, nullable=False, default=0)
    expense_usd = Column(MONEY, nullable=False, default=0)
    exchange_rate_commission_usd = Column(MONEY, nullable=False, default=0)
    bank_account_id = Column(String, ForeignKey("accounts.id"), nullable=True)
    crypto_wallet_id = Column(String, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_transactions_date", "date"),)

    legs = relationship(
        "TransactionLeg",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionLeg.id",
    )


class TransactionLeg(Base):
    """Source record consumed by a transaction."""

    __tablename__ = "transaction_legs"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(String, ForeignKey("transactions.id"), nullable=False)
    record_id = Column(String, nullable=False)
    record_type = Column(String, nullable=False)
    direction = Column(String, nullable=False)
    amount_usd = Column(MONEY, nullable=False)

    __table_args__ = (Index("ix_transaction_legs_record", "record_id"),)

    transaction = relationship("Transaction", back_populates="legs")


class SourceRecord(Base):
    """Client-submitted cash or USDT record model."""

    __tablename__ = "source_records"

    id = Column(String, primary_key=True)
    record_type = Column(String, nullable=False)
    client_id = Column(String, nullable=True)
    date = Column(Date, nullable=False)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    currency = Column(String, nullable=False)
    amount_usd = Column(MONEY, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class FxRate(Base):
    """Exchange rate history row (units of currency per USD)."""

    __tablename__ = "fx_rates"

    id = Column(Integer, primary_key=True)
    currency = Column(String, nullable=False)
    buy_rate = Column(RATE, nullable=False)
    sell_rate = Column(RATE, nullable=False)
    recorded_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_fx_rates_currency_recorded", "currency", "recorded_at"),)


class Counter(Base):
    """Named sequence counter."""

    __tablename__ = "counters"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)


def create_session_factory(
    database_url: str, timeout: Optional[float] = None
) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory.

    For SQLite, ``timeout`` bounds how long a statement waits on a locked
    database before failing.
    """
    connect_args = {}
    if timeout is not None and database_url.startswith("sqlite"):
        connect_args["timeout"] = timeout
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
