"""Runtime settings for ledgerguard.

Settings come from ``LEDGERGUARD_*`` environment variables so that the CLI,
tests and embedding services can configure the ledger the same way.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional

from ledgerguard.domain.entities import Currency

ENV_PREFIX = "LEDGERGUARD_"


@dataclass(frozen=True)
class LedgerSettings:
    """Fixed accounts, tolerances and store limits used by the ledger core."""

    fee_income_account: str = "4001"
    commission_income_account: str = "4002"
    expense_account: str = "5001"
    client_group_account: str = "6000"
    cash_account_prefixes: tuple[str, ...] = ("1001", "1002")
    cash_name_keywords: tuple[str, ...] = ("cash", "bank")
    fallback_rates: Mapping[Currency, Decimal] = field(default_factory=dict)
    balance_tolerance: Decimal = Decimal("0.01")
    activity_threshold: Decimal = Decimal("0.01")
    store_timeout_seconds: float = 5.0

    def client_account_id(self, client_id: str) -> str:
        """Liability account id holding what the exchange owes a client."""
        return f"{self.client_group_account}{client_id}"


def parse_fallback_rates(value: str) -> dict[Currency, Decimal]:
    """Parse ``"YER=530,SAR=3.75"`` into a currency -> rate mapping.

    Raises:
        ValueError: If a pair is malformed, the currency is unknown or the
            rate is not a positive number
    """
    rates: dict[Currency, Decimal] = {}
    for pair in value.split(","):
        pair = pair.strip()
        if not pair:
            continue
        code, sep, raw_rate = pair.partition("=")
        if not sep:
            raise ValueError(f"Invalid fallback rate '{pair}', expected CODE=RATE")
        try:
            currency = Currency(code.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown currency '{code.strip()}' in fallback rates")
        try:
            rate = Decimal(raw_rate.strip())
        except InvalidOperation:
            raise ValueError(f"Invalid rate '{raw_rate.strip()}' for {currency.value}")
        if rate <= 0:
            raise ValueError(f"Fallback rate for {currency.value} must be positive")
        rates[currency] = rate
    return rates


def load_settings(environ: Optional[Mapping[str, str]] = None) -> LedgerSettings:
    """Build settings from environment variables, falling back to defaults.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        LedgerSettings instance
    """
    env = os.environ if environ is None else environ
    defaults = LedgerSettings()

    def get(name: str, default: str) -> str:
        return env.get(f"{ENV_PREFIX}{name}", default)

    prefixes = tuple(
        p.strip()
        for p in get("CASH_PREFIXES", ",".join(defaults.cash_account_prefixes)).split(",")
        if p.strip()
    )
    timeout_raw = get("STORE_TIMEOUT", str(defaults.store_timeout_seconds))
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(f"Invalid {ENV_PREFIX}STORE_TIMEOUT '{timeout_raw}'")

    return LedgerSettings(
        fee_income_account=get("FEE_INCOME_ACCOUNT", defaults.fee_income_account),
        commission_income_account=get("COMMISSION_ACCOUNT", defaults.commission_income_account),
        expense_account=get("EXPENSE_ACCOUNT", defaults.expense_account),
        client_group_account=get("CLIENT_GROUP_ACCOUNT", defaults.client_group_account),
        cash_account_prefixes=prefixes,
        fallback_rates=parse_fallback_rates(get("FALLBACK_RATES", "")),
        store_timeout_seconds=timeout,
    )


def default_database_path(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return ``LEDGERGUARD_DB_PATH`` or ``~/.ledgerguard/ledger.db``."""
    env = os.environ if environ is None else environ
    database_path = env.get(f"{ENV_PREFIX}DB_PATH")
    if database_path:
        return database_path

    db_dir = Path.home() / ".ledgerguard"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "ledger.db")
