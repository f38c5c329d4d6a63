"""Amount and currency parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

from ledgerguard.domain.entities import Currency

_CURRENCY_SYMBOLS = re.compile(r"[$€£﷼]")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles "1234.5", "$1,234.50", "-12" and accounting style "(12.00)".
    A trailing currency code such as "530000 YER" is ignored; use
    ``parse_currency`` to read it.

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    is_negative = text.startswith("(") and text.endswith(")")
    if is_negative:
        text = text[1:-1]

    text = _CURRENCY_SYMBOLS.sub("", text)
    text = re.sub(r"\s*[A-Za-z]{3,4}$", "", text)
    text = text.replace(",", "").strip()

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str.strip()}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str.strip()}'")
    return -amount if is_negative else amount


def parse_currency(code: str) -> Currency:
    """Parse a currency code (case-insensitive).

    Raises:
        ValueError: If the code is not a supported currency
    """
    try:
        return Currency(code.strip().upper())
    except ValueError:
        supported = ", ".join(c.value for c in Currency)
        raise ValueError(f"Unsupported currency '{code}'. Supported: {supported}")
