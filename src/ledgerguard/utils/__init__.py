"""Utility functions for ledgerguard."""

from ledgerguard.utils.date_parser import parse_date
from ledgerguard.utils.amount_parser import parse_amount, parse_currency
from ledgerguard.utils.account_resolver import resolve_account

__all__ = ["parse_date", "parse_amount", "parse_currency", "resolve_account"]
