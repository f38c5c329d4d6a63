"""CLI helper for account resolution."""

from __future__ import annotations

import click

from ledgerguard.domain.account import AccountService
from ledgerguard.domain.errors import NotFoundError
from ledgerguard.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str
) -> str:
    """Resolve account code or name, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except NotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
