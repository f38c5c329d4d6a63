"""Initialize the default chart of accounts."""

import click

from ledgerguard.config import LedgerSettings
from ledgerguard.domain.account import AccountService
from ledgerguard.domain.entities import Classification, Currency
from ledgerguard.domain.errors import DomainError


def default_chart(settings: LedgerSettings) -> list[tuple]:
    """Chart of accounts as ``(code, name, classification, is_group, parent, currency)``.

    Groups come before their children.
    """
    return [
        ("1000", "Assets", Classification.ASSETS, True, None, None),
        ("1001", "Cash Box", Classification.ASSETS, False, "1000", Currency.USD),
        ("1002", "Bank Account", Classification.ASSETS, False, "1000", Currency.USD),
        ("1003", "USDT Wallet", Classification.ASSETS, False, "1000", Currency.USDT),
        ("2000", "Liabilities", Classification.LIABILITIES, True, None, None),
        (settings.client_group_account, "Client Accounts", Classification.LIABILITIES, True, None, None),
        ("3000", "Equity", Classification.EQUITY, True, None, None),
        ("3001", "Owner Capital", Classification.EQUITY, False, "3000", Currency.USD),
        ("4000", "Income", Classification.INCOME, True, None, None),
        (settings.fee_income_account, "Fee Income", Classification.INCOME, False, "4000", Currency.USD),
        (settings.commission_income_account, "Exchange Rate Commission", Classification.INCOME, False, "4000", Currency.USD),
        ("5000", "Expenses", Classification.EXPENSES, True, None, None),
        (settings.expense_account, "Transaction Expenses", Classification.EXPENSES, False, "5000", Currency.USD),
    ]


@click.command("init-accounts")
@click.pass_context
def init_accounts(ctx):
    """Create the default chart of accounts.

    Accounts that already exist are left untouched.
    """
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]
    service = AccountService(db, settings)

    click.echo("Creating default chart of accounts...")

    created = 0
    skipped = 0
    errors = 0
    for code, name, classification, is_group, parent, currency in default_chart(settings):
        if service.get_account(code) is not None:
            skipped += 1
            continue
        try:
            service.create_account(
                account_id=code,
                name=name,
                classification=classification,
                is_group=is_group,
                parent_id=parent,
                currency=currency,
            )
            created += 1
        except DomainError as e:
            click.echo(f"Warning: Could not create account {code} '{name}': {e}", err=True)
            errors += 1

    if errors == 0:
        click.echo(f"Created {created} accounts ({skipped} already existed).")
    else:
        click.echo(f"Created {created} accounts with {errors} errors.")


def register_commands(cli):
    """Register init-accounts command with main CLI."""
    cli.add_command(init_accounts)
