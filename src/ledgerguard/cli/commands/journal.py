"""Journal commands."""

from datetime import date

import click

from ledgerguard.cli.account_resolution import resolve_account_or_exit
from ledgerguard.cli.date_filters import (
    parse_date_or_exit,
    period_options,
    pop_period_flags,
    resolve_cli_date_range,
)
from ledgerguard.cli.error_handling import CLI_ERRORS, handle_domain_error
from ledgerguard.domain.account import AccountService
from ledgerguard.domain.entities import EntrySide
from ledgerguard.domain.fx import StoreFxRateProvider
from ledgerguard.domain.journal import JournalService
from ledgerguard.domain.notifications import LoggingNotificationSink
from ledgerguard.utils.amount_parser import parse_amount


@click.group()
def journal_group():
    """Post and inspect journal entries."""
    pass


@journal_group.command("post")
@click.option("--debit", required=True, help="Account code or name to debit")
@click.option("--credit", required=True, help="Account code or name to credit")
@click.option("--amount", required=True, help="Amount in the entered side's account currency")
@click.option("--description", required=True, help="Entry description")
@click.option("--date", "entry_date", help="Entry date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.option(
    "--entered-side",
    type=click.Choice([s.value for s in EntrySide]),
    default=EntrySide.DEBIT.value,
    show_default=True,
    help="Which account's currency --amount is given in",
)
@click.option("--transaction", "transaction_id", help="Source transaction ID this entry belongs to")
@click.pass_context
def post_entry(
    ctx,
    debit: str,
    credit: str,
    amount: str,
    description: str,
    entry_date: str | None,
    entered_side: str,
    transaction_id: str | None,
):
    """Post a manual journal entry.

    Amounts on non-USD accounts are converted with the latest recorded rate
    (buy rate for the debit side, sell rate for the credit side).

    Examples:
        ledgerguard journal post --debit 1001 --credit 3001 --amount 5000 --description "Opening capital"
        ledgerguard journal post --debit "Sanaa Bank YER" --credit 1001 --amount 530000 --description "Deposit YER"
    """
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]
    accounts = AccountService(db, settings)

    debit_id = resolve_account_or_exit(ctx, accounts, debit)
    credit_id = resolve_account_or_exit(ctx, accounts, credit)
    posted_on = parse_date_or_exit(ctx, entry_date, "date") or date.today()

    try:
        entry_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    service = JournalService(
        db,
        settings,
        fx_provider=StoreFxRateProvider(db, settings.fallback_rates),
        notifier=LoggingNotificationSink(),
    )
    try:
        entry_id = service.post_manual_entry(
            entry_date=posted_on,
            description=description,
            debit_account_id=debit_id,
            credit_account_id=credit_id,
            amount=entry_amount,
            entered_side=EntrySide(entered_side),
            source_transaction_id=transaction_id,
        )
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    entry = service.get_entry(entry_id)
    click.echo(
        f"Posted entry {entry_id}: {entry.amount_usd:,.2f} USD "
        f"{entry.debit_account} <- {entry.credit_account}"
    )


@journal_group.command("list")
@click.option("--account", help="Only entries touching this account (code or name)")
@click.option("--transaction", "transaction_id", help="Only entries of this source transaction")
@period_options
@click.pass_context
def list_entries(ctx, account: str | None, transaction_id: str | None, **kwargs):
    """List journal entries ordered by date."""
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]
    period_flags = pop_period_flags(kwargs)
    start, end = resolve_cli_date_range(
        ctx,
        start_date=kwargs["start_date"],
        end_date=kwargs["end_date"],
        period_flags=period_flags,
    )

    service = JournalService(db, settings)
    account_id = (
        resolve_account_or_exit(ctx, service.accounts, account) if account else None
    )
    try:
        if transaction_id:
            entries = [
                e
                for e in service.entries_for_transaction(transaction_id)
                if (start is None or e.date >= start) and (end is None or e.date <= end)
                and (account_id is None or e.touches(account_id))
            ]
        else:
            entries = service.list_entries(start_date=start, end_date=end, account_id=account_id)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if not entries:
        click.echo("No journal entries found.")
        return

    click.echo(f"{'ID':>5s}  {'Date':10s}  {'Debit':>8s}  {'Credit':>8s}  {'USD':>14s}  Description")
    click.echo("-" * 90)
    for entry in entries:
        click.echo(
            f"{entry.id:>5d}  {entry.date.isoformat()}  {entry.debit_account:>8s}  "
            f"{entry.credit_account:>8s}  {entry.amount_usd:>14,.2f}  {entry.description}"
        )
    click.echo("-" * 90)
    click.echo(f"{len(entries)} entr{'ies' if len(entries) != 1 else 'y'}")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
