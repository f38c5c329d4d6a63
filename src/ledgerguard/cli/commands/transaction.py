"""Transaction commands."""

import click

from ledgerguard.cli.date_filters import parse_date_or_exit
from ledgerguard.cli.error_handling import CLI_ERRORS, handle_domain_error
from ledgerguard.domain.entities import TransactionStatus
from ledgerguard.domain.fx import StoreFxRateProvider
from ledgerguard.domain.intake import TransactionService
from ledgerguard.domain.notifications import LoggingNotificationSink
from ledgerguard.domain.posting import TransactionPostingService


@click.group()
def transaction_group():
    """Inspect, confirm and post exchange transactions."""
    pass


@transaction_group.command("list")
@click.option("--date", "on_date", help="Only transactions dated on this day")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TransactionStatus], case_sensitive=False),
    help="Only transactions with this status",
)
@click.pass_context
def list_transactions(ctx, on_date: str | None, status: str | None):
    """List transactions."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    day = parse_date_or_exit(ctx, on_date, "date")
    chosen = (
        next(s for s in TransactionStatus if s.value.lower() == status.lower()) if status else None
    )
    try:
        transactions = service.list_transactions(on_date=day, status=chosen)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
        return

    for txn in transactions:
        click.echo(
            f"{txn.id:8s} {txn.date.isoformat()} {txn.type.value:8s} {txn.status.value:9s} "
            f"client={txn.client_id or '-':8s} {txn.amount_usd:>12,.2f} USD "
            f"fee={txn.fee_usd:,.2f} expense={txn.expense_usd:,.2f} records={len(txn.legs)}"
        )


@transaction_group.command("confirm")
@click.argument("transaction_id")
@click.pass_context
def confirm_transaction(ctx, transaction_id: str):
    """Mark a Pending transaction as Confirmed."""
    db = ctx.obj["db"]
    try:
        TransactionService(db).confirm_transaction(transaction_id)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)
    click.echo(f"Confirmed transaction {transaction_id}")


@transaction_group.command("post")
@click.argument("transaction_id")
@click.option("--no-reconcile", is_flag=True, help="Skip the reconciliation check after posting")
@click.pass_context
def post_transaction(ctx, transaction_id: str, no_reconcile: bool):
    """Post journal entries for a Confirmed transaction.

    Posting is refused if the transaction already has entries, if a linked
    record was already used, or if the derived entries do not balance.

    Examples:
        ledgerguard transaction post T00042
    """
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]
    service = TransactionPostingService(
        db,
        settings,
        fx_provider=StoreFxRateProvider(db, settings.fallback_rates),
        notifier=LoggingNotificationSink(),
    )

    try:
        result = service.post_transaction(transaction_id, reconcile=not no_reconcile)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if not result.entry_ids:
        click.echo(f"Nothing to post for transaction {transaction_id}")
        return

    click.echo(
        f"Posted {len(result.entry_ids)} journal entr{'ies' if len(result.entry_ids) != 1 else 'y'} "
        f"for transaction {transaction_id}"
    )
    if result.report is not None:
        click.echo(f"Reconciliation: {result.report.status.value}")
        for warning in result.report.warnings:
            click.echo(f"Warning: {warning}", err=True)


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
