"""Reconciliation commands."""

import click

from ledgerguard.cli.error_handling import CLI_ERRORS, handle_domain_error
from ledgerguard.domain.reconciliation import ReconciliationGuard, ReconciliationStatus


@click.group()
def reconcile_group():
    """Check posted transactions for duplicates and imbalance."""
    pass


@reconcile_group.command("check")
@click.argument("transaction_id")
@click.option("--client", "client_id", help="Also validate this client's balance")
@click.pass_context
def check(ctx, transaction_id: str, client_id: str | None):
    """Reconcile the journal entries of one transaction.

    Exits with status 1 unless the transaction is verified.
    """
    db = ctx.obj["db"]
    guard = ReconciliationGuard(db, ctx.obj["settings"])

    if client_id is None:
        try:
            txn = db.get_transaction(transaction_id)
        except CLI_ERRORS as e:
            handle_domain_error(ctx, e)
        if txn is not None and txn.legs:
            client_id = txn.client_id

    report = guard.reconcile_transaction_posting(transaction_id, client_id)
    click.echo(f"Transaction:    {report.transaction_id}")
    click.echo(f"Status:         {report.status.value}")
    click.echo(f"Entries:        {report.journal_entries_created}")
    click.echo(f"Total debits:   {report.total_debits:,.2f}")
    click.echo(f"Total credits:  {report.total_credits:,.2f}")
    click.echo(f"Duplicates:     {report.duplicate_count}")
    for warning in report.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if report.status != ReconciliationStatus.VERIFIED:
        ctx.exit(1)


@reconcile_group.command("cleanup")
@click.argument("transaction_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def cleanup(ctx, transaction_id: str, yes: bool):
    """Delete exact-duplicate journal entries of a transaction.

    The earliest copy of each entry is kept.
    """
    db = ctx.obj["db"]
    guard = ReconciliationGuard(db, ctx.obj["settings"])

    if not yes and not click.confirm(
        f"Delete duplicate journal entries of transaction {transaction_id}?"
    ):
        click.echo("Cleanup cancelled.")
        return

    try:
        result = guard.cleanup_duplicate_journal_entries(transaction_id)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Removed {result.duplicates_removed} duplicate entr{'ies' if result.duplicates_removed != 1 else 'y'}; "
        f"{result.entries_remaining} remaining"
    )


@reconcile_group.command("audit")
@click.pass_context
def audit(ctx):
    """List source records referenced by more than one transaction."""
    db = ctx.obj["db"]
    guard = ReconciliationGuard(db, ctx.obj["settings"])

    try:
        conflicts = guard.audit_duplicate_record_usage()
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if not conflicts:
        click.echo("No duplicate record usage found.")
        return

    for conflict in conflicts:
        click.echo(f"{conflict.record_id}: {', '.join(conflict.linked_transaction_ids)}")
    ctx.exit(1)


@reconcile_group.command("journey")
@click.argument("record_id")
@click.pass_context
def journey(ctx, record_id: str):
    """Show the transactions and journal entries that used a source record."""
    db = ctx.obj["db"]
    guard = ReconciliationGuard(db, ctx.obj["settings"])

    try:
        result = guard.record_journey(record_id)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    record = result.record
    click.echo(f"Record:          {record.id} ({record.record_type.value}, {record.status.value})")
    click.echo(f"Amount:          {record.amount_usd:,.2f} USD on {record.date.isoformat()}")
    click.echo(f"Transactions:    {', '.join(t.id for t in result.linked_transactions) or 'none'}")
    click.echo(f"Balance impact:  {result.balance_impact:,.2f}")
    click.echo(f"Fully processed: {'yes' if result.is_fully_processed else 'no'}")
    for entry in result.journal_entries:
        click.echo(
            f"{entry.id:>5d}  {entry.date.isoformat()}  {entry.debit_account:>8s}  "
            f"{entry.credit_account:>8s}  {entry.amount_usd:>14,.2f}  {entry.description}"
        )


def register_commands(cli):
    """Register reconcile commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
