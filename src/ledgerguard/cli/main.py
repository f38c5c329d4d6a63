"""Main CLI entry point."""

import logging

import click

from ledgerguard.config import load_settings
from ledgerguard.database.factories import create_sqlite_database
from ledgerguard.logging_config import configure_logging

# Import and register all commands at module level
from ledgerguard.cli.commands import (
    account,
    init_accounts,
    journal,
    rate,
    reconcile,
    report,
    transaction,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERGUARD_DB_PATH environment variable)",
    envvar="LEDGERGUARD_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Log ledger events to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Ledgerguard - double-entry ledger for an exchange back office.

    Post transaction fees and manual entries, guard against duplicate or
    unbalanced postings, and produce trial balance, income statement, cash
    flow and balance sheet reports.
    """
    ctx.ensure_object(dict)
    if verbose:
        configure_logging(logging.INFO)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except ValueError as e:
            click.echo(f"Error: Invalid configuration: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(
            database_path=db_path, timeout=settings.store_timeout_seconds
        )
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.call_on_close(db.disconnect)


# Register all commands
init_accounts.register_commands(cli)
account.register_commands(cli)
journal.register_commands(cli)
rate.register_commands(cli)
transaction.register_commands(cli)
reconcile.register_commands(cli)
report.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
