"""CLI error handling helpers."""

import click

from ledgerguard.domain.errors import DomainError, StoreError


def handle_domain_error(ctx: click.Context, error: DomainError | StoreError | ValueError) -> None:
    """Render a domain or store error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


# Errors rendered as "Error: ..." instead of a traceback
CLI_ERRORS = (DomainError, StoreError)
