"""Exchange rate commands."""

import click

from ledgerguard.cli.error_handling import CLI_ERRORS, handle_domain_error
from ledgerguard.domain.fx import StoreFxRateProvider
from ledgerguard.utils.amount_parser import parse_amount, parse_currency


@click.group()
def rate_group():
    """Record and show exchange rates (units of currency per 1 USD)."""
    pass


@rate_group.command("add")
@click.argument("currency")
@click.argument("buy_rate")
@click.argument("sell_rate")
@click.pass_context
def add_rate(ctx, currency: str, buy_rate: str, sell_rate: str):
    """Record a new buy/sell rate for CURRENCY.

    Examples:
        ledgerguard rate add YER 530 535
        ledgerguard rate add SAR 3.75 3.76
    """
    db = ctx.obj["db"]
    provider = StoreFxRateProvider(db, ctx.obj["settings"].fallback_rates)

    try:
        code = parse_currency(currency)
        buy = parse_amount(buy_rate)
        sell = parse_amount(sell_rate)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        provider.record_rate(code, buy, sell)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded {code.value} rate: buy {buy} / sell {sell}")


@rate_group.command("show")
@click.option("--currency", help="Only show history for this currency")
@click.option("--history", is_flag=True, help="Show every recorded rate, newest first")
@click.pass_context
def show_rates(ctx, currency: str | None, history: bool):
    """Show the current (or historical) rates."""
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]

    try:
        code = parse_currency(currency) if currency else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        rows = db.list_fx_rates(code)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if not history:
        latest = {}
        for row in rows:
            latest.setdefault(row.currency, row)
        rows = list(latest.values())

    if not rows:
        click.echo("No exchange rates recorded.")
    for row in rows:
        click.echo(
            f"{row.currency.value:5s} buy {row.buy_rate:>12} sell {row.sell_rate:>12}  "
            f"({row.recorded_at:%Y-%m-%d %H:%M})"
        )

    for fallback_currency, fallback in settings.fallback_rates.items():
        if code is None or code == fallback_currency:
            click.echo(f"{fallback_currency.value:5s} fallback {fallback}")


def register_commands(cli):
    """Register rate commands with main CLI."""
    cli.add_command(rate_group, name="rate")
