"""CLI helpers for date options and period flags."""

from datetime import date
from typing import Callable

import click

from ledgerguard.utils.date_parser import PERIODS, get_date_range, parse_date


def period_options(func: Callable) -> Callable:
    """Add --start-date/--end-date and the period flags to a command."""
    for period in reversed(PERIODS):
        func = click.option(
            f"--{period}", is_flag=True, help=f"Restrict to {period.replace('-', ' ')}"
        )(func)
    func = click.option(
        "--end-date", help="End date (YYYY-MM-DD or relative like 'today')"
    )(func)
    func = click.option(
        "--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')"
    )(func)
    return func


def pop_period_flags(kwargs: dict) -> dict[str, bool]:
    """Remove the period flags from a command's kwargs."""
    return {period: kwargs.pop(period.replace("-", "_"), False) for period in PERIODS}


def parse_date_or_exit(ctx: click.Context, value: str | None, label: str) -> date | None:
    """Parse an optional date option, or exit with a CLI error."""
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from period flags or explicit dates."""
    chosen = [period for period, is_set in period_flags.items() if is_set]

    if len(chosen) > 1:
        click.echo("Error: Only one period option can be specified at a time.", err=True)
        ctx.exit(1)

    if chosen and (start_date or end_date):
        click.echo(
            "Error: Period options cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if chosen:
        return get_date_range(chosen[0])

    return (
        parse_date_or_exit(ctx, start_date, "start date"),
        parse_date_or_exit(ctx, end_date, "end date"),
    )
