"""Report commands."""

from decimal import Decimal

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
from ledgerguard.domain.balance import ClientBalance
from ledgerguard.domain.reports import ReportService

WIDTH = 78


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


def _period_label(start, end) -> str:
    if start is None and end is None:
        return "all dates"
    return f"{start.isoformat() if start else 'beginning'} to {end.isoformat() if end else 'today'}"


def _date_range(ctx, kwargs: dict):
    period_flags = pop_period_flags(kwargs)
    return resolve_cli_date_range(
        ctx,
        start_date=kwargs.pop("start_date"),
        end_date=kwargs.pop("end_date"),
        period_flags=period_flags,
    )


@click.group()
def report_group():
    """Financial reports."""
    pass


@report_group.command("trial-balance")
@click.option("--as-of", help="Include entries up to this date (default: all)")
@click.option("--from", "period_start", help="Only include entries from this date")
@click.pass_context
def trial_balance(ctx, as_of: str | None, period_start: str | None):
    """Trial balance: debit and credit columns per account."""
    service = ReportService(ctx.obj["db"], ctx.obj["settings"])
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")
    start = parse_date_or_exit(ctx, period_start, "start date")

    try:
        report = service.trial_balance(as_of=as_of_date, period_start=start)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nTrial balance as of {as_of_date.isoformat() if as_of_date else 'today'}")
    click.echo("=" * WIDTH)
    for row in report.rows:
        marker = " !" if row.is_abnormal else ""
        debit = _money(row.debit) if row.debit else ""
        credit = _money(row.credit) if row.credit else ""
        click.echo(f"{row.account_id:>8s}  {row.account_name:<34s} {debit:>15s} {credit:>15s}{marker}")
    click.echo("-" * WIDTH)
    click.echo(f"{'Total':<44s} {_money(report.total_debits):>15s} {_money(report.total_credits):>15s}")
    if report.is_balanced:
        click.echo("Trial balance is balanced.")
    else:
        click.echo(f"OUT OF BALANCE by {_money(report.difference)}")
        ctx.exit(1)


@report_group.command("balances")
@period_options
@click.pass_context
def account_balances(ctx, **kwargs):
    """Gross increases, decreases and net change per account."""
    start, end = _date_range(ctx, kwargs)
    service = ReportService(ctx.obj["db"], ctx.obj["settings"])
    try:
        report = service.account_balances(start, end)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nAccount balances: {_period_label(start, end)}")
    for section in report.sections:
        if not section.rows:
            continue
        click.echo(f"\n{section.classification.value}")
        click.echo("-" * WIDTH)
        for row in section.rows:
            name = f"[{row.account_name}]" if row.is_group else row.account_name
            click.echo(
                f"{row.account_id:>8s}  {name:<28s} {_money(row.increases):>13s} "
                f"{_money(row.decreases):>13s} {_money(row.net_change):>13s}"
            )
        click.echo(f"{'Total ' + section.classification.value:<38s} {_money(section.total_increases):>13s} "
                   f"{_money(section.total_decreases):>13s} {_money(section.total_net_change):>13s}")
    click.echo("=" * WIDTH)
    status = "balanced" if report.is_balanced else "NOT balanced"
    click.echo(
        f"Debit-normal {_money(report.total_debit_normal)} / "
        f"credit-normal {_money(report.total_credit_normal)}: {status}"
    )


@report_group.command("ledger")
@click.argument("account")
@period_options
@click.pass_context
def ledger(ctx, account: str, **kwargs):
    """Running ledger of ACCOUNT (code or name)."""
    start, end = _date_range(ctx, kwargs)
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db, ctx.obj["settings"]), account)
    try:
        report = ReportService(db, ctx.obj["settings"]).account_transactions(account_id, start, end)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(f"\n{report.account.id} {report.account.name}: {_period_label(start, end)}")
    click.echo("=" * WIDTH)
    click.echo(f"{'Opening balance':<60s}{_money(report.opening_balance):>18s}")
    for line in report.lines:
        amount = line.debit or line.credit
        sign = "+" if line.is_increase else "-"
        click.echo(
            f"{line.date.isoformat()}  {line.description[:30]:<30s} {line.counter_account:>8s} "
            f"{sign}{_money(amount):>12s} {_money(line.balance_after):>14s}"
        )
    click.echo("-" * WIDTH)
    click.echo(f"{'Closing balance':<60s}{_money(report.closing_balance):>18s}")


@report_group.command("income")
@period_options
@click.pass_context
def income_statement(ctx, **kwargs):
    """Income statement (revenue, expenses, net income)."""
    start, end = _date_range(ctx, kwargs)
    try:
        report = ReportService(ctx.obj["db"], ctx.obj["settings"]).income_statement(start, end)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nIncome statement: {_period_label(start, end)}")
    click.echo("=" * WIDTH)
    click.echo("Revenue")
    for row in report.revenues:
        click.echo(f"    {row.account_id:>8s}  {row.account_name:<40s} {_money(row.amount):>15s}")
    click.echo(f"{'Total revenue':<56s} {_money(report.total_revenue):>15s}")
    click.echo("Expenses")
    for row in report.expenses:
        click.echo(f"    {row.account_id:>8s}  {row.account_name:<40s} {_money(row.amount):>15s}")
    click.echo(f"{'Total expenses':<56s} {_money(report.total_expenses):>15s}")
    click.echo("-" * WIDTH)
    click.echo(f"{'Net income':<56s} {_money(report.net_income):>15s}")


@report_group.command("cash-flow")
@period_options
@click.pass_context
def cash_flow(ctx, **kwargs):
    """Cash flow statement over the cash and bank accounts."""
    start, end = _date_range(ctx, kwargs)
    try:
        report = ReportService(ctx.obj["db"], ctx.obj["settings"]).cash_flow(start, end)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nCash flow: {_period_label(start, end)}")
    click.echo(f"Cash accounts: {', '.join(report.cash_accounts) or 'none'}")
    click.echo("=" * WIDTH)
    click.echo(f"{'Opening cash':<56s} {_money(report.opening_cash):>15s}")
    for section in report.sections:
        click.echo(f"\n{section.name.capitalize()} activities")
        for line in section.lines:
            click.echo(f"    {line.label:<50s} {_money(line.net):>15s}")
        click.echo(f"{'Net ' + section.name:<56s} {_money(section.net):>15s}")
    click.echo("-" * WIDTH)
    click.echo(f"{'Total inflows':<56s} {_money(report.total_inflows):>15s}")
    click.echo(f"{'Total outflows':<56s} {_money(report.total_outflows):>15s}")
    click.echo(f"{'Net change in cash':<56s} {_money(report.net_change):>15s}")
    click.echo(f"{'Closing cash':<56s} {_money(report.closing_cash):>15s}")


@report_group.command("balance-sheet")
@click.option("--as-of", help="Balance sheet date (default: today)")
@click.pass_context
def balance_sheet(ctx, as_of: str | None):
    """Balance sheet with current earnings in equity."""
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")
    try:
        report = ReportService(ctx.obj["db"], ctx.obj["settings"]).balance_sheet(as_of_date)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nBalance sheet as of {as_of_date.isoformat() if as_of_date else 'today'}")
    click.echo("=" * WIDTH)
    for section in (report.assets, report.liabilities, report.equity):
        click.echo(section.classification.value)
        for row in section.rows:
            name = f"[{row.account_name}]" if row.is_group else row.account_name
            click.echo(f"    {row.account_id:>8s}  {name:<40s} {_money(row.balance):>15s}")
        if section is report.equity:
            click.echo(f"    {'':>8s}  {'Current earnings':<40s} {_money(report.current_earnings):>15s}")
            click.echo(f"{'Total equity':<56s} {_money(report.total_equity):>15s}")
        else:
            click.echo(f"{'Total ' + section.classification.value.lower():<56s} {_money(section.total):>15s}")
    click.echo("-" * WIDTH)
    click.echo(f"{'Liabilities and equity':<56s} {_money(report.total_liabilities_and_equity):>15s}")
    if not report.is_balanced:
        click.echo("Balance sheet does NOT balance")
        ctx.exit(1)


def _echo_client_balance(balance: ClientBalance) -> None:
    click.echo(f"Client:           {balance.client_id} (account {balance.account_id})")
    click.echo(f"Balance owed:     {_money(balance.balance)}")
    click.echo(f"Total credits:    {_money(balance.total_credits)}")
    click.echo(f"Total debits:     {_money(balance.total_debits)}")
    click.echo(f"Entries:          {balance.entries_processed}")
    click.echo(f"Duplicates:       {balance.duplicates_detected}")
    for issue in balance.issues:
        click.echo(f"Warning: {issue}", err=True)


@report_group.command("client")
@click.argument("client_id")
@click.option("--as-of", help="Balance date (default: today)")
@click.pass_context
def client_balance(ctx, client_id: str, as_of: str | None):
    """Balance the exchange owes CLIENT_ID, computed from the journal."""
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")
    try:
        balance = ReportService(ctx.obj["db"], ctx.obj["settings"]).client_balance(
            client_id, as_of_date
        )
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)
    _echo_client_balance(balance)


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
