"""Chart of accounts commands."""

import click

from ledgerguard.cli.account_resolution import resolve_account_or_exit
from ledgerguard.cli.error_handling import CLI_ERRORS, handle_domain_error
from ledgerguard.domain.account import AccountService
from ledgerguard.domain.entities import AccountTreeNode, Classification
from ledgerguard.utils.amount_parser import parse_currency


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code", metavar="CODE")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "classification",
    type=click.Choice([c.value for c in Classification], case_sensitive=False),
    required=True,
    help="Account classification",
)
@click.option("--group", "is_group", is_flag=True, help="Create a group account that only rolls up children")
@click.option("--parent", help="Parent group account code or name")
@click.option("--currency", help="Account currency (USD, YER, SAR, USDT)")
@click.option("--priority", type=int, default=0, help="Display ordering")
@click.pass_context
def create_account(
    ctx,
    code: str,
    name: str,
    classification: str,
    is_group: bool,
    parent: str | None,
    currency: str | None,
    priority: int,
):
    """Create a new account.

    Examples:
        ledgerguard account create 1004 "Sanaa Bank YER" --type Assets --parent 1000 --currency YER
        ledgerguard account create 7000 "Suspense" --type Liabilities --group
    """
    db = ctx.obj["db"]
    service = AccountService(db, ctx.obj["settings"])

    parent_id = resolve_account_or_exit(ctx, service, parent) if parent else None
    try:
        account_currency = parse_currency(currency) if currency else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    chosen = next(c for c in Classification if c.value.lower() == classification.lower())
    try:
        account_id = service.create_account(
            account_id=code,
            name=name,
            classification=chosen,
            is_group=is_group,
            parent_id=parent_id,
            currency=account_currency,
            priority=priority,
        )
        click.echo(f"Created account {account_id} '{name}'")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


def _echo_tree(nodes: tuple[AccountTreeNode, ...] | list[AccountTreeNode], depth: int = 0) -> None:
    for node in nodes:
        acc = node.account
        indent = "    " * depth
        kind = "group" if acc.is_group else acc.effective_currency.value
        click.echo(f"{acc.id:>8s} | {indent}{acc.name:<{40 - len(indent)}s} | {acc.classification.value:<11s} | {kind}")
        _echo_tree(node.children, depth + 1)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List the chart of accounts as a tree."""
    db = ctx.obj["db"]
    service = AccountService(db, ctx.obj["settings"])

    tree = service.get_account_tree()
    if not tree:
        click.echo("No accounts found. Run 'ledgerguard init-accounts' to create the default chart.")
        return

    click.echo("\nChart of accounts:")
    click.echo("-" * 80)
    _echo_tree(tree)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account code or name. Accounts with journal entries or
    child accounts cannot be deleted.

    Examples:
        ledgerguard account delete 1004
        ledgerguard account delete "Sanaa Bank YER" --yes
    """
    db = ctx.obj["db"]
    service = AccountService(db, ctx.obj["settings"])

    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account {account_id} '{account_obj.name}'?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
        click.echo(f"Deleted account {account_id} '{account_obj.name}'")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
