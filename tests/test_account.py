"""Tests for the chart of accounts service and account commands."""

import pytest

from ledgerguard.cli.main import cli
from ledgerguard.domain.entities import Classification, Currency
from ledgerguard.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from ledgerguard.utils.account_resolver import resolve_account


class TestAccountService:
    def test_create_and_get(self, account_service):
        account_service.create_account("1000", "Assets", Classification.ASSETS, is_group=True)
        account_id = account_service.create_account(
            "1004", " Sanaa Bank YER ", Classification.ASSETS, parent_id="1000", currency=Currency.YER
        )

        account = account_service.get_account(account_id)
        assert account.id == "1004"
        assert account.name == "Sanaa Bank YER"
        assert account.parent_id == "1000"
        assert account.effective_currency == Currency.YER
        assert account.is_normal_debit

    def test_currency_defaults_to_usd(self, account_service):
        account_service.create_account("3001", "Owner Capital", Classification.EQUITY)

        account = account_service.get_account("3001")
        assert account.currency is None
        assert account.effective_currency == Currency.USD
        assert not account.is_normal_debit

    @pytest.mark.parametrize("code,name", [("10A1", "Bad code"), ("", "Empty"), ("1001", "  ")])
    def test_invalid_input(self, account_service, code, name):
        with pytest.raises(ValidationError):
            account_service.create_account(code, name, Classification.ASSETS)

    def test_duplicate_code(self, account_service, chart):
        with pytest.raises(ConflictError, match="already exists"):
            account_service.create_account("1001", "Another cash box", Classification.ASSETS)

    def test_parent_must_exist(self, account_service):
        with pytest.raises(NotFoundError):
            account_service.create_account("1001", "Cash", Classification.ASSETS, parent_id="1000")

    def test_parent_must_be_group(self, account_service, chart):
        with pytest.raises(ValidationError, match="not a group"):
            account_service.create_account("1010", "Petty cash", Classification.ASSETS, parent_id="1001")

    def test_list_leaf_accounts(self, account_service, chart):
        leaves = {acc.id for acc in account_service.list_leaf_accounts()}

        assert "1001" in leaves
        assert "1000" not in leaves
        assert "6000" not in leaves

    def test_find_by_name_case_insensitive(self, account_service, chart):
        assert account_service.find_by_name("cash box").id == "1001"
        assert account_service.find_by_name("No such account") is None

    def test_require_postable(self, account_service, chart):
        assert account_service.require_postable("1001").id == "1001"
        with pytest.raises(ValidationError, match="group account"):
            account_service.require_postable("1000")
        with pytest.raises(NotFoundError):
            account_service.require_postable("1999")

    def test_update_account(self, account_service, chart):
        account_service.update_account("1004", name="Aden Bank YER", priority=5)

        account = account_service.get_account("1004")
        assert account.name == "Aden Bank YER"
        assert account.priority == 5
        assert account.currency == Currency.YER

    def test_delete_unused_account(self, account_service, chart):
        account_service.delete_account("1500")

        assert account_service.get_account("1500") is None

    def test_delete_account_with_entries(self, account_service, chart, write_entry):
        write_entry("1001", "3001", 100)

        with pytest.raises(DependencyError, match="1 journal entry"):
            account_service.delete_account("1001")

    def test_delete_group_with_children(self, account_service, chart):
        with pytest.raises(DependencyError, match="child account"):
            account_service.delete_account("1000")

    def test_ensure_client_account(self, account_service, chart):
        created = account_service.ensure_client_account("42", "Ali Hassan")
        again = account_service.ensure_client_account("42")

        assert created.id == again.id == "600042"
        assert created.name == "Ali Hassan"
        assert created.parent_id == "6000"
        assert created.classification == Classification.LIABILITIES

    def test_ensure_client_account_creates_group(self, account_service):
        account = account_service.ensure_client_account("9")

        group = account_service.get_account("6000")
        assert group.is_group
        assert account.parent_id == "6000"

    def test_account_tree(self, account_service, chart):
        tree = account_service.get_account_tree()

        roots = [node.account.id for node in tree]
        assert roots == ["1000", "2000", "3000", "4000", "5000", "6000"]
        assets = tree[0]
        assert [child.account.id for child in assets.children] == ["1001", "1002", "1003", "1004", "1500"]


class TestResolveAccount:
    def test_by_code(self, account_service, chart):
        assert resolve_account(account_service, "1002") == "1002"

    def test_by_name(self, account_service, chart):
        assert resolve_account(account_service, "Fee Income") == "4001"

    def test_unknown(self, account_service, chart):
        with pytest.raises(NotFoundError, match="Account 'Nowhere' not found"):
            resolve_account(account_service, "Nowhere")

    def test_unknown_code(self, account_service, chart):
        with pytest.raises(NotFoundError, match="Account 1999 not found"):
            resolve_account(account_service, "1999")


def test_account_create(cli_runner, temp_db):
    """Test creating an account from the command line."""
    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "account", "create", "1000", "Assets",
         "--type", "assets", "--group"],
    )

    assert result.exit_code == 0
    assert "Created account 1000 'Assets'" in result.output


def test_account_create_with_parent_and_currency(cli_runner, temp_db, chart):
    """Test creating a YER account under the assets group by name."""
    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "account", "create", "1005", "Aden Bank",
         "--type", "Assets", "--parent", "Assets", "--currency", "yer"],
    )

    assert result.exit_code == 0
    account = temp_db.get_account("1005")
    assert account.parent_id == "1000"
    assert account.currency == Currency.YER


def test_account_create_bad_currency(cli_runner, temp_db):
    """Test an unsupported currency is rejected."""
    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "account", "create", "1001", "Cash",
         "--type", "Assets", "--currency", "EUR"],
    )

    assert result.exit_code == 1
    assert "Unsupported currency" in result.output


def test_account_create_duplicate(cli_runner, temp_db, chart):
    """Test creating a duplicate account code fails."""
    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "account", "create", "1001", "Cash",
         "--type", "Assets"],
    )

    assert result.exit_code == 1
    assert "already exists" in result.output.lower()


def test_account_list_empty(cli_runner, temp_db):
    """Test listing accounts when none exist."""
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "account", "list"])

    assert result.exit_code == 0
    assert "No accounts found" in result.output


def test_account_list_tree(cli_runner, temp_db, chart):
    """Test listing the chart of accounts."""
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "account", "list"])

    assert result.exit_code == 0
    assert "Cash Box" in result.output
    assert "Sanaa Bank YER" in result.output
    assert "group" in result.output


def test_account_delete(cli_runner, temp_db, chart):
    """Test deleting an unused account by name."""
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "delete", "Office Equipment", "--yes"]
    )

    assert result.exit_code == 0
    assert "Deleted account 1500" in result.output


def test_account_delete_with_entries(cli_runner, temp_db, chart, write_entry):
    """Test deleting an account with postings fails."""
    write_entry("1001", "3001", 100)

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "delete", "1001", "--yes"]
    )

    assert result.exit_code == 1
    assert "append-only" in result.output


def test_account_delete_cancelled(cli_runner, temp_db, chart):
    """Test declining the confirmation prompt keeps the account."""
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "delete", "1500"], input="n\n"
    )

    assert result.exit_code == 0
    assert "Deletion cancelled" in result.output
    assert temp_db.get_account("1500") is not None
