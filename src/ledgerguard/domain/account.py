"""Chart of accounts domain service."""

from typing import Optional

from ledgerguard.config import LedgerSettings
from ledgerguard.database.base import Database
from ledgerguard.domain.entities import (
    Account as AccountEntity,
    AccountTreeNode,
    Classification,
    Currency,
)
from ledgerguard.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
    group_account_not_postable,
)
from ledgerguard.logging_config import get_logger

logger = get_logger("accounts")


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database, settings: Optional[LedgerSettings] = None):
        """Initialize account service.

        Args:
            db: Database instance
            settings: Ledger settings (defaults used if omitted)
        """
        self.db = db
        self.settings = settings or LedgerSettings()

    def create_account(
        self,
        account_id: str,
        name: str,
        classification: Classification,
        is_group: bool = False,
        parent_id: Optional[str] = None,
        currency: Optional[Currency] = None,
        priority: int = 0,
    ) -> str:
        """Create a new account.

        Args:
            account_id: Numeric account code (e.g. "1001")
            name: Account name
            classification: Assets, Liabilities, Equity, Income or Expenses
            is_group: True for grouping accounts that only roll up children
            parent_id: Optional parent group account code
            currency: Optional account currency (USD when omitted)
            priority: Display ordering

        Returns:
            Account ID

        Raises:
            ValidationError: If the code or name is malformed or the parent is
                not a group account
            ConflictError: If the account code already exists
            NotFoundError: If the parent does not exist
        """
        account_id = (account_id or "").strip()
        if not account_id.isdigit():
            raise ValidationError(f"Account code '{account_id}' must be numeric")
        if not name or not name.strip():
            raise ValidationError("Account name is required")

        if self.db.get_account(account_id) is not None:
            raise ConflictError(f"Account {account_id} already exists")

        if parent_id is not None:
            parent = self.db.get_account(parent_id)
            if parent is None:
                raise NotFoundError(account_not_found(parent_id))
            if not parent.is_group:
                raise ValidationError(
                    f"Parent account {parent_id} is not a group account"
                )

        created = self.db.create_account(
            account_id=account_id,
            name=name.strip(),
            classification=classification,
            is_group=is_group,
            parent_id=parent_id,
            currency=currency,
            priority=priority,
        )
        logger.info("account_created", extra={"account_id": created})
        return created

    def get_account(self, account_id: str) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account code

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts ordered by priority, then code."""
        return self.db.list_accounts()

    def list_leaf_accounts(self) -> list[AccountEntity]:
        """List accounts that can receive postings."""
        return [acc for acc in self.db.list_accounts() if not acc.is_group]

    def find_by_name(self, name: str) -> Optional[AccountEntity]:
        """Find an account by exact (case-insensitive) name."""
        wanted = name.strip().lower()
        for acc in self.db.list_accounts():
            if acc.name.lower() == wanted:
                return acc
        return None

    def require_postable(self, account_id: str) -> AccountEntity:
        """Return a leaf account or raise.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the account is a group account
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.is_group:
            raise ValidationError(group_account_not_postable(account_id))
        return account

    def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        currency: Optional[Currency] = None,
        priority: Optional[int] = None,
    ) -> None:
        """Update name, currency or ordering of an account.

        Classification and grouping are fixed once created because existing
        postings were interpreted with them.
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        if name is not None and not name.strip():
            raise ValidationError("Account name is required")
        self.db.update_account(
            account_id,
            name=name.strip() if name is not None else None,
            currency=currency,
            priority=priority,
        )

    def delete_account(self, account_id: str) -> None:
        """Delete an account without postings or children.

        Raises:
            NotFoundError: If the account does not exist
            DependencyError: If the account has journal entries or children
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        entry_count = self.db.count_account_entries(account_id)
        child_count = self.db.count_child_accounts(account_id)
        if entry_count > 0 or child_count > 0:
            raise DependencyError(
                account_delete_blocked(account_id, entry_count, child_count)
            )

        self.db.delete_account(account_id)
        logger.info("account_deleted", extra={"account_id": account_id})

    def ensure_client_account(self, client_id: str, client_name: Optional[str] = None) -> AccountEntity:
        """Return the client's liability account, creating it on first use.

        Client accounts live under the configured client group (``6000``) with
        code ``<group><client_id>``.
        """
        account_id = self.settings.client_account_id(client_id)
        existing = self.db.get_account(account_id)
        if existing is not None:
            if existing.is_group:
                raise ValidationError(group_account_not_postable(account_id))
            return existing

        group_id = self.settings.client_group_account
        group = self.db.get_account(group_id)
        if group is None:
            self.db.create_account(
                account_id=group_id,
                name="Client Accounts",
                classification=Classification.LIABILITIES,
                is_group=True,
            )
        elif not group.is_group:
            raise ValidationError(f"Client group account {group_id} is not a group account")

        self.db.create_account(
            account_id=account_id,
            name=client_name or f"Client {client_id}",
            classification=Classification.LIABILITIES,
            is_group=False,
            parent_id=group_id,
            currency=Currency.USD,
        )
        logger.info(
            "client_account_created",
            extra={"account_id": account_id, "client_id": client_id},
        )
        return self.db.get_account(account_id)

    def get_account_tree(self) -> list[AccountTreeNode]:
        """Get the chart of accounts as nested nodes, roots first."""
        accounts = self.db.list_accounts()
        known_ids = {acc.id for acc in accounts}

        def build(parent_id: Optional[str]) -> tuple[AccountTreeNode, ...]:
            nodes = []
            for acc in accounts:
                acc_parent = acc.parent_id if acc.parent_id in known_ids else None
                if acc_parent == parent_id:
                    nodes.append(AccountTreeNode(account=acc, children=build(acc.id)))
            return tuple(nodes)

        return list(build(None))
