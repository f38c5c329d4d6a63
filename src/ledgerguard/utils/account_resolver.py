"""Utility for resolving account codes and names to IDs."""

from ledgerguard.domain.account import AccountService
from ledgerguard.domain.errors import NotFoundError, account_not_found


def resolve_account(account_service: AccountService, account: str) -> str:
    """Resolve an account code or name to the account code.

    A numeric string is looked up as a code first; anything else, or a code
    that does not exist, is matched against account names.

    Raises:
        NotFoundError: If no account matches
    """
    account = account.strip()
    if account.isdigit() and account_service.get_account(account) is not None:
        return account

    match = account_service.find_by_name(account)
    if match is not None:
        return match.id

    if account.isdigit():
        raise NotFoundError(account_not_found(account))
    raise NotFoundError(f"Account '{account}' not found")
