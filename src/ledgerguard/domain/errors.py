"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Malformed posting input or failed boundary validation."""


class NotFoundError(DomainError):
    """Requested account, entry, transaction or record does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent ledger data."""


class DuplicatePostingError(ConflictError):
    """Journal entries already exist for the source transaction."""


class RecordAlreadyUsedError(ConflictError):
    """A source record has already been consumed by a posting."""


class DuplicateRecordUsageError(ConflictError):
    """A source record is referenced by more than one transaction on the same day."""


class UnbalancedEntryError(ValidationError):
    """Debits and credits differ beyond the rounding tolerance."""


class RateUnavailableError(DomainError):
    """No usable exchange rate for a non-USD posting."""


class StoreError(RuntimeError):
    """The backing store failed or timed out.

    Deliberately not a DomainError: callers may retry, but must never treat it
    as a clean verification result.
    """


def account_not_found(account_id: str) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def transaction_not_found(transaction_id: str) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def record_not_found(record_id: str) -> str:
    """Return message for missing source record."""
    return f"Source record {record_id} not found"


def group_account_not_postable(account_id: str) -> str:
    """Return message when a posting targets a group account."""
    return f"Account {account_id} is a group account and cannot receive postings"


def existing_entries_for_transaction(transaction_id: str, count: int) -> str:
    """Return message when a transaction has already been posted."""
    return (
        f"Journal entries already exist for transaction {transaction_id} "
        f"({count} entr{'ies' if count != 1 else 'y'})"
    )


def entries_not_balanced(total_debits: Decimal, total_credits: Decimal) -> str:
    """Return message for an unbalanced candidate entry set."""
    return f"Journal entries not balanced: Debits {total_debits} != Credits {total_credits}"


def rate_unavailable(currency: str, direction: str) -> str:
    """Return message for a missing or unusable exchange rate."""
    return f"No usable {direction} rate for {currency}; refusing to post a USD equivalent"


def account_delete_blocked(account_id: str, entry_count: int, child_count: int) -> str:
    """Return message when an account still has postings or children."""
    parts = []
    if entry_count > 0:
        parts.append(f"{entry_count} journal entr{'ies' if entry_count != 1 else 'y'}")
    if child_count > 0:
        parts.append(f"{child_count} child account{'s' if child_count != 1 else ''}")
    return (
        f"Cannot delete account {account_id}: it has {', '.join(parts)}. "
        "Journal history is append-only."
    )
