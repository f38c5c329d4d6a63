"""Notification sink interface for posting announcements."""

from collections import deque
from decimal import Decimal
from typing import Protocol, Sequence

from ledgerguard.domain.entities import JournalEntryDraft
from ledgerguard.logging_config import get_logger

logger = get_logger("notifications")


class NotificationSink(Protocol):
    """Fire-and-forget message channel (chat bot, e-mail, ...)."""

    def send(self, message: str) -> None:
        ...


class LoggingNotificationSink:
    """Sink that writes messages to the ledgerguard log.

    The most recent ``max_kept`` messages stay readable on ``sent``.
    """

    def __init__(self, max_kept: int = 100):
        self.sent: deque[str] = deque(maxlen=max_kept)

    def send(self, message: str) -> None:
        self.sent.append(message)
        logger.info("notification", extra={"status": message.splitlines()[0] if message else ""})


class NullNotificationSink:
    """Sink that drops every message."""

    def send(self, message: str) -> None:
        pass


def format_posting_message(drafts: Sequence[JournalEntryDraft]) -> str:
    """Render a short summary of posted entries."""
    total = sum((draft.amount_usd for draft in drafts), Decimal("0"))
    lines = [f"Journal entries posted: {len(drafts)} (total {total:,.2f} USD)"]
    for draft in drafts:
        lines.append(
            f"- {draft.description}: {draft.amount_usd:,.2f} USD "
            f"{draft.debit_account_name or draft.debit_account} <- "
            f"{draft.credit_account_name or draft.credit_account}"
        )
    return "\n".join(lines)


def notify_safely(sink: NotificationSink, message: str) -> bool:
    """Send a message, logging instead of raising on sink failure.

    A failed notification must never undo a posting that already happened.

    Returns:
        True if the sink accepted the message
    """
    try:
        sink.send(message)
    except Exception as exc:
        logger.warning("notification_failed", extra={"error": repr(exc)})
        return False
    return True
