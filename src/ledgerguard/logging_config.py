"""Logging helpers for ledgerguard.

Loggers live under the ``ledgerguard`` namespace. Messages are short event
names; context travels in ``extra`` so handlers can render it however they
like.
"""

import logging
from typing import Optional

_LOGGER_PREFIX = "ledgerguard"
_CONTEXT_FIELDS = (
    "transaction_id",
    "client_id",
    "account_id",
    "entry_count",
    "record_id",
    "currency",
    "status",
    "duplicates",
    "error",
)


class ContextFormatter(logging.Formatter):
    """Append known ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{name}={getattr(record, name)}"
            for name in _CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        ]
        if context:
            message = f"{message} [{' '.join(context)}]"
        return message


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ledgerguard namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(level: int = logging.INFO, stream=None) -> logging.Logger:
    """Attach a single stream handler to the ledgerguard root logger.

    Calling it again replaces the previous handler instead of stacking them.
    """
    root = logging.getLogger(_LOGGER_PREFIX)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        ContextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    return root


def reset_logging(logger: Optional[logging.Logger] = None) -> None:
    """Remove handlers installed by configure_logging."""
    root = logger or logging.getLogger(_LOGGER_PREFIX)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.propagate = True
    root.setLevel(logging.NOTSET)
