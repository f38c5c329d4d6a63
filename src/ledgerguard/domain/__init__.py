"""Domain layer for ledgerguard: ledger services, guard and reports."""

# Services are resolved lazily so that the store layer can import
# ledgerguard.domain.entities without pulling every service in.
_SERVICES = {
    "AccountService": "ledgerguard.domain.account",
    "JournalService": "ledgerguard.domain.journal",
    "BalanceCalculator": "ledgerguard.domain.balance",
    "ClientBalanceService": "ledgerguard.domain.balance",
    "ReconciliationGuard": "ledgerguard.domain.reconciliation",
    "AutoPostingEngine": "ledgerguard.domain.posting",
    "TransactionPostingService": "ledgerguard.domain.posting",
    "StoreFxRateProvider": "ledgerguard.domain.fx",
    "ReportService": "ledgerguard.domain.reports",
    "TransactionService": "ledgerguard.domain.intake",
    "SourceRecordService": "ledgerguard.domain.intake",
    "SequenceService": "ledgerguard.domain.sequence",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
