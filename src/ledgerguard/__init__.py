"""Double-entry ledger integrity and reporting for an exchange back office."""

__version__ = "0.1.0"


# The CLI imports the whole package, so expose it lazily
def __getattr__(name):
    if name == "main":
        from ledgerguard.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
