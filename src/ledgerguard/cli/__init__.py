"""Command line interface for ledgerguard."""
