"""LedgerAudit command-line interface."""

from ledgeraudit.cli.main import app, main

__all__ = ["app", "main"]
