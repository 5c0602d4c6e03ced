# -*- coding: utf-8 -*-
"""
LedgerAudit CLI
===============

Command-line entry point for account audits.

    ledgeraudit compare -a archiver.sqlite3 -n ./nodes [-v]
    ledgeraudit version

Exit codes: 0 when the audit completes, 1 when the archiver cannot be
loaded, the configuration is invalid or an output file cannot be written,
2 when ``--fail-on-mismatch`` is given and mismatches were found.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from ledgeraudit._version import __version__
from ledgeraudit.account_reconciliation.audit_pipeline import (
    AuditPipelineEngine,
)
from ledgeraudit.account_reconciliation.config import (
    AccountReconciliationConfig,
    set_config,
)
from ledgeraudit.account_reconciliation.metrics import write_metrics_textfile
from ledgeraudit.account_reconciliation.report_writer import ReportWriter
from ledgeraudit.exceptions import (
    ConfigurationError,
    SourceError,
    format_exception_chain,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_MISMATCH = 2

# Create the main app
app = typer.Typer(
    name="ledgeraudit",
    help="LedgerAudit: compare archiver and node account databases",
    no_args_is_help=True,
    add_completion=False,
)
console = Console(highlight=False)


@app.callback(invoke_without_command=True)
def _root(
    version: bool = typer.Option(False, "--version", help="Show version and exit")
):
    """
    LedgerAudit - account consistency auditing
    """
    if version:
        console.print(f"LedgerAudit v{__version__}")
        raise typer.Exit(0)


@app.command()
def version():
    """Show LedgerAudit version"""
    console.print(f"[bold green]LedgerAudit v{__version__}[/bold green]")
    console.print("Account consistency auditing for replicated ledgers")


@app.command()
def compare(
    archiver_db: Path = typer.Option(
        ..., "--archiver-db", "-a", help="Path to archiver database file"
    ),
    nodes_folder: Path = typer.Option(
        ..., "--nodes-folder", "-n", help="Path to folder containing node instances"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print all data (not just mismatches)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the report as JSON to this file"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", help="Node databases loaded concurrently"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Store busy timeout in seconds"
    ),
    metrics_file: Optional[Path] = typer.Option(
        None, "--metrics-file", help="Write Prometheus metrics to this textfile"
    ),
    fail_on_mismatch: bool = typer.Option(
        False, "--fail-on-mismatch", help="Exit with code 2 when mismatches are found"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Compare accounts between the archiver and every node database"""
    try:
        config = _load_config(config_file).replace(
            max_workers=workers,
            store_timeout_seconds=timeout,
            verbose=True if verbose else None,
            log_level=log_level.upper() if log_level else None,
        )
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(e.message)}")
        raise typer.Exit(EXIT_FAILURE)

    logging.basicConfig(level=config.log_level.upper(), format=LOG_FORMAT)
    set_config(config)

    engine = AuditPipelineEngine(config)
    try:
        report = engine.run(archiver_db, nodes_folder)
    except SourceError as e:
        logger.error("Audit aborted:\n%s", format_exception_chain(e))
        logger.debug("Error detail: %s", e.to_json())
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(EXIT_FAILURE)

    writer = ReportWriter(console=console, verbose=config.verbose)
    writer.render(report)

    try:
        if output:
            path = writer.write_json(report, output)
            console.print(f"\nReport written to {escape(str(path))}")
        if metrics_file:
            write_metrics_textfile(metrics_file)
    except OSError as e:
        logger.error("Failed to write output: %s", e)
        console.print(f"[red]Error:[/red] Failed to write output: {escape(str(e))}")
        raise typer.Exit(EXIT_FAILURE)

    if fail_on_mismatch and report.summary.mismatches > 0:
        raise typer.Exit(EXIT_MISMATCH)


def _load_config(config_file: Optional[Path]) -> AccountReconciliationConfig:
    if config_file is not None:
        return AccountReconciliationConfig.from_yaml(config_file)
    return AccountReconciliationConfig.from_env()


def main():
    """Main entry point for the ledgeraudit CLI"""
    app()


if __name__ == "__main__":
    main()
