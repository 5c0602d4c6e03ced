# -*- coding: utf-8 -*-
"""
Report Writer - Account Reconciliation

Renders a :class:`ReconciliationReport` to a rich console and exports it
as JSON.

Console layout::

    Loaded 3 accounts from archiver database
    Loaded 2 accounts from node: node-1
    Loaded accounts from 1 nodes

    === ACCOUNT COMPARISON ===

    Account ID: 0xa
    Node: node-1
      Archiver - Balance: 100, Nonce: 5
      Node     - Balance: 100, Nonce: 6
      STATUS: MISMATCH
        - Nonce mismatch

    === SUMMARY ===
    Total comparisons: 1
    Mismatches found: 1
    Match rate: 0.00%

Non-verbose output shows mismatches only; verbose output adds matches and
both kinds of orphans.

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ledgeraudit.account_reconciliation.models import (
    NOT_AVAILABLE,
    Classification,
    ComparisonRecord,
    ReconciliationReport,
)

logger = logging.getLogger(__name__)


def _show(value: Optional[str]) -> str:
    return escape(NOT_AVAILABLE if value is None else value)


class ReportWriter:
    """Console and JSON sink for reconciliation reports.

    Attributes:
        console: Rich console that receives the rendered report.
        verbose: Whether matches and orphans are rendered.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        verbose: bool = False,
    ) -> None:
        self.console = console or Console(highlight=False)
        self.verbose = verbose

    # ------------------------------------------------------------------
    # Console rendering
    # ------------------------------------------------------------------

    def render(self, report: ReconciliationReport) -> None:
        """Render sources, comparisons and summary."""
        self.render_sources(report)
        self.render_comparisons(report)
        self.render_summary(report)

    def render_sources(self, report: ReconciliationReport) -> None:
        """Render the per-source load counts and failures."""
        out = self.console
        out.print(
            f"Loaded {report.canonical_count} accounts from archiver database"
        )
        for source in report.secondary_sources:
            out.print(
                f"Loaded {source.retained} accounts from node: "
                f"{escape(source.source_name)}"
            )
        for failure in report.failed_sources:
            out.print(
                f"[red]Failed to load accounts from "
                f"{escape(failure.store_path or failure.source_name)}: "
                f"{escape(failure.message)}[/red]"
            )
        out.print(f"Loaded accounts from {report.sources_loaded} nodes")
        if report.decode_failures:
            out.print(
                f"[yellow]Skipped {report.decode_failures} undecodable "
                f"account payloads[/yellow]"
            )

    def render_comparisons(self, report: ReconciliationReport) -> None:
        """Render the comparison blocks selected by the verbosity policy."""
        self.console.print("\n[bold]=== ACCOUNT COMPARISON ===[/bold]\n")
        for comparison in report.comparisons:
            if self._selected(comparison):
                self._render_comparison(comparison)

    def render_summary(self, report: ReconciliationReport) -> None:
        """Render the summary counters."""
        out = self.console
        summary = report.summary
        out.print("[bold]=== SUMMARY ===[/bold]")
        out.print(f"Total comparisons: {summary.total_comparisons}")
        out.print(f"Mismatches found: {summary.mismatches}")
        out.print(f"Match rate: {summary.match_rate:.2f}%")

        if self.verbose:
            table = Table(title="Orphans", show_header=True)
            table.add_column("Side")
            table.add_column("Accounts", justify="right")
            table.add_row("Only in archiver", str(summary.orphan_canonical))
            table.add_row("Only in nodes", str(summary.orphan_secondary))
            out.print(table)
            if report.provenance_hash:
                out.print(f"Provenance: {report.provenance_hash}")

    def _selected(self, comparison: ComparisonRecord) -> bool:
        if self.verbose:
            return True
        return comparison.classification is Classification.MISMATCH

    def _render_comparison(self, comparison: ComparisonRecord) -> None:
        out = self.console
        identifier = escape(comparison.identifier)

        if comparison.classification is Classification.ORPHAN_CANONICAL:
            out.print(f"Account ID: {identifier} (ONLY IN ARCHIVER)")
            out.print(
                f"  Balance: {_show(comparison.canonical_balance)}, "
                f"Nonce: {_show(comparison.canonical_nonce)}"
            )
            out.print("  [yellow]STATUS: NOT FOUND IN NODES[/yellow]\n")
            return

        node = escape(comparison.source_name or "unknown")
        if comparison.classification is Classification.ORPHAN_SECONDARY:
            out.print(f"Account ID: {identifier} (ONLY IN NODE: {node})")
            out.print(
                f"  Balance: {_show(comparison.secondary_balance)}, "
                f"Nonce: {_show(comparison.secondary_nonce)}"
            )
            out.print("  [yellow]STATUS: NOT FOUND IN ARCHIVER[/yellow]\n")
            return

        out.print(f"Account ID: {identifier}")
        out.print(f"Node: {node}")
        out.print(
            f"  Archiver - Balance: {_show(comparison.canonical_balance)}, "
            f"Nonce: {_show(comparison.canonical_nonce)}"
        )
        out.print(
            f"  Node     - Balance: {_show(comparison.secondary_balance)}, "
            f"Nonce: {_show(comparison.secondary_nonce)}"
        )
        if comparison.classification is Classification.MISMATCH:
            out.print("  [bold red]STATUS: MISMATCH[/bold red]")
            if "balance" in comparison.mismatch_reasons:
                out.print("    - Balance mismatch")
            if "nonce" in comparison.mismatch_reasons:
                out.print("    - Nonce mismatch")
        else:
            out.print("  [green]STATUS: MATCH[/green]")
        out.print()

    # ------------------------------------------------------------------
    # JSON export
    # ------------------------------------------------------------------

    @staticmethod
    def to_json(report: ReconciliationReport) -> str:
        """Serialize a report to indented JSON."""
        return report.model_dump_json(indent=2)

    def write_json(
        self, report: ReconciliationReport, path: Union[str, Path],
    ) -> Path:
        """Write a report to a JSON file.

        Args:
            report: Report to export.
            path: Destination file; parent directories are created.

        Returns:
            The written path.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_json(report) + "\n", encoding="utf-8")
        logger.info("Report %s written to %s", report.report_id, target)
        return target


__all__ = ["ReportWriter"]
