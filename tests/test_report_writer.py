"""Tests for console and JSON report output."""

import io
import json

import pytest
from rich.console import Console

from ledgeraudit.account_reconciliation.audit_pipeline import (
    AuditPipelineEngine,
)
from ledgeraudit.account_reconciliation.report_writer import ReportWriter


@pytest.fixture
def report(config, regular_payload):
    """Report with one match, one mismatch and one orphan per side."""
    return AuditPipelineEngine(config).run_from_feeds(
        [
            ("0xA", regular_payload("100", "5")),
            ("0xB", regular_payload("1", "0")),
            ("0xC", regular_payload("7", "1")),
        ],
        [
            ("node-1", [
                ("0xA", regular_payload("100", "6")),
                ("0xC", regular_payload("7", "1")),
                ("0xE", regular_payload("9", "9")),
            ]),
        ],
    )


def _render(report, verbose):
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, highlight=False, color_system=None)
    ReportWriter(console=console, verbose=verbose).render(report)
    return buffer.getvalue()


class TestConsoleReport:
    """Console layout."""

    def test_mismatches_only_by_default(self, report):
        """Non-verbose output shows only the mismatch block."""
        text = _render(report, verbose=False)

        assert "Loaded 3 accounts from archiver database" in text
        assert "Loaded 3 accounts from node: node-1" in text
        assert "Loaded accounts from 1 nodes" in text
        assert "=== ACCOUNT COMPARISON ===" in text
        assert "Account ID: 0xA" in text
        assert "  Archiver - Balance: 100, Nonce: 5" in text
        assert "  Node     - Balance: 100, Nonce: 6" in text
        assert "STATUS: MISMATCH" in text
        assert "    - Nonce mismatch" in text
        assert "Balance mismatch" not in text
        assert "Account ID: 0xC" not in text
        assert "ONLY IN" not in text

    def test_summary(self, report):
        """Summary shows totals and a two-decimal match rate."""
        text = _render(report, verbose=False)

        assert "=== SUMMARY ===" in text
        assert "Total comparisons: 2" in text
        assert "Mismatches found: 1" in text
        assert "Match rate: 50.00%" in text

    def test_verbose_adds_matches_and_orphans(self, report):
        """Verbose output shows matches and both orphan kinds."""
        text = _render(report, verbose=True)

        assert "Account ID: 0xC" in text
        assert "STATUS: MATCH" in text
        assert "Account ID: 0xB (ONLY IN ARCHIVER)" in text
        assert "STATUS: NOT FOUND IN NODES" in text
        assert "Account ID: 0xE (ONLY IN NODE: node-1)" in text
        assert "STATUS: NOT FOUND IN ARCHIVER" in text
        assert f"Provenance: {report.provenance_hash}" in text

    def test_markup_in_identifiers_is_literal(self, config, regular_payload):
        """Identifiers are printed verbatim, not as rich markup."""
        report = AuditPipelineEngine(config).run_from_feeds(
            [("[bold]x", regular_payload("1"))],
            [("node-1", [("[bold]x", regular_payload("2"))])],
        )

        assert "Account ID: [bold]x" in _render(report, verbose=False)


class TestJsonReport:
    """JSON export."""

    def test_write_json(self, report, tmp_path):
        """The exported file holds comparisons and summary."""
        path = ReportWriter().write_json(report, tmp_path / "out" / "r.json")

        data = json.loads(path.read_text(encoding="utf-8"))

        assert data["summary"]["total_comparisons"] == 2
        assert data["summary"]["mismatches"] == 1
        assert data["canonical_count"] == 3
        assert data["secondary_sources"][0]["source_name"] == "node-1"
        assert {c["classification"] for c in data["comparisons"]} == {
            "match", "mismatch", "orphan_canonical", "orphan_secondary",
        }
        assert data["provenance_hash"] == report.provenance_hash

    def test_surrogate_payload_does_not_break_export(
        self, config, regular_dict,
    ):
        """A payload with a lone surrogate is dropped before export."""
        payload = regular_dict()
        payload["account"]["balance"]["value"] = "\ud800"
        text = json.dumps(payload)

        report = AuditPipelineEngine(config).run_from_feeds(
            [("0xA", text)], [("node-1", [("0xA", text)])],
        )
        data = json.loads(ReportWriter.to_json(report))

        assert report.decode_failures == 2
        assert data["comparisons"] == []
        assert _render(report, verbose=True)
