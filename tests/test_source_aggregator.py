"""Tests for the canonical and secondary source aggregators."""

import logging

import pytest

from ledgeraudit.account_reconciliation.config import (
    AccountReconciliationConfig,
)
from ledgeraudit.account_reconciliation.models import CANONICAL_ORIGIN
from ledgeraudit.account_reconciliation.source_aggregator import (
    CanonicalSourceAggregator,
    SecondarySourceAggregator,
    build_snapshot,
)
from ledgeraudit.exceptions import SourceError, StoreAccessError


class TestBuildSnapshot:
    """Shared decode and filter step."""

    def test_keeps_only_comparable_records(
        self, regular_payload, special_payload,
    ):
        """Special records are counted and discarded."""
        result = build_snapshot(
            [("0xA", regular_payload()), ("0xS", special_payload(nonce=1))],
            CANONICAL_ORIGIN,
            "canonical",
        )

        assert list(result.records) == ["0xA"]
        assert result.special_count == 1
        assert result.diagnostics == []

    def test_last_write_wins(self, regular_payload):
        """A duplicate identifier replaces the earlier record."""
        result = build_snapshot(
            [("0xA", regular_payload("1")), ("0xA", regular_payload("2"))],
            CANONICAL_ORIGIN,
            "canonical",
        )

        assert result.retained == 1
        assert result.records["0xA"].balance() == "2"

    def test_decode_failure_is_diagnosed(self, regular_payload, caplog):
        """Undecodable payloads are skipped with a WARNING diagnostic."""
        with caplog.at_level(logging.WARNING):
            result = build_snapshot(
                [("0xD", "{not json"), ("0xA", regular_payload())],
                "node-1",
                "secondary",
            )

        assert list(result.records) == ["0xA"]
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].identifier == "0xD"
        assert result.diagnostics[0].source_name == "node-1"
        assert "0xD" in caplog.text


class TestCanonicalSourceAggregator:
    """Canonical snapshot building."""

    def test_aggregate_pairs(self, config, regular_payload):
        """In-memory pairs produce a keyed snapshot."""
        aggregator = CanonicalSourceAggregator(config)

        result = aggregator.aggregate(
            [("0xA", regular_payload()), ("0xB", regular_payload())],
        )

        assert result.retained == 2
        assert result.records["0xA"].origin == CANONICAL_ORIGIN

    def test_deeply_nested_row_is_skipped(self, config, regular_payload):
        """A pathologically nested payload is dropped, not fatal."""
        result = CanonicalSourceAggregator(config).aggregate([
            ("0xD", "[" * 100000 + "]" * 100000),
            ("0xC", regular_payload()),
        ])

        assert result.retained == 1
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].identifier == "0xD"

    def test_load_archiver_store(self, config, archiver_db):
        """Comparable archiver rows are retained; bad rows are dropped."""
        result = CanonicalSourceAggregator(config).load(archiver_db)

        assert list(result.records) == ["0xA", "0xB", "0xC"]
        assert result.special_count == 1
        assert [d.identifier for d in result.diagnostics] == ["0xD"]

    def test_store_failure_is_fatal(self, config, tmp_path):
        """Any store failure propagates as a single SourceError."""
        with pytest.raises(SourceError) as exc_info:
            CanonicalSourceAggregator(config).load(tmp_path / "absent.db")

        assert exc_info.value.source_name == "archiver"
        assert isinstance(exc_info.value.__cause__, StoreAccessError)


class TestSecondarySourceAggregator:
    """Secondary snapshot merging."""

    def test_merge_appends_in_source_order(self, config, regular_payload):
        """Shared identifiers collect one record per instance."""
        result = SecondarySourceAggregator(config).aggregate([
            ("node-1", [("0xC", regular_payload())]),
            ("node-2", [("0xC", regular_payload()), ("0xE", regular_payload())]),
        ])

        assert [r.origin for r in result.merged["0xC"]] == ["node-1", "node-2"]
        assert [r.origin for r in result.merged["0xE"]] == ["node-2"]
        assert result.counts() == [("node-1", 1), ("node-2", 2)]
        assert result.sources_loaded == 2

    def test_load_nodes_folder(self, config, nodes_folder):
        """Discovered node stores are loaded and merged."""
        result = SecondarySourceAggregator(config).load(nodes_folder)

        assert result.sources_loaded == 2
        assert sorted(result.merged) == ["0xA", "0xC", "0xE"]
        assert len(result.merged["0xC"]) == 2
        assert result.failures == []

    def test_failed_instance_is_isolated(
        self, config, nodes_folder, make_store, regular_payload, caplog,
    ):
        """A broken node store is skipped without aborting the others."""
        make_store(
            nodes_folder / "node-3" / "db" / "shardeum.sqlite",
            "wrongTable",
            [("0xA", regular_payload())],
        )

        with caplog.at_level(logging.ERROR):
            result = SecondarySourceAggregator(config).load(nodes_folder)

        assert result.sources_loaded == 2
        assert [f.source_name for f in result.failures] == ["node-3"]
        assert result.failures[0].error_type == "StoreAccessError"
        assert "Failed to load accounts" in caplog.text

    def test_missing_folder_yields_zero_instances(self, config, tmp_path):
        """A missing nodes folder is a diagnostic, not an exception."""
        result = SecondarySourceAggregator(config).load(tmp_path / "absent")

        assert result.sources_loaded == 0
        assert result.merged == {}
        assert len(result.failures) == 1

    def test_concurrent_load_matches_sequential(
        self, tmp_path, make_store, regular_payload,
    ):
        """A worker pool produces the same merge as a sequential run."""
        root = tmp_path / "nodes"
        for index in range(6):
            make_store(
                root / f"node-{index}" / "db" / "shardeum.sqlite",
                "accountsEntry",
                [("0xC", regular_payload(str(index))), (f"0x{index}", regular_payload())],
            )

        sequential = SecondarySourceAggregator(
            AccountReconciliationConfig(max_workers=1),
        ).load(root)
        concurrent = SecondarySourceAggregator(
            AccountReconciliationConfig(max_workers=4),
        ).load(root)

        assert list(concurrent.merged) == list(sequential.merged)
        assert [r.origin for r in concurrent.merged["0xC"]] == [
            r.origin for r in sequential.merged["0xC"]
        ]
        assert concurrent.counts() == sequential.counts()
