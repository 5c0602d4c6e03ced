"""Tests for the ReconciliationEngine."""

import pytest

from ledgeraudit.account_reconciliation.models import (
    Classification,
    decode_account,
)
from ledgeraudit.account_reconciliation.reconciliation_engine import (
    ReconciliationEngine,
    compute_match_rate,
)
from ledgeraudit.account_reconciliation.source_aggregator import (
    CanonicalSourceAggregator,
    SecondarySourceAggregator,
)


@pytest.fixture
def engine():
    return ReconciliationEngine()


@pytest.fixture
def record(regular_payload):
    """Builder for decoded Regular records."""
    def _build(identifier, balance="100", nonce="5", origin="canonical"):
        return decode_account(
            identifier, regular_payload(balance, nonce), origin=origin,
        )
    return _build


class TestMatchRate:
    """compute_match_rate."""

    def test_zero_comparisons(self):
        """No comparisons gives exactly 0.0."""
        assert compute_match_rate(0, 0) == 0.0

    def test_rate(self):
        """Rate is the matching share in percent."""
        assert compute_match_rate(4, 1) == 75.0


class TestComparePair:
    """Field-level comparison of one pairing."""

    def test_match(self, engine, record):
        """Equal balance and nonce is a MATCH."""
        result = engine.compare_pair(
            record("0xA"), record("0xA", origin="node-1"),
        )

        assert result.classification is Classification.MATCH
        assert result.balance_match is True
        assert result.nonce_match is True
        assert result.mismatch_reasons == []
        assert result.source_name == "node-1"

    def test_balance_and_nonce_mismatch(self, engine, record):
        """Both failing fields are recorded."""
        result = engine.compare_pair(
            record("0xA", "100", "5"), record("0xA", "99", "6", "node-1"),
        )

        assert result.classification is Classification.MISMATCH
        assert result.mismatch_reasons == ["balance", "nonce"]
        assert result.canonical_balance == "100"
        assert result.secondary_balance == "99"

    def test_no_numeric_normalization(self, engine, record):
        """'100' and '0100' are different balances."""
        result = engine.compare_pair(
            record("0xA", "100"), record("0xA", "0100", origin="node-1"),
        )

        assert result.balance_match is False


class TestReconcileScenarios:
    """End-to-end classification scenarios."""

    def test_nonce_mismatch_scenario(self, engine, record):
        """0xA: nonce 5 vs 6 is a single nonce mismatch."""
        result = engine.reconcile(
            {"0xA": record("0xA", "100", "5")},
            {"0xA": [record("0xA", "100", "6", "node-1")]},
        )

        assert len(result.comparisons) == 1
        comparison = result.comparisons[0]
        assert comparison.classification is Classification.MISMATCH
        assert comparison.mismatch_reasons == ["nonce"]
        assert result.summary.mismatches == 1
        assert result.summary.total_comparisons == 1
        assert result.summary.match_rate == 0.0

    def test_canonical_orphan_scenario(self, engine, record):
        """0xB only in canonical is an orphan outside the totals."""
        result = engine.reconcile({"0xB": record("0xB")}, {})

        assert [c.classification for c in result.comparisons] == [
            Classification.ORPHAN_CANONICAL,
        ]
        assert result.comparisons[0].balance_match is None
        assert result.comparisons[0].source_name is None
        assert result.summary.total_comparisons == 0
        assert result.summary.orphan_canonical == 1
        assert result.summary.match_rate == 0.0

    def test_two_instance_match_scenario(self, engine, record):
        """0xC matched by two instances counts two comparisons."""
        result = engine.reconcile(
            {"0xC": record("0xC")},
            {"0xC": [
                record("0xC", origin="node-1"),
                record("0xC", origin="node-2"),
            ]},
        )

        assert result.summary.total_comparisons == 2
        assert result.summary.mismatches == 0
        assert result.summary.match_rate == 100.0
        assert [c.source_name for c in result.comparisons] == [
            "node-1", "node-2",
        ]

    def test_invalid_json_scenario(self, engine, regular_payload):
        """0xD with invalid JSON is dropped and never counted."""
        canonical = CanonicalSourceAggregator().aggregate([
            ("0xD", "{not json"),
            ("0xC", regular_payload()),
        ])
        secondary = SecondarySourceAggregator().aggregate([
            ("node-1", [("0xD", "{not json"), ("0xC", regular_payload())]),
        ])

        result = engine.reconcile(canonical.records, secondary.merged)

        assert all(c.identifier != "0xD" for c in result.comparisons)
        assert result.summary.total_comparisons == 1

    def test_secondary_orphans_once_per_instance(self, engine, record):
        """Secondary-only identifiers are reported per instance."""
        result = engine.reconcile(
            {},
            {"0xE": [
                record("0xE", origin="node-1"),
                record("0xE", origin="node-2"),
            ]},
        )

        assert [
            (c.classification, c.source_name) for c in result.comparisons
        ] == [
            (Classification.ORPHAN_SECONDARY, "node-1"),
            (Classification.ORPHAN_SECONDARY, "node-2"),
        ]
        assert result.summary.orphan_secondary == 2
        assert result.summary.total_comparisons == 0

    def test_empty_inputs(self, engine):
        """Empty snapshots give an empty report with 0.0 match rate."""
        result = engine.reconcile({}, {})

        assert result.comparisons == []
        assert result.summary.match_rate == 0.0


class TestReconcileProperties:
    """Invariants of the reconciliation pass."""

    def _snapshots(self, record):
        canonical = {
            "0xA": record("0xA", "1", "1"),
            "0xB": record("0xB", "2", "2"),
            "0xC": record("0xC", "3", "3"),
        }
        secondary = {
            "0xA": [record("0xA", "1", "1", "n1"), record("0xA", "1", "2", "n2")],
            "0xC": [record("0xC", "3", "3", "n1")],
            "0xZ": [record("0xZ", "9", "9", "n2")],
        }
        return canonical, secondary

    def test_total_is_sum_of_shared_list_lengths(self, engine, record):
        """total_comparisons sums |S[id]| over shared identifiers."""
        canonical, secondary = self._snapshots(record)

        result = engine.reconcile(canonical, secondary)

        expected = sum(
            len(secondary[i]) for i in canonical if i in secondary
        )
        assert result.summary.total_comparisons == expected == 3

    def test_total_independent_of_order(self, engine, record):
        """Reversing the input order does not change the counts."""
        canonical, secondary = self._snapshots(record)
        reversed_canonical = dict(reversed(list(canonical.items())))
        reversed_secondary = dict(reversed(list(secondary.items())))

        forward = engine.reconcile(canonical, secondary).summary
        backward = engine.reconcile(
            reversed_canonical, reversed_secondary,
        ).summary

        assert forward == backward

    def test_idempotent(self, engine, record):
        """Re-running on the same snapshots gives the same results."""
        canonical, secondary = self._snapshots(record)

        first = engine.reconcile(canonical, secondary)
        second = engine.reconcile(canonical, secondary)

        assert first.summary == second.summary
        assert first.comparisons == second.comparisons

    def test_inputs_not_mutated(self, engine, record):
        """The snapshots are left unchanged."""
        canonical, secondary = self._snapshots(record)
        canonical_before = dict(canonical)
        secondary_before = {k: list(v) for k, v in secondary.items()}

        engine.reconcile(canonical, secondary)

        assert canonical == canonical_before
        assert secondary == secondary_before

    def test_mismatched_helper(self, engine, record):
        """mismatched() filters MISMATCH records."""
        canonical, secondary = self._snapshots(record)

        result = engine.reconcile(canonical, secondary)

        assert [(c.identifier, c.source_name) for c in result.mismatched()] == [
            ("0xA", "n2"),
        ]
