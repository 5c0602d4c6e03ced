# -*- coding: utf-8 -*-
"""
Reconciliation Engine - Account Reconciliation

Outer-joins the canonical snapshot with the merged secondary snapshot by
account identifier and classifies every pairing.

Algorithm (single pass, state-free):
    1. For each canonical ``(identifier, record)`` in snapshot order:
       - no secondary entry: ORPHAN_CANONICAL
       - otherwise, for each secondary record of that identifier:
         exact string comparison of balance and nonce; MATCH when both
         are equal, MISMATCH with the failing fields otherwise.
    2. For each secondary identifier absent from the canonical snapshot:
       ORPHAN_SECONDARY, once per contributing instance.
    3. ``total_comparisons`` counts step 1 pairings; ``match_rate`` is
       ``(total - mismatches) / total * 100`` or ``0.0`` when total is 0.

Comparison is literal: ``"100"`` and ``"0100"`` differ, and so do
``"0x64"`` and ``"100"``. Inputs are never mutated and missing
counterparts never raise.

Example:
    >>> engine = ReconciliationEngine()
    >>> result = engine.reconcile(canonical.records, secondary.merged)
    >>> print(result.summary.match_rate)

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Mapping, Sequence

from ledgeraudit.account_reconciliation.metrics import (
    inc_comparisons,
    inc_orphans,
    set_match_rate,
)
from ledgeraudit.account_reconciliation.models import (
    AccountRecord,
    Classification,
    ComparisonRecord,
    ReconciliationSummary,
)

logger = logging.getLogger(__name__)


def compute_match_rate(total_comparisons: int, mismatches: int) -> float:
    """Return the match rate in percent, ``0.0`` when nothing was compared."""
    if total_comparisons == 0:
        return 0.0
    return (total_comparisons - mismatches) / total_comparisons * 100.0


@dataclass
class ReconciliationResult:
    """Classified comparison stream plus aggregate counters."""

    comparisons: List[ComparisonRecord] = field(default_factory=list)
    summary: ReconciliationSummary = field(
        default_factory=ReconciliationSummary,
    )

    def mismatched(self) -> List[ComparisonRecord]:
        """Return only the MISMATCH records."""
        return [
            c for c in self.comparisons
            if c.classification is Classification.MISMATCH
        ]


class ReconciliationEngine:
    """Joins canonical and secondary snapshots and classifies pairings."""

    def __init__(self) -> None:
        logger.info("ReconciliationEngine initialized")

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    @staticmethod
    def compare_pair(
        canonical: AccountRecord, secondary: AccountRecord,
    ) -> ComparisonRecord:
        """Compare one canonical record with one secondary record.

        Args:
            canonical: Record from the canonical snapshot.
            secondary: Record from one secondary instance.

        Returns:
            MATCH or MISMATCH ComparisonRecord.
        """
        canonical_balance = canonical.balance()
        canonical_nonce = canonical.nonce()
        secondary_balance = secondary.balance()
        secondary_nonce = secondary.nonce()

        balance_match = canonical_balance == secondary_balance
        nonce_match = canonical_nonce == secondary_nonce

        reasons: List[str] = []
        if not balance_match:
            reasons.append("balance")
        if not nonce_match:
            reasons.append("nonce")

        return ComparisonRecord(
            identifier=canonical.identifier,
            source_name=secondary.origin,
            balance_match=balance_match,
            nonce_match=nonce_match,
            canonical_balance=canonical_balance,
            canonical_nonce=canonical_nonce,
            secondary_balance=secondary_balance,
            secondary_nonce=secondary_nonce,
            classification=(
                Classification.MISMATCH if reasons else Classification.MATCH
            ),
            mismatch_reasons=reasons,
        )

    # ------------------------------------------------------------------
    # Full pass
    # ------------------------------------------------------------------

    def iter_comparisons(
        self,
        canonical: Mapping[str, AccountRecord],
        secondary: Mapping[str, Sequence[AccountRecord]],
    ) -> Iterator[ComparisonRecord]:
        """Yield classified records in deterministic join order.

        Args:
            canonical: ``identifier -> record`` canonical snapshot.
            secondary: ``identifier -> [record, ...]`` merged secondary
                snapshot.

        Yields:
            ComparisonRecord per pairing, then per secondary orphan.
        """
        for identifier, canonical_record in canonical.items():
            secondary_records = secondary.get(identifier)
            if not secondary_records:
                yield ComparisonRecord(
                    identifier=identifier,
                    canonical_balance=canonical_record.balance(),
                    canonical_nonce=canonical_record.nonce(),
                    classification=Classification.ORPHAN_CANONICAL,
                )
                continue
            for secondary_record in secondary_records:
                yield self.compare_pair(canonical_record, secondary_record)

        for identifier, secondary_records in secondary.items():
            if identifier in canonical:
                continue
            for secondary_record in secondary_records:
                yield ComparisonRecord(
                    identifier=identifier,
                    source_name=secondary_record.origin,
                    secondary_balance=secondary_record.balance(),
                    secondary_nonce=secondary_record.nonce(),
                    classification=Classification.ORPHAN_SECONDARY,
                )

    def reconcile(
        self,
        canonical: Mapping[str, AccountRecord],
        secondary: Mapping[str, Sequence[AccountRecord]],
    ) -> ReconciliationResult:
        """Run the full reconciliation pass.

        Args:
            canonical: ``identifier -> record`` canonical snapshot.
            secondary: ``identifier -> [record, ...]`` merged secondary
                snapshot.

        Returns:
            ReconciliationResult with the comparison stream and summary.
        """
        comparisons: List[ComparisonRecord] = []
        counts = {c: 0 for c in Classification}

        for record in self.iter_comparisons(canonical, secondary):
            comparisons.append(record)
            counts[record.classification] += 1

        matches = counts[Classification.MATCH]
        mismatches = counts[Classification.MISMATCH]
        total = matches + mismatches
        summary = ReconciliationSummary(
            total_comparisons=total,
            mismatches=mismatches,
            match_rate=compute_match_rate(total, mismatches),
            orphan_canonical=counts[Classification.ORPHAN_CANONICAL],
            orphan_secondary=counts[Classification.ORPHAN_SECONDARY],
        )

        inc_comparisons("match", matches)
        inc_comparisons("mismatch", mismatches)
        inc_orphans("canonical", summary.orphan_canonical)
        inc_orphans("secondary", summary.orphan_secondary)
        set_match_rate(summary.match_rate)

        logger.info(
            "Reconciliation complete: comparisons=%d, mismatches=%d, "
            "match_rate=%.2f%%, orphan_canonical=%d, orphan_secondary=%d",
            summary.total_comparisons,
            summary.mismatches,
            summary.match_rate,
            summary.orphan_canonical,
            summary.orphan_secondary,
        )
        return ReconciliationResult(comparisons=comparisons, summary=summary)


__all__ = [
    "compute_match_rate",
    "ReconciliationResult",
    "ReconciliationEngine",
]
