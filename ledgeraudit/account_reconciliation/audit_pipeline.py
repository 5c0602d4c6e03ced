# -*- coding: utf-8 -*-
"""
Audit Pipeline Engine - Account Reconciliation

Orchestrates a full account audit run by composing the upstream engines
(CanonicalSourceAggregator, SecondarySourceAggregator,
ReconciliationEngine) into a deterministic pipeline.

Pipeline stages:
    1. LOAD_CANONICAL  -- read and decode the archiver snapshot (fatal on
       failure)
    2. LOAD_SECONDARY  -- discover, read and merge node snapshots (failed
       instances are isolated)
    3. RECONCILE       -- outer join, classify and aggregate

Each stage appends one entry to a SHA-256 provenance chain and the final
chain hash is stamped on the report. A run that gets past the canonical
stage always produces a report, even if every node failed to load.

Example:
    >>> engine = AuditPipelineEngine()
    >>> report = engine.run("/data/archiver.sqlite3", "/data/nodes")
    >>> print(report.summary.mismatches)

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from ledgeraudit.account_reconciliation.config import (
    AccountReconciliationConfig,
    get_config,
)
from ledgeraudit.account_reconciliation.metrics import observe_duration
from ledgeraudit.account_reconciliation.models import (
    AccountRecord,
    PipelineStageResult,
    ReconciliationReport,
    SourceLoadResult,
)
from ledgeraudit.account_reconciliation.provenance import ProvenanceTracker
from ledgeraudit.account_reconciliation.reconciliation_engine import (
    ReconciliationEngine,
    ReconciliationResult,
)
from ledgeraudit.account_reconciliation.source_aggregator import (
    CanonicalSourceAggregator,
    SecondaryAggregation,
    SecondarySourceAggregator,
)
from ledgeraudit.account_reconciliation.store_reader import (
    AccountStoreReader,
    RawPair,
)
from ledgeraudit.exceptions import SourceError

logger = logging.getLogger(__name__)


def _snapshot_digest(records: Mapping[str, AccountRecord]) -> Dict[str, Any]:
    return {
        identifier: [record.balance(), record.nonce()]
        for identifier, record in records.items()
    }


def _merged_digest(
    merged: Mapping[str, Sequence[AccountRecord]],
) -> Dict[str, Any]:
    return {
        identifier: [[r.origin, r.balance(), r.nonce()] for r in records]
        for identifier, records in merged.items()
    }


class AuditPipelineEngine:
    """End-to-end account audit: load, merge, reconcile, report.

    Attributes:
        config: Reconciliation configuration.
        canonical_aggregator: Engine for the archiver snapshot.
        secondary_aggregator: Engine for the node snapshots.
        reconciliation_engine: Join and classification engine.
    """

    def __init__(
        self,
        config: Optional[AccountReconciliationConfig] = None,
        reader: Optional[AccountStoreReader] = None,
    ) -> None:
        self.config = config or get_config()
        reader = reader or AccountStoreReader(self.config)
        self.canonical_aggregator = CanonicalSourceAggregator(
            self.config, reader,
        )
        self.secondary_aggregator = SecondarySourceAggregator(
            self.config, reader,
        )
        self.reconciliation_engine = ReconciliationEngine()
        logger.info(
            "AuditPipelineEngine initialized: provenance=%s",
            self.config.enable_provenance,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        archiver_db: Union[str, Path],
        nodes_folder: Union[str, Path],
    ) -> ReconciliationReport:
        """Audit an archiver store against every node store in a folder.

        Args:
            archiver_db: Path of the archiver SQLite file.
            nodes_folder: Root folder of the node instances.

        Returns:
            ReconciliationReport.

        Raises:
            SourceError: If the archiver store cannot be loaded.
        """
        return self._execute(
            load_canonical=lambda: self.canonical_aggregator.load(archiver_db),
            load_secondary=lambda: self.secondary_aggregator.load(
                nodes_folder,
            ),
            canonical_input={"archiver_db": str(archiver_db)},
            secondary_input={"nodes_folder": str(nodes_folder)},
        )

    def run_from_feeds(
        self,
        canonical_pairs: Iterable[RawPair],
        secondary_feeds: Sequence[Tuple[str, Iterable[RawPair]]],
    ) -> ReconciliationReport:
        """Audit already-extracted in-memory feeds.

        Args:
            canonical_pairs: ``(identifier, payload)`` pairs of the
                canonical source.
            secondary_feeds: ``(source_name, pairs)`` per secondary
                instance, in discovery order.

        Returns:
            ReconciliationReport.
        """
        canonical_pairs = list(canonical_pairs)
        secondary_feeds = [
            (name, list(pairs)) for name, pairs in secondary_feeds
        ]
        return self._execute(
            load_canonical=lambda: self.canonical_aggregator.aggregate(
                canonical_pairs,
            ),
            load_secondary=lambda: self.secondary_aggregator.aggregate(
                secondary_feeds,
            ),
            canonical_input={"pairs": canonical_pairs},
            secondary_input={"feeds": secondary_feeds},
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _execute(
        self,
        load_canonical: Callable[[], SourceLoadResult],
        load_secondary: Callable[[], SecondaryAggregation],
        canonical_input: Dict[str, Any],
        secondary_input: Dict[str, Any],
    ) -> ReconciliationReport:
        pipeline_start = time.monotonic()
        tracker = self._new_tracker()
        stages: List[PipelineStageResult] = []

        # Stage 1: canonical snapshot
        start = time.monotonic()
        try:
            canonical = load_canonical()
        except SourceError as exc:
            logger.error("Canonical source failed: %s", exc)
            raise
        stages.append(
            self._stage(
                "load_canonical", start, canonical.retained, tracker,
                canonical_input, _snapshot_digest(canonical.records),
                errors=[
                    f"{d.identifier}: {d.cause}" for d in canonical.diagnostics
                ],
            )
        )

        # Stage 2: secondary snapshots
        start = time.monotonic()
        secondary = load_secondary()
        stages.append(
            self._stage(
                "load_secondary", start, len(secondary.merged), tracker,
                secondary_input, _merged_digest(secondary.merged),
                errors=[
                    f"{f.source_name}: {f.message}" for f in secondary.failures
                ],
            )
        )

        # Stage 3: reconciliation
        start = time.monotonic()
        result = self.reconciliation_engine.reconcile(
            canonical.records, secondary.merged,
        )
        stages.append(
            self._stage(
                "reconcile", start, len(result.comparisons), tracker,
                {"canonical": stages[0].provenance_hash,
                 "secondary": stages[1].provenance_hash},
                self._result_digest(result),
            )
        )

        report = ReconciliationReport(
            comparisons=result.comparisons,
            summary=result.summary,
            canonical_count=canonical.retained,
            secondary_sources=secondary.loaded,
            failed_sources=secondary.failures,
            decode_failures=(
                len(canonical.diagnostics) + secondary.decode_failures
            ),
            stages=stages,
            provenance_hash=tracker.get_latest_hash() if tracker else "",
            provenance_chain=tracker.get_chain() if tracker else [],
        )
        if tracker is not None:
            logger.debug(
                "Provenance chain: entries=%d, verified=%s",
                tracker.entry_count, tracker.verify_chain(),
            )

        elapsed = time.monotonic() - pipeline_start
        observe_duration("pipeline", elapsed)
        logger.info(
            "Audit pipeline completed in %.1fms: report=%s, canonical=%d, "
            "nodes=%d, failed=%d, mismatches=%d",
            elapsed * 1000.0,
            report.report_id,
            report.canonical_count,
            report.sources_loaded,
            len(report.failed_sources),
            report.summary.mismatches,
        )
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _new_tracker(self) -> Optional[ProvenanceTracker]:
        if not self.config.enable_provenance:
            return None
        return ProvenanceTracker(self.config.genesis_hash)

    @staticmethod
    def _stage(
        name: str,
        start: float,
        records_processed: int,
        tracker: Optional[ProvenanceTracker],
        stage_input: Any,
        stage_output: Any,
        errors: Optional[List[str]] = None,
    ) -> PipelineStageResult:
        """Close a stage: time it and chain its provenance entry."""
        duration_ms = (time.monotonic() - start) * 1000.0
        chain_hash = ""
        if tracker is not None:
            entry = tracker.add_entry(
                name,
                tracker.compute_hash(stage_input),
                tracker.compute_hash(stage_output),
                metadata={"records_processed": records_processed},
            )
            chain_hash = entry.chain_hash
        logger.debug(
            "Stage %s: records=%d, %.1fms", name, records_processed,
            duration_ms,
        )
        return PipelineStageResult(
            stage_name=name,
            records_processed=records_processed,
            duration_ms=duration_ms,
            errors=errors or [],
            provenance_hash=chain_hash,
        )

    @staticmethod
    def _result_digest(result: ReconciliationResult) -> Dict[str, Any]:
        return {
            "summary": result.summary.model_dump(mode="json"),
            "comparisons": [
                c.model_dump(mode="json") for c in result.comparisons
            ],
        }


__all__ = ["AuditPipelineEngine"]
