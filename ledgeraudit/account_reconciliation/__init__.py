# -*- coding: utf-8 -*-
"""
LedgerAudit Account Reconciliation SDK
======================================

This package audits account-ledger state held by one canonical archiver
store against any number of node stores that replicate it. It supports:

- Decoding polymorphic account payloads (Regular and Special shapes,
  structurally distinguished) into a uniform comparison view with exact
  string typing
- Canonical snapshot building with last-write-wins duplicates and
  per-record decode diagnostics
- Node store discovery, isolated per-node loading in a worker pool and a
  deterministic merge in discovery order
- Outer-join reconciliation with MATCH / MISMATCH / ORPHAN classification
  and aggregate totals
- Rich console reports (mismatches only or verbose) and JSON export
- SHA-256 provenance chain tracking for every pipeline stage
- 8 Prometheus metrics for observability

Key Components:
    - config: AccountReconciliationConfig with LA_ACR_ env prefix
    - models: Account record model and report models
    - store_reader: Read-only SQLite access and node discovery
    - source_aggregator: Canonical and secondary aggregation engines
    - reconciliation_engine: Join and classification engine
    - report_writer: Console and JSON report sink
    - audit_pipeline: End-to-end pipeline orchestration engine
    - provenance: SHA-256 chain-hashed audit trails
    - metrics: 8 Prometheus metrics

Example:
    >>> from ledgeraudit.account_reconciliation import AuditPipelineEngine
    >>> engine = AuditPipelineEngine()
    >>> report = engine.run("/data/archiver.sqlite3", "/data/nodes")
    >>> print(report.summary.match_rate)

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

# ---------------------------------------------------------------------------
# Component metadata constants
# ---------------------------------------------------------------------------

COMPONENT_ID = "LA-ACR-001"
COMPONENT_NAME = "Account Reconciliation"
COMPONENT_VERSION = "1.0.0"

__version__ = COMPONENT_VERSION

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from ledgeraudit.account_reconciliation.config import (
    AccountReconciliationConfig,
    get_config,
    reset_config,
    set_config,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from ledgeraudit.account_reconciliation.models import (
    CANONICAL_ORIGIN,
    NOT_AVAILABLE,
    AccountRecord,
    Classification,
    ComparisonRecord,
    DecodeDiagnostic,
    PipelineStageResult,
    ReconciliationReport,
    ReconciliationSummary,
    RecordShape,
    RegularAccountData,
    SourceFailure,
    SourceLoadResult,
    SourceLoadSummary,
    SpecialAccountData,
    decode_account,
)

# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------
from ledgeraudit.account_reconciliation.provenance import (
    ProvenanceEntry,
    ProvenanceTracker,
)

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
from ledgeraudit.account_reconciliation.store_reader import (
    AccountStoreReader,
    NodeStore,
    node_name_for,
)
from ledgeraudit.account_reconciliation.source_aggregator import (
    CanonicalSourceAggregator,
    SecondaryAggregation,
    SecondarySourceAggregator,
)
from ledgeraudit.account_reconciliation.reconciliation_engine import (
    ReconciliationEngine,
    ReconciliationResult,
    compute_match_rate,
)
from ledgeraudit.account_reconciliation.report_writer import ReportWriter
from ledgeraudit.account_reconciliation.audit_pipeline import (
    AuditPipelineEngine,
)

__all__ = [
    # Metadata
    "COMPONENT_ID",
    "COMPONENT_NAME",
    "COMPONENT_VERSION",
    # Configuration
    "AccountReconciliationConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Models
    "CANONICAL_ORIGIN",
    "NOT_AVAILABLE",
    "AccountRecord",
    "Classification",
    "ComparisonRecord",
    "DecodeDiagnostic",
    "PipelineStageResult",
    "ReconciliationReport",
    "ReconciliationSummary",
    "RecordShape",
    "RegularAccountData",
    "SourceFailure",
    "SourceLoadResult",
    "SourceLoadSummary",
    "SpecialAccountData",
    "decode_account",
    # Provenance
    "ProvenanceEntry",
    "ProvenanceTracker",
    # Engines
    "AccountStoreReader",
    "NodeStore",
    "node_name_for",
    "CanonicalSourceAggregator",
    "SecondaryAggregation",
    "SecondarySourceAggregator",
    "ReconciliationEngine",
    "ReconciliationResult",
    "compute_match_rate",
    "ReportWriter",
    "AuditPipelineEngine",
]
