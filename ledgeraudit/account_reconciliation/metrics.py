# -*- coding: utf-8 -*-
"""
Prometheus Metrics - Account Reconciliation

8 Prometheus metrics for account reconciliation monitoring. Metrics are an
observability side channel only: reports are built from the values the
engines return, never from these collectors.

Metrics:
    1. la_acr_records_loaded_total (Counter, labels: source_kind)
    2. la_acr_decode_failures_total (Counter, labels: source_kind)
    3. la_acr_source_errors_total (Counter, labels: source_kind, error_type)
    4. la_acr_comparisons_total (Counter, labels: result)
    5. la_acr_orphans_total (Counter, labels: side)
    6. la_acr_processing_duration_seconds (Histogram, labels: operation)
    7. la_acr_sources_loaded (Gauge)
    8. la_acr_match_rate (Gauge)

Batch runs can export the registry to a node-exporter textfile with
:func:`write_metrics_textfile`.

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    write_to_textfile,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Account records retained per source kind (canonical, secondary)
acr_records_loaded_total = Counter(
    "la_acr_records_loaded_total",
    "Total comparable account records loaded from sources",
    labelnames=["source_kind"],
)

# 2. Payloads that matched no known account shape
acr_decode_failures_total = Counter(
    "la_acr_decode_failures_total",
    "Total account payloads that failed to decode",
    labelnames=["source_kind"],
)

# 3. Sources that could not be loaded
acr_source_errors_total = Counter(
    "la_acr_source_errors_total",
    "Total source load failures",
    labelnames=["source_kind", "error_type"],
)

# 4. Pairings evaluated by result (match, mismatch)
acr_comparisons_total = Counter(
    "la_acr_comparisons_total",
    "Total canonical/secondary account pairings compared",
    labelnames=["result"],
)

# 5. Identifiers present on one side only
acr_orphans_total = Counter(
    "la_acr_orphans_total",
    "Total orphaned account identifiers",
    labelnames=["side"],
)

# 6. Stage durations
acr_processing_duration_seconds = Histogram(
    "la_acr_processing_duration_seconds",
    "Account reconciliation stage duration in seconds",
    labelnames=["operation"],
    buckets=(
        0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5,
        1.0, 2.5, 5.0, 10.0, 30.0, 60.0,
    ),
)

# 7. Secondary sources that contributed to the last run
acr_sources_loaded = Gauge(
    "la_acr_sources_loaded",
    "Number of secondary sources loaded in the last run",
)

# 8. Match rate of the last run (percent)
acr_match_rate = Gauge(
    "la_acr_match_rate",
    "Match rate of the last reconciliation run in percent",
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def inc_records_loaded(source_kind: str, count: int = 1) -> None:
    """Record comparable account records retained from a source.

    Args:
        source_kind: ``"canonical"`` or ``"secondary"``.
        count: Number of records retained.
    """
    if count > 0:
        acr_records_loaded_total.labels(source_kind=source_kind).inc(count)


def inc_decode_failures(source_kind: str, count: int = 1) -> None:
    """Record payloads dropped because they matched no account shape.

    Args:
        source_kind: ``"canonical"`` or ``"secondary"``.
        count: Number of dropped payloads.
    """
    if count > 0:
        acr_decode_failures_total.labels(source_kind=source_kind).inc(count)


def inc_source_errors(source_kind: str, error_type: str) -> None:
    """Record a source that failed to load.

    Args:
        source_kind: ``"canonical"`` or ``"secondary"``.
        error_type: Exception class name of the failure.
    """
    acr_source_errors_total.labels(
        source_kind=source_kind, error_type=error_type,
    ).inc()


def inc_comparisons(result: str, count: int = 1) -> None:
    """Record evaluated pairings.

    Args:
        result: ``"match"`` or ``"mismatch"``.
        count: Number of pairings.
    """
    if count > 0:
        acr_comparisons_total.labels(result=result).inc(count)


def inc_orphans(side: str, count: int = 1) -> None:
    """Record orphaned identifiers.

    Args:
        side: ``"canonical"`` or ``"secondary"``.
        count: Number of orphans.
    """
    if count > 0:
        acr_orphans_total.labels(side=side).inc(count)


def observe_duration(operation: str, seconds: float) -> None:
    """Record the duration of a pipeline stage.

    Args:
        operation: Stage name (load_canonical, load_secondary, reconcile,
            pipeline).
        seconds: Duration in seconds.
    """
    acr_processing_duration_seconds.labels(operation=operation).observe(
        seconds,
    )


def set_sources_loaded(count: int) -> None:
    """Set the number of secondary sources loaded in the last run."""
    acr_sources_loaded.set(count)


def set_match_rate(rate: float) -> None:
    """Set the match rate of the last run."""
    acr_match_rate.set(rate)


def write_metrics_textfile(path: Union[str, Path]) -> None:
    """Write the default registry to a node-exporter textfile.

    Args:
        path: Destination file path.
    """
    write_to_textfile(str(path), REGISTRY)
    logger.info("Metrics written to %s", path)


__all__ = [
    # Metric objects
    "acr_records_loaded_total",
    "acr_decode_failures_total",
    "acr_source_errors_total",
    "acr_comparisons_total",
    "acr_orphans_total",
    "acr_processing_duration_seconds",
    "acr_sources_loaded",
    "acr_match_rate",
    # Helper functions
    "inc_records_loaded",
    "inc_decode_failures",
    "inc_source_errors",
    "inc_comparisons",
    "inc_orphans",
    "observe_duration",
    "set_sources_loaded",
    "set_match_rate",
    "write_metrics_textfile",
]
