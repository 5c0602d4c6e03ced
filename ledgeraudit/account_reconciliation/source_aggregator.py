# -*- coding: utf-8 -*-
"""
Source Aggregators - Account Reconciliation

Turns raw ``(identifier, payload)`` pairs into keyed snapshots of
comparable account records.

Engines:
    - CanonicalSourceAggregator: one archiver source; decode, keep
      comparable records (last write wins on duplicate identifiers) and
      propagate any store failure as a single ``SourceError``.
    - SecondarySourceAggregator: N node sources; each instance is loaded
      independently (optionally in a worker pool), failures are isolated
      to the failing instance, and the per-instance results are merged in
      discovery order into ``identifier -> [record, ...]``.

Decode failures never abort a load: the payload is skipped, a WARNING is
logged and a :class:`DecodeDiagnostic` is recorded on the load result.

Example:
    >>> canonical = CanonicalSourceAggregator().aggregate(pairs)
    >>> secondary = SecondarySourceAggregator().aggregate(
    ...     [("node-1", node1_pairs), ("node-2", node2_pairs)]
    ... )
    >>> secondary.merged["0xabc"][0].origin
    'node-1'

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from ledgeraudit.account_reconciliation.config import (
    AccountReconciliationConfig,
    get_config,
)
from ledgeraudit.account_reconciliation.metrics import (
    inc_decode_failures,
    inc_records_loaded,
    inc_source_errors,
    observe_duration,
    set_sources_loaded,
)
from ledgeraudit.account_reconciliation.models import (
    CANONICAL_ORIGIN,
    AccountRecord,
    DecodeDiagnostic,
    SourceFailure,
    SourceLoadResult,
    SourceLoadSummary,
    decode_account,
)
from ledgeraudit.account_reconciliation.store_reader import (
    AccountStoreReader,
    RawPair,
)
from ledgeraudit.exceptions import DecodeError, SourceError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared decode / filter step
# ---------------------------------------------------------------------------


def build_snapshot(
    pairs: Iterable[RawPair],
    origin: str,
    source_kind: str,
) -> SourceLoadResult:
    """Decode raw pairs and keep the comparable records.

    Args:
        pairs: Raw ``(identifier, payload)`` pairs in source order.
        origin: Origin tag stamped on every record.
        source_kind: ``"canonical"`` or ``"secondary"`` (metrics label).

    Returns:
        SourceLoadResult with comparable records keyed by identifier.
    """
    records: Dict[str, AccountRecord] = {}
    diagnostics: List[DecodeDiagnostic] = []
    special_count = 0

    for identifier, payload in pairs:
        try:
            record = decode_account(identifier, payload, origin=origin)
        except DecodeError as exc:
            logger.warning(
                "Failed to parse account data for %s in %s: %s",
                identifier, origin, exc.cause,
            )
            diagnostics.append(
                DecodeDiagnostic(
                    identifier=identifier,
                    source_name=origin,
                    cause=exc.cause or exc.message,
                )
            )
            continue

        if not record.is_comparable():
            special_count += 1
            logger.debug(
                "Skipping non-comparable account %s in %s", identifier, origin,
            )
            continue

        records[identifier] = record

    inc_records_loaded(source_kind, len(records))
    inc_decode_failures(source_kind, len(diagnostics))

    return SourceLoadResult(
        source_name=origin,
        records=records,
        special_count=special_count,
        diagnostics=diagnostics,
    )


# ---------------------------------------------------------------------------
# CanonicalSourceAggregator
# ---------------------------------------------------------------------------


class CanonicalSourceAggregator:
    """Builds the canonical snapshot from the archiver source.

    Example:
        >>> aggregator = CanonicalSourceAggregator()
        >>> result = aggregator.load("/data/archiver.sqlite3")
        >>> print(result.retained)
    """

    def __init__(
        self,
        config: Optional[AccountReconciliationConfig] = None,
        reader: Optional[AccountStoreReader] = None,
    ) -> None:
        self.config = config or get_config()
        self._reader = reader
        logger.info("CanonicalSourceAggregator initialized")

    @property
    def reader(self) -> AccountStoreReader:
        if self._reader is None:
            self._reader = AccountStoreReader(self.config)
        return self._reader

    def aggregate(self, pairs: Iterable[RawPair]) -> SourceLoadResult:
        """Decode and filter already-extracted canonical pairs.

        Args:
            pairs: Raw ``(identifier, payload)`` pairs.

        Returns:
            SourceLoadResult keyed by identifier.
        """
        result = build_snapshot(pairs, CANONICAL_ORIGIN, "canonical")
        logger.info(
            "Loaded %d accounts from archiver database", result.retained,
        )
        return result

    def load(self, db_path: Union[str, Path]) -> SourceLoadResult:
        """Read the archiver store and build the canonical snapshot.

        Args:
            db_path: Path of the archiver SQLite file.

        Returns:
            SourceLoadResult keyed by identifier.

        Raises:
            SourceError: If the archiver store cannot be read.
        """
        start = time.monotonic()
        try:
            pairs = self.reader.read_archiver(db_path)
        except SourceError as exc:
            inc_source_errors("canonical", type(exc).__name__)
            raise SourceError(
                f"Failed to load archiver accounts: {exc.message}",
                source_name="archiver",
                store_path=str(db_path),
                operation="load",
                cause=exc,
            ) from exc

        result = self.aggregate(pairs)
        observe_duration("load_canonical", time.monotonic() - start)
        return result


# ---------------------------------------------------------------------------
# SecondarySourceAggregator
# ---------------------------------------------------------------------------


@dataclass
class SecondaryAggregation:
    """Merged secondary snapshot plus per-instance bookkeeping.

    Attributes:
        merged: ``identifier -> [record, ...]``, one entry per
            contributing instance, in discovery order.
        loaded: Summaries of instances that loaded, in discovery order.
        failures: Instances that could not be loaded.
        decode_failures: Payloads dropped across all instances.
    """

    merged: Dict[str, List[AccountRecord]] = field(default_factory=dict)
    loaded: List[SourceLoadSummary] = field(default_factory=list)
    failures: List[SourceFailure] = field(default_factory=list)
    decode_failures: int = 0

    @property
    def sources_loaded(self) -> int:
        """Return the number of instances that contributed."""
        return len(self.loaded)

    def counts(self) -> List[Tuple[str, int]]:
        """Return ``(source_name, retained)`` per loaded instance."""
        return [(s.source_name, s.retained) for s in self.loaded]


@dataclass
class _InstanceTask:
    name: str
    store_path: Optional[str]
    read: Callable[[], Iterable[RawPair]]


class SecondarySourceAggregator:
    """Builds the merged secondary snapshot from N node sources.

    Instances are loaded concurrently when ``max_workers > 1``. Results
    are collected per task and merged sequentially in discovery order, so
    the merged mapping is identical to a sequential run.

    Example:
        >>> aggregator = SecondarySourceAggregator()
        >>> result = aggregator.load("/data/nodes")
        >>> print(result.sources_loaded, len(result.merged))
    """

    def __init__(
        self,
        config: Optional[AccountReconciliationConfig] = None,
        reader: Optional[AccountStoreReader] = None,
    ) -> None:
        self.config = config or get_config()
        self._reader = reader
        logger.info(
            "SecondarySourceAggregator initialized: max_workers=%d",
            self.config.max_workers,
        )

    @property
    def reader(self) -> AccountStoreReader:
        if self._reader is None:
            self._reader = AccountStoreReader(self.config)
        return self._reader

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def aggregate(
        self, feeds: Sequence[Tuple[str, Iterable[RawPair]]],
    ) -> SecondaryAggregation:
        """Decode, filter and merge in-memory secondary feeds.

        Args:
            feeds: ``(source_name, pairs)`` per instance, in discovery
                order.

        Returns:
            SecondaryAggregation.
        """
        tasks = [
            _InstanceTask(
                name=name,
                store_path=None,
                read=functools.partial(list, pairs),
            )
            for name, pairs in feeds
        ]
        return self._run(tasks)

    def load(self, nodes_folder: Union[str, Path]) -> SecondaryAggregation:
        """Discover node stores below a folder and load each of them.

        A missing nodes folder yields zero instances and a recorded
        failure; it never raises.

        Args:
            nodes_folder: Root folder of the node instances.

        Returns:
            SecondaryAggregation.
        """
        try:
            stores = self.reader.discover_nodes(nodes_folder)
        except SourceError as exc:
            logger.error("Failed to discover node stores: %s", exc.message)
            inc_source_errors("secondary", type(exc).__name__)
            set_sources_loaded(0)
            return SecondaryAggregation(
                failures=[
                    SourceFailure(
                        source_name=exc.source_name or "nodes",
                        store_path=str(nodes_folder),
                        error_type=type(exc).__name__,
                        message=exc.message,
                    )
                ],
            )

        reader = self.reader
        tasks = [
            _InstanceTask(
                name=store.name,
                store_path=str(store.path),
                read=functools.partial(reader.read_node, store),
            )
            for store in stores
        ]
        return self._run(tasks)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(self, tasks: List[_InstanceTask]) -> SecondaryAggregation:
        start = time.monotonic()
        outcomes: List[Union[SourceLoadResult, SourceFailure, None]] = (
            [None] * len(tasks)
        )

        if self.config.max_workers > 1 and len(tasks) > 1:
            workers = min(self.config.max_workers, len(tasks))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                future_to_index = {
                    executor.submit(self._load_instance, task): index
                    for index, task in enumerate(tasks)
                }
                for future in as_completed(future_to_index):
                    outcomes[future_to_index[future]] = future.result()
        else:
            for index, task in enumerate(tasks):
                outcomes[index] = self._load_instance(task)

        aggregation = SecondaryAggregation()
        for task, outcome in zip(tasks, outcomes):
            if not isinstance(outcome, SourceLoadResult):
                aggregation.failures.append(outcome)
                continue
            for identifier, record in outcome.records.items():
                aggregation.merged.setdefault(identifier, []).append(record)
            aggregation.loaded.append(
                SourceLoadSummary.from_result(outcome, task.store_path),
            )
            aggregation.decode_failures += len(outcome.diagnostics)
            logger.info(
                "Loaded %d accounts from node: %s",
                outcome.retained, outcome.source_name,
            )

        logger.info(
            "Loaded accounts from %d nodes", aggregation.sources_loaded,
        )
        set_sources_loaded(aggregation.sources_loaded)
        observe_duration("load_secondary", time.monotonic() - start)
        return aggregation

    def _load_instance(
        self, task: _InstanceTask,
    ) -> Union[SourceLoadResult, SourceFailure]:
        try:
            pairs = task.read()
        except SourceError as exc:
            logger.error(
                "Failed to load accounts from %s: %s",
                task.store_path or task.name, exc.message,
            )
            inc_source_errors("secondary", type(exc).__name__)
            return SourceFailure(
                source_name=task.name,
                store_path=task.store_path,
                error_type=type(exc).__name__,
                message=exc.message,
            )
        return build_snapshot(pairs, task.name, "secondary")


__all__ = [
    "build_snapshot",
    "CanonicalSourceAggregator",
    "SecondaryAggregation",
    "SecondarySourceAggregator",
]
