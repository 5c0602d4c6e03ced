# -*- coding: utf-8 -*-
"""
Provenance Tracking for Account Reconciliation

Provides SHA-256 based audit trail tracking for the reconciliation
pipeline stages. Each stage appends one entry whose chain hash links the
previous entry to the stage's input and output hashes, so the final hash
stamped on a report identifies the exact inputs and results of the run.
Entry timestamps are recorded but not hashed: identical runs produce
identical chain hashes.

Guarantees:
    - All hashes are deterministic SHA-256 over sorted-key JSON
    - Chain hashing links operations in sequence
    - Chain verification recomputes every link from the genesis hash
    - Provenance never influences classification

Example:
    >>> from ledgeraudit.account_reconciliation.provenance import ProvenanceTracker
    >>> tracker = ProvenanceTracker()
    >>> entry = tracker.add_entry(
    ...     "reconcile",
    ...     tracker.compute_hash({"canonical": 3}),
    ...     tracker.compute_hash({"mismatches": 0}),
    ... )
    >>> assert tracker.verify_chain()

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

DEFAULT_GENESIS = "ledgeraudit-account-reconciliation-genesis"


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _normalize_value(value: Any) -> Any:
    """Normalize a value for deterministic serialization.

    Args:
        value: Any Python value to normalize.

    Returns:
        Normalized value safe for deterministic JSON serialization.
    """
    if isinstance(value, float):
        if math.isnan(value):
            return "__NaN__"
        if math.isinf(value):
            return "__Inf__" if value > 0 else "__-Inf__"
        return round(value, 10)
    if isinstance(value, dict):
        return {str(k): _normalize_value(v) for k, v in sorted(value.items())}
    if isinstance(value, (list, tuple)):
        return [_normalize_value(v) for v in value]
    return value


@dataclass
class ProvenanceEntry:
    """A single provenance record in the chain.

    Attributes:
        entry_id: Unique identifier for this provenance entry.
        operation: Name of the pipeline stage.
        input_hash: SHA-256 hash of the stage input.
        output_hash: SHA-256 hash of the stage output.
        timestamp: ISO-formatted UTC timestamp of the stage.
        parent_hash: Chain hash of the previous entry in the chain.
        chain_hash: SHA-256 chain hash linking this entry to the chain.
        metadata: Optional additional metadata for audit context.
    """

    entry_id: str
    operation: str
    input_hash: str
    output_hash: str
    timestamp: str
    parent_hash: str
    chain_hash: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to a dictionary for serialization."""
        return asdict(self)


class ProvenanceTracker:
    """Append-only SHA-256 provenance chain for one reconciliation run.

    Attributes:
        genesis_hash: Chain hash preceding the first entry.
        _entries: Entries in insertion order.
        _last_chain_hash: Most recent chain hash for linking.
        _lock: Thread-safety lock.
    """

    def __init__(self, genesis: str = DEFAULT_GENESIS) -> None:
        """Initialize the tracker.

        Args:
            genesis: Seed string hashed into the genesis chain hash.
        """
        self.genesis_hash = hashlib.sha256(
            genesis.encode("utf-8")
        ).hexdigest()
        self._entries: List[ProvenanceEntry] = []
        self._last_chain_hash: str = self.genesis_hash
        self._lock = threading.Lock()
        logger.debug("ProvenanceTracker initialized")

    # ------------------------------------------------------------------
    # Hashing helpers
    # ------------------------------------------------------------------

    @staticmethod
    def compute_hash(data: Any) -> str:
        """Compute a deterministic SHA-256 hash with sorted keys.

        Args:
            data: Data to hash (dict, list, str, number, or other).

        Returns:
            Hex-encoded SHA-256 hash string.
        """
        normalized = _normalize_value(data)
        serialized = json.dumps(normalized, sort_keys=True, default=str)
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()

    @staticmethod
    def _compute_chain_hash(
        previous_hash: str,
        input_hash: str,
        output_hash: str,
        operation: str,
    ) -> str:
        combined = json.dumps(
            {
                "previous": previous_hash,
                "input": input_hash,
                "output": output_hash,
                "operation": operation,
            },
            sort_keys=True,
        )
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------
    # Chain operations
    # ------------------------------------------------------------------

    def add_entry(
        self,
        operation: str,
        input_hash: str,
        output_hash: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ProvenanceEntry:
        """Add a provenance entry to the chain.

        Args:
            operation: Name of the stage (load_canonical, load_secondary,
                reconcile).
            input_hash: SHA-256 hash of the stage input.
            output_hash: SHA-256 hash of the stage output.
            metadata: Optional additional metadata to include.

        Returns:
            The created ProvenanceEntry with computed chain hash.
        """
        timestamp = _utcnow().isoformat()

        with self._lock:
            parent_hash = self._last_chain_hash
            chain_hash = self._compute_chain_hash(
                parent_hash, input_hash, output_hash, operation,
            )
            entry = ProvenanceEntry(
                entry_id=str(uuid4()),
                operation=operation,
                input_hash=input_hash,
                output_hash=output_hash,
                timestamp=timestamp,
                parent_hash=parent_hash,
                chain_hash=chain_hash,
                metadata=dict(metadata or {}),
            )
            self._entries.append(entry)
            self._last_chain_hash = chain_hash

        logger.debug(
            "Chain entry added: op=%s in=%s out=%s chain=%s",
            operation,
            input_hash[:16],
            output_hash[:16],
            chain_hash[:16],
        )
        return entry

    def verify_chain(self) -> bool:
        """Recompute every link and check it against the stored hashes.

        Returns:
            True when every entry's parent and chain hash are consistent.
        """
        with self._lock:
            entries = list(self._entries)

        previous = self.genesis_hash
        for index, entry in enumerate(entries):
            expected = self._compute_chain_hash(
                previous,
                entry.input_hash,
                entry.output_hash,
                entry.operation,
            )
            if entry.parent_hash != previous or entry.chain_hash != expected:
                logger.warning(
                    "Chain verification failed at entry %d (%s)",
                    index, entry.operation,
                )
                return False
            previous = entry.chain_hash
        return True

    def get_chain(self) -> List[Dict[str, Any]]:
        """Return the chain as dictionaries, oldest first."""
        with self._lock:
            return [entry.to_dict() for entry in self._entries]

    def get_latest_hash(self) -> str:
        """Return the current chain hash (head of the chain)."""
        with self._lock:
            return self._last_chain_hash

    @property
    def entry_count(self) -> int:
        """Return the total number of provenance entries."""
        with self._lock:
            return len(self._entries)


__all__ = [
    "DEFAULT_GENESIS",
    "ProvenanceEntry",
    "ProvenanceTracker",
]
