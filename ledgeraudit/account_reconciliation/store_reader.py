# -*- coding: utf-8 -*-
"""
Account Store Reader

Extracts raw ``(accountId, data)`` pairs from SQLite account stores and
discovers node stores under a nodes folder.

Layout handled:
    - Archiver store: a single SQLite file with an ``accounts`` table.
    - Node stores: every file named ``shardeum.sqlite`` below the nodes
      folder, each holding an ``accountsEntry`` table. The node name is
      the store file's grandparent directory
      (``<nodes>/<node-name>/db/shardeum.sqlite``).

Stores are opened read-only with a bounded busy timeout. Any failure to
open, query or read a store raises :class:`StoreAccessError`.

Example:
    >>> reader = AccountStoreReader()
    >>> pairs = reader.read_archiver("/data/archiver.sqlite3")
    >>> stores = reader.discover_nodes("/data/nodes")

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ledgeraudit.account_reconciliation.config import (
    AccountReconciliationConfig,
    get_config,
)
from ledgeraudit.exceptions import StoreAccessError

logger = logging.getLogger(__name__)

UNKNOWN_NODE = "unknown"

RawPair = Tuple[str, str]


@dataclass(frozen=True)
class NodeStore:
    """A discovered node store.

    Attributes:
        name: Logical node name.
        path: Path of the node's SQLite file.
    """

    name: str
    path: Path


def node_name_for(db_path: Union[str, Path]) -> str:
    """Return the node name for a store path.

    Args:
        db_path: Path of a node's SQLite file.

    Returns:
        Name of the file's grandparent directory, or ``"unknown"``.
    """
    path = Path(db_path)
    grandparent = path.parent.parent
    if grandparent == path.parent:
        return UNKNOWN_NODE
    return grandparent.name or UNKNOWN_NODE


class AccountStoreReader:
    """Read-only access to archiver and node SQLite stores.

    Attributes:
        config: Reconciliation configuration supplying table names, the
            node database file name and the store timeout.
    """

    def __init__(
        self, config: Optional[AccountReconciliationConfig] = None,
    ) -> None:
        self.config = config or get_config()
        logger.info(
            "AccountStoreReader initialized: archiver_table=%s, "
            "node_table=%s, timeout=%.1fs",
            self.config.archiver_table,
            self.config.node_table,
            self.config.store_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read_archiver(self, db_path: Union[str, Path]) -> List[RawPair]:
        """Read all raw pairs from the archiver store.

        Raises:
            StoreAccessError: If the store cannot be opened or queried.
        """
        return self.read_pairs(db_path, self.config.archiver_table, "archiver")

    def read_node(self, store: NodeStore) -> List[RawPair]:
        """Read all raw pairs from a node store.

        Raises:
            StoreAccessError: If the store cannot be opened or queried.
        """
        return self.read_pairs(store.path, self.config.node_table, store.name)

    def read_pairs(
        self,
        db_path: Union[str, Path],
        table: str,
        source_name: str,
    ) -> List[RawPair]:
        """Read ``(accountId, data)`` pairs from one table of a store.

        Args:
            db_path: Path of the SQLite file.
            table: Table name; must be a validated SQL identifier.
            source_name: Source name for diagnostics.

        Returns:
            Pairs in the store's row order.

        Raises:
            StoreAccessError: If the file is missing, cannot be opened,
                the query fails, or a row holds a non-text identifier or
                payload.
        """
        path = Path(db_path)
        if not path.is_file():
            raise StoreAccessError(
                f"Store file not found: {path}",
                source_name=source_name,
                store_path=str(path),
                operation="open",
            )

        uri = f"{path.resolve().as_uri()}?mode=ro"
        query = f'SELECT accountId, data FROM "{table}"'
        pairs: List[RawPair] = []

        try:
            with closing(
                sqlite3.connect(
                    uri,
                    uri=True,
                    timeout=self.config.store_timeout_seconds,
                )
            ) as conn:
                with closing(conn.execute(query)) as cursor:
                    for row_number, (account_id, data) in enumerate(
                        cursor, start=1,
                    ):
                        pairs.append(
                            self._check_row(
                                row_number, account_id, data,
                                source_name, path,
                            )
                        )
        except sqlite3.Error as exc:
            raise StoreAccessError(
                f"Failed to read table {table} from {path}: {exc}",
                source_name=source_name,
                store_path=str(path),
                operation="query",
                cause=exc,
            ) from exc

        logger.debug(
            "Read %d rows from %s (%s)", len(pairs), path, source_name,
        )
        return pairs

    def discover_nodes(self, nodes_folder: Union[str, Path]) -> List[NodeStore]:
        """Find every node store below a folder.

        Args:
            nodes_folder: Root folder of the node instances.

        Returns:
            Node stores sorted by path.

        Raises:
            StoreAccessError: If the folder does not exist or is not a
                directory.
        """
        root = Path(nodes_folder)
        if not root.is_dir():
            raise StoreAccessError(
                f"Nodes folder not found or not a directory: {root}",
                source_name="nodes",
                store_path=str(root),
                operation="discover",
            )

        filename = self.config.node_db_filename
        stores = [
            NodeStore(name=node_name_for(path), path=path)
            for path in sorted(root.rglob(filename))
            if path.is_file()
        ]
        logger.info(
            "Discovered %d node stores under %s", len(stores), root,
        )
        return stores

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_row(
        row_number: int,
        account_id: object,
        data: object,
        source_name: str,
        path: Path,
    ) -> RawPair:
        if not isinstance(account_id, str):
            raise StoreAccessError(
                f"Row {row_number} of {path} has a non-text accountId "
                f"({type(account_id).__name__})",
                source_name=source_name,
                store_path=str(path),
                operation="read",
            )
        if not isinstance(data, str):
            raise StoreAccessError(
                f"Row {row_number} ({account_id}) of {path} has a non-text "
                f"data column ({type(data).__name__})",
                source_name=source_name,
                store_path=str(path),
                operation="read",
            )
        return account_id, data


__all__ = [
    "UNKNOWN_NODE",
    "NodeStore",
    "AccountStoreReader",
    "node_name_for",
]
