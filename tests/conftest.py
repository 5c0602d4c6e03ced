# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import json
import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import pytest

from ledgeraudit.account_reconciliation.config import (
    AccountReconciliationConfig,
    reset_config,
)


def _data_value(value: str, data_type: str = "bi") -> Dict[str, str]:
    return {"dataType": data_type, "value": value}


def build_regular(
    balance: str = "100",
    nonce: str = "5",
    **overrides: Any,
) -> Dict[str, Any]:
    """Return a Regular account payload as a dict."""
    payload = {
        "account": {
            "balance": _data_value(balance),
            "codeHash": _data_value("0xc0de", "bh"),
            "nonce": _data_value(nonce),
            "storageRoot": _data_value("0x5707", "bh"),
        },
        "accountType": 0,
        "ethAddress": "0xabc",
        "hash": "0xfeed",
        "timestamp": 1700000000000,
    }
    payload.update(overrides)
    return payload


def build_special(nonce: Optional[int] = None, **extra: Any) -> Dict[str, Any]:
    """Return a Special account payload as a dict."""
    payload: Dict[str, Any] = {
        "accountType": 5,
        "hash": "0xbeef",
        "id": "network-account",
        "timestamp": 1700000000000,
    }
    if nonce is not None:
        payload["nonce"] = nonce
    payload.update(extra)
    return payload


def write_store(
    path: Path,
    table: str,
    rows: Iterable[Tuple[Any, Any]],
) -> Path:
    """Create a SQLite store holding ``(accountId, data)`` rows."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(f'CREATE TABLE "{table}" (accountId, data)')
        conn.executemany(f'INSERT INTO "{table}" VALUES (?, ?)', list(rows))
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def regular_payload():
    """Builder for Regular payload JSON text."""
    def _build(balance: str = "100", nonce: str = "5", **overrides: Any) -> str:
        return json.dumps(build_regular(balance, nonce, **overrides))
    return _build


@pytest.fixture
def special_payload():
    """Builder for Special payload JSON text."""
    def _build(nonce: Optional[int] = None, **extra: Any) -> str:
        return json.dumps(build_special(nonce, **extra))
    return _build


@pytest.fixture
def config():
    """Sequential configuration used by the engine tests."""
    return AccountReconciliationConfig(max_workers=1)


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Clear LA_ACR_ environment overrides and the config singleton."""
    for key in list(os.environ):
        if key.startswith("LA_ACR_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def archiver_db(tmp_path, regular_payload, special_payload):
    """Archiver store for the standard scenario.

    0xA: balance 100, nonce 5 (nodes report nonce 6)
    0xB: only in the archiver
    0xC: balance 7, nonce 1 (two nodes agree)
    0xD: invalid JSON
    0xS: Special account (never compared)
    """
    return write_store(
        tmp_path / "archiver.sqlite3",
        "accounts",
        [
            ("0xA", regular_payload("100", "5")),
            ("0xB", regular_payload("1", "0")),
            ("0xC", regular_payload("7", "1")),
            ("0xD", "{not json"),
            ("0xS", special_payload(nonce=3)),
        ],
    )


@pytest.fixture
def nodes_folder(tmp_path, regular_payload):
    """Two node stores laid out as ``<nodes>/<name>/db/shardeum.sqlite``."""
    root = tmp_path / "nodes"
    write_store(
        root / "node-1" / "db" / "shardeum.sqlite",
        "accountsEntry",
        [
            ("0xA", regular_payload("100", "6")),
            ("0xC", regular_payload("7", "1")),
        ],
    )
    write_store(
        root / "node-2" / "db" / "shardeum.sqlite",
        "accountsEntry",
        [
            ("0xC", regular_payload("7", "1")),
            ("0xE", regular_payload("9", "9")),
        ],
    )
    return root


@pytest.fixture
def make_store():
    """Builder for SQLite stores holding ``(accountId, data)`` rows."""
    return write_store


@pytest.fixture
def regular_dict():
    """Builder for Regular payload dicts, for tests that edit fields."""
    return build_regular
