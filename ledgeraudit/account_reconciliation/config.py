# -*- coding: utf-8 -*-
"""
Account Reconciliation Service Configuration

Centralized configuration for the account reconciliation SDK covering:
- Logging level
- Store layout (archiver table, node table, node database file name)
- Store access timeout
- Secondary source load concurrency
- Report verbosity and provenance settings

All settings can be overridden via environment variables with the
``LA_ACR_`` prefix (e.g. ``LA_ACR_MAX_WORKERS``), or loaded from a YAML
file with :meth:`AccountReconciliationConfig.from_yaml`.

Example:
    >>> from ledgeraudit.account_reconciliation.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.archiver_table, cfg.node_table)

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import dataclasses
import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ledgeraudit.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "LA_ACR_"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# AccountReconciliationConfig
# ---------------------------------------------------------------------------


@dataclass
class AccountReconciliationConfig:
    """Complete configuration for the account reconciliation SDK.

    Attributes:
        log_level: Logging level for the reconciliation service.
            Accepts standard Python logging levels: DEBUG, INFO,
            WARNING, ERROR, CRITICAL.
        archiver_table: Table in the archiver database holding
            ``(accountId, data)`` rows.
        node_table: Table in each node database holding
            ``(accountId, data)`` rows.
        node_db_filename: File name that marks a node database when
            walking the nodes folder.
        store_timeout_seconds: SQLite busy timeout applied when opening
            each store. Bounds how long a locked store can stall a load.
        max_workers: Number of node databases loaded concurrently.
            ``1`` loads them sequentially.
        verbose: Whether reports include matches and orphans, not only
            mismatches.
        enable_provenance: Whether the report is stamped with a SHA-256
            provenance chain hash.
        genesis_hash: Seed string used to initialize the provenance chain.
    """

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Store layout --------------------------------------------------------
    archiver_table: str = "accounts"
    node_table: str = "accountsEntry"
    node_db_filename: str = "shardeum.sqlite"

    # -- Store access --------------------------------------------------------
    store_timeout_seconds: float = 5.0

    # -- Worker pool ---------------------------------------------------------
    max_workers: int = 4

    # -- Reporting -----------------------------------------------------------
    verbose: bool = False

    # -- Provenance ----------------------------------------------------------
    enable_provenance: bool = True
    genesis_hash: str = "ledgeraudit-account-reconciliation-genesis"

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> AccountReconciliationConfig:
        """Build an AccountReconciliationConfig from environment variables.

        Every field can be overridden via ``LA_ACR_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).

        Returns:
            Populated AccountReconciliationConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}")

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            log_level=_str("LOG_LEVEL", cls.log_level),
            archiver_table=_str("ARCHIVER_TABLE", cls.archiver_table),
            node_table=_str("NODE_TABLE", cls.node_table),
            node_db_filename=_str("NODE_DB_FILENAME", cls.node_db_filename),
            store_timeout_seconds=_float(
                "STORE_TIMEOUT_SECONDS", cls.store_timeout_seconds,
            ),
            max_workers=_int("MAX_WORKERS", cls.max_workers),
            verbose=_bool("VERBOSE", cls.verbose),
            enable_provenance=_bool(
                "ENABLE_PROVENANCE", cls.enable_provenance,
            ),
            genesis_hash=_str("GENESIS_HASH", cls.genesis_hash),
        )

        logger.info(
            "AccountReconciliationConfig loaded: archiver_table=%s, "
            "node_table=%s, node_db=%s, timeout=%.1fs, workers=%d, "
            "verbose=%s, provenance=%s",
            config.archiver_table,
            config.node_table,
            config.node_db_filename,
            config.store_timeout_seconds,
            config.max_workers,
            config.verbose,
            config.enable_provenance,
        )
        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> AccountReconciliationConfig:
        """Build an AccountReconciliationConfig from a YAML mapping file.

        Keys are the dataclass field names; missing keys keep their
        defaults and unknown keys are rejected.

        Args:
            path: Path to the YAML file.

        Returns:
            Populated AccountReconciliationConfig instance.

        Raises:
            ConfigurationError: If the file cannot be read, is not a
                mapping, or contains unknown keys.
        """
        config_path = Path(path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(
                f"Failed to read config file {config_path}: {exc}",
                context={"path": str(config_path)},
            ) from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping",
                context={"path": str(config_path)},
            )

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown config keys in {config_path}: {', '.join(unknown)}",
                context={"path": str(config_path), "unknown_keys": unknown},
            )

        logger.info("AccountReconciliationConfig loaded from %s", config_path)
        return cls(**raw)

    def replace(self, **changes: Any) -> AccountReconciliationConfig:
        """Return a validated copy with the given fields replaced.

        ``None`` values are ignored so CLI options can be passed through
        unconditionally.
        """
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        """Validate all configuration constraints after initialization.

        Raises:
            ConfigurationError: If any constraint is violated.
        """
        errors: list[str] = []

        # Store layout
        for name in ("archiver_table", "node_table"):
            value = getattr(self, name)
            if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
                errors.append(
                    f"{name} must be a plain SQL identifier, got '{value}'"
                )
        if (
            not isinstance(self.node_db_filename, str)
            or not self.node_db_filename
            or "/" in self.node_db_filename
        ):
            errors.append(
                f"node_db_filename must be a bare file name, "
                f"got '{self.node_db_filename}'"
            )

        # Store access
        if not _is_number(self.store_timeout_seconds) or (
            self.store_timeout_seconds <= 0
        ):
            errors.append(
                f"store_timeout_seconds must be a number > 0, "
                f"got '{self.store_timeout_seconds}'"
            )

        # Worker pool
        if not _is_int(self.max_workers) or self.max_workers < 1:
            errors.append(
                f"max_workers must be an integer >= 1, "
                f"got '{self.max_workers}'"
            )

        # Flags
        for name in ("verbose", "enable_provenance"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                errors.append(f"{name} must be true or false, got '{value}'")

        # Log level
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if (
            not isinstance(self.log_level, str)
            or self.log_level.upper() not in valid_levels
        ):
            errors.append(
                f"log_level must be one of {valid_levels}, "
                f"got '{self.log_level}'"
            )

        # Genesis hash
        if not isinstance(self.genesis_hash, str) or not self.genesis_hash:
            errors.append("genesis_hash must be a non-empty string")

        if errors:
            msg = "; ".join(errors)
            logger.error(
                "AccountReconciliationConfig validation failed: %s", msg,
            )
            raise ConfigurationError(
                f"AccountReconciliationConfig validation failed: {msg}",
                context={"errors": errors},
            )

        logger.debug("AccountReconciliationConfig validated successfully")


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[AccountReconciliationConfig] = None
_config_lock = threading.Lock()


def get_config() -> AccountReconciliationConfig:
    """Return the singleton AccountReconciliationConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.

    Returns:
        AccountReconciliationConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AccountReconciliationConfig.from_env()
    return _config_instance


def set_config(config: AccountReconciliationConfig) -> None:
    """Replace the singleton AccountReconciliationConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("AccountReconciliationConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "AccountReconciliationConfig",
    "get_config",
    "set_config",
    "reset_config",
]
