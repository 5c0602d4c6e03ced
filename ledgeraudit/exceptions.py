# -*- coding: utf-8 -*-
"""LedgerAudit Custom Exception Hierarchy.

This module provides the exception hierarchy for LedgerAudit with rich
error context for debugging, monitoring, and operator feedback.

Exception Hierarchy:
    LedgerAuditException (base)
    ├── SourceError
    │   └── StoreAccessError
    ├── DecodeError
    └── ConfigurationError

Only two failure categories exist in the reconciliation core: a store that
cannot be read (``StoreAccessError``, surfaced by the canonical aggregator as
``SourceError``) and a payload that matches no known account shape
(``DecodeError``). Mismatches and orphans are classifications, not errors.

All exceptions include rich context:
- error_code: Unique error identifier
- source_name: Name of the data source involved (archiver or node)
- context: Dictionary with error-specific details
- timestamp: When the error occurred
- traceback: Full stack trace for debugging

Example:
    >>> from ledgeraudit.exceptions import StoreAccessError
    >>> raise StoreAccessError(
    ...     message="Failed to open node database",
    ...     source_name="node-3",
    ...     store_path="/data/nodes/node-3/db/shardeum.sqlite",
    ...     operation="open",
    ... )

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

import json
import re
import traceback as tb
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class LedgerAuditException(Exception):
    """Base exception for all LedgerAudit errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "LA_STORE_ACCESS_ERROR")
        source_name: Name of the data source involved (optional)
        context: Dictionary with error-specific details
        timestamp: When the error occurred
        traceback_str: Full stack trace for debugging
    """

    ERROR_PREFIX = "LA"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        source_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize LedgerAudit exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            source_name: Name of the data source involved
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.source_name = source_name
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = "".join(tb.format_stack()[:-1])

    def _generate_error_code(self) -> str:
        """Generate error code from the exception class name.

        Returns:
            Error code like "LA_DECODE_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary with all error details
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "source_name": self.source_name,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback_str,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string.

        Returns:
            JSON string representation
        """
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        """String representation with error code and message."""
        parts = [f"[{self.error_code}]"]
        if self.source_name:
            parts.append(f"Source: {self.source_name}")
        parts.append(self.message)
        return " - ".join(parts)

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"source_name='{self.source_name}')"
        )


# ==============================================================================
# Source Exceptions
# ==============================================================================

class SourceError(LedgerAuditException):
    """A data source could not be loaded.

    Fatal for the canonical (archiver) source; isolated to the failing
    instance for secondary (node) sources.

    Example:
        >>> raise SourceError(
        ...     message="Failed to load archiver accounts",
        ...     source_name="archiver",
        ...     store_path="/data/archiver.sqlite3",
        ...     cause=sqlite3.OperationalError("no such table: accounts"),
        ... )
    """

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        store_path: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        """Initialize source error.

        Args:
            message: Error message
            source_name: Name of the source that failed
            context: Error context
            store_path: Filesystem path of the underlying store
            operation: Operation that failed (open, query, read, discover)
            cause: Original exception
        """
        context = context or {}
        if store_path:
            context["store_path"] = str(store_path)
        if operation:
            context["operation"] = operation
        if cause is not None:
            context["cause"] = str(cause)
            context["cause_type"] = type(cause).__name__
        super().__init__(message, source_name=source_name, context=context)


class StoreAccessError(SourceError):
    """The underlying store cannot be opened, queried or enumerated.

    Example:
        >>> raise StoreAccessError(
        ...     message="Failed to prepare node query",
        ...     source_name="node-1",
        ...     operation="query",
        ... )
    """


# ==============================================================================
# Decode Exceptions
# ==============================================================================

class DecodeError(LedgerAuditException):
    """An account payload matches neither known record shape.

    Recovered locally by the aggregators: the record is skipped and a
    diagnostic is emitted.

    Example:
        >>> raise DecodeError(
        ...     message="Payload is not valid JSON",
        ...     identifier="0xabc",
        ...     cause="expected value at line 1 column 1",
        ... )
    """

    def __init__(
        self,
        message: str,
        identifier: str,
        cause: Optional[str] = None,
        source_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize decode error.

        Args:
            message: Error message
            identifier: Account identifier of the offending payload
            cause: Description of the underlying parse failure
            source_name: Source the payload came from
            context: Error context
        """
        context = context or {}
        context["identifier"] = identifier
        if cause:
            context["cause"] = cause
        super().__init__(message, source_name=source_name, context=context)
        self.identifier = identifier
        self.cause = cause


# ==============================================================================
# Configuration Exceptions
# ==============================================================================

class ConfigurationError(LedgerAuditException, ValueError):
    """Configuration is invalid.

    Example:
        >>> raise ConfigurationError(
        ...     message="max_workers must be >= 1",
        ...     context={"max_workers": 0},
        ... )
    """


# ==============================================================================
# Exception Utilities
# ==============================================================================

def format_exception_chain(exc: BaseException) -> str:
    """Format exception chain for logging/display.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with full exception chain
    """
    lines = []
    current: Optional[BaseException] = exc

    while current is not None:
        if isinstance(current, LedgerAuditException):
            lines.append(str(current))
            lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = getattr(current, "__cause__", None)

    return "\n".join(lines)
