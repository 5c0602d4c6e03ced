"""Tests for the LedgerAudit exception hierarchy.

Test suite covering:
- Base exception functionality
- Source exceptions and their store context
- Decode exceptions
- Configuration exceptions
- Exception utilities
"""

import json
from datetime import datetime

import pytest

from ledgeraudit.exceptions import (
    ConfigurationError,
    DecodeError,
    LedgerAuditException,
    SourceError,
    StoreAccessError,
    format_exception_chain,
)


# ==============================================================================
# Base Exception Tests
# ==============================================================================

class TestLedgerAuditException:
    """Tests for base LedgerAuditException."""

    def test_create_basic_exception(self):
        """Can create basic exception with message."""
        exc = LedgerAuditException("Something went wrong")

        assert exc.message == "Something went wrong"
        assert exc.error_code.startswith("LA_")
        assert exc.source_name is None
        assert exc.context == {}
        assert isinstance(exc.timestamp, datetime)

    def test_exception_str_representation(self):
        """Exception string includes error code, source and message."""
        exc = LedgerAuditException(
            message="Test error",
            error_code="LA_TEST_001",
            source_name="node-1",
        )

        assert str(exc) == "[LA_TEST_001] - Source: node-1 - Test error"

    def test_exception_to_dict(self):
        """Exception can be converted to dictionary."""
        exc = LedgerAuditException(
            message="Test error",
            source_name="archiver",
            context={"key": "value"},
        )

        exc_dict = exc.to_dict()

        assert exc_dict["error_type"] == "LedgerAuditException"
        assert exc_dict["message"] == "Test error"
        assert exc_dict["source_name"] == "archiver"
        assert exc_dict["context"] == {"key": "value"}
        assert "timestamp" in exc_dict
        assert "traceback" in exc_dict

    def test_exception_to_json(self):
        """Exception can be serialized to JSON."""
        exc = LedgerAuditException("Test error", context={"key": "value"})

        parsed = json.loads(exc.to_json())

        assert parsed["message"] == "Test error"
        assert parsed["context"] == {"key": "value"}

    def test_auto_generated_error_codes(self):
        """Error codes are generated from the class name."""
        assert LedgerAuditException("x").error_code == "LA_LEDGER_AUDIT_EXCEPTION"
        assert StoreAccessError("x").error_code == "LA_STORE_ACCESS_ERROR"
        assert DecodeError("x", identifier="0x1").error_code == "LA_DECODE_ERROR"


# ==============================================================================
# Source Exception Tests
# ==============================================================================

class TestSourceExceptions:
    """Tests for SourceError and StoreAccessError."""

    def test_store_access_error_records_store_context(self):
        """StoreAccessError records path, operation and cause."""
        cause = OSError("disk I/O error")
        exc = StoreAccessError(
            message="Failed to read node store",
            source_name="node-3",
            store_path="/data/nodes/node-3/db/shardeum.sqlite",
            operation="query",
            cause=cause,
        )

        assert isinstance(exc, SourceError)
        assert isinstance(exc, LedgerAuditException)
        assert exc.context["store_path"].endswith("shardeum.sqlite")
        assert exc.context["operation"] == "query"
        assert exc.context["cause"] == "disk I/O error"
        assert exc.context["cause_type"] == "OSError"

    def test_source_error_without_optional_context(self):
        """SourceError omits unset context keys."""
        exc = SourceError("Failed to load archiver accounts")

        assert exc.context == {}


# ==============================================================================
# Decode Exception Tests
# ==============================================================================

class TestDecodeError:
    """Tests for DecodeError."""

    def test_decode_error_carries_identifier_and_cause(self):
        """DecodeError exposes the offending identifier and cause."""
        exc = DecodeError(
            message="Payload is not valid JSON",
            identifier="0xD",
            cause="Expecting value",
            source_name="node-1",
        )

        assert exc.identifier == "0xD"
        assert exc.cause == "Expecting value"
        assert exc.context == {"identifier": "0xD", "cause": "Expecting value"}
        assert exc.source_name == "node-1"


# ==============================================================================
# Configuration Exception Tests
# ==============================================================================

class TestConfigurationError:
    """Tests for ConfigurationError."""

    def test_configuration_error_is_value_error(self):
        """ConfigurationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise ConfigurationError("max_workers must be >= 1")


# ==============================================================================
# Exception Utilities Tests
# ==============================================================================

class TestExceptionUtilities:
    """Tests for exception utility functions."""

    def test_format_exception_chain_single(self):
        """Can format single exception."""
        exc = DecodeError("Bad payload", identifier="0x1")

        formatted = format_exception_chain(exc)

        assert "LA_DECODE_ERROR" in formatted
        assert "Bad payload" in formatted

    def test_format_exception_chain_with_cause(self):
        """Formats the chain through __cause__."""
        try:
            try:
                raise OSError("unable to open database file")
            except OSError as inner:
                raise SourceError("Failed to load archiver accounts") from inner
        except SourceError as outer:
            formatted = format_exception_chain(outer)

        assert "Failed to load archiver accounts" in formatted
        assert "OSError: unable to open database file" in formatted
