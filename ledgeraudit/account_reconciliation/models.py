# -*- coding: utf-8 -*-
"""
Account Reconciliation Data Models

Pydantic v2 data models for the account reconciliation SDK. Defines the
account record model (wire shapes, decoding and the uniform comparison
view), per-source load results, comparison records and the final
reconciliation report.

Wire shapes (structurally distinguished, no discriminant):
    - RegularAccountData: nested ``account`` state with four
      ``{dataType, value}`` fields, plus ``accountType``, optional
      ``ethAddress``, ``hash`` and ``timestamp``.
    - SpecialAccountData: ``accountType``, ``hash``, ``id``, optional
      ``name``, optional integer ``nonce``, ``timestamp`` and an open set
      of extra fields preserved verbatim.

Decoding tries Regular first, then Special. Typing is exact: string
fields accept only JSON strings and integer fields only JSON integers.

Enumerations (2):
    - RecordShape, Classification

SDK models (13):
    - DataValue, AccountState, RegularAccountData, SpecialAccountData,
      AccountRecord, DecodeDiagnostic, SourceLoadResult,
      SourceLoadSummary, SourceFailure, ComparisonRecord,
      ReconciliationSummary, PipelineStageResult, ReconciliationReport

Author: LedgerAudit Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)
from pydantic_core import from_json

from ledgeraudit.exceptions import DecodeError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Origin tag of records loaded from the canonical (archiver) source.
CANONICAL_ORIGIN = "canonical"

#: Sentinel returned when a record carries no value for a compared field.
NOT_AVAILABLE = "N/A"

_I32_MIN = -(2 ** 31)
_I32_MAX = 2 ** 31 - 1


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


# =============================================================================
# Enumerations
# =============================================================================


class RecordShape(str, Enum):
    """Structural shape of a decoded account payload.

    REGULAR: Account with nested state; comparable.
    SPECIAL: Network or system account without nested state; retained
        for bookkeeping but never compared.
    """

    REGULAR = "regular"
    SPECIAL = "special"


class Classification(str, Enum):
    """Outcome of reconciling one identifier pairing.

    MATCH: Balance and nonce are equal on both sides.
    MISMATCH: Balance and/or nonce differ.
    ORPHAN_CANONICAL: Identifier present only in the canonical source.
    ORPHAN_SECONDARY: Identifier present only in a secondary source.
    """

    MATCH = "match"
    MISMATCH = "mismatch"
    ORPHAN_CANONICAL = "orphan_canonical"
    ORPHAN_SECONDARY = "orphan_secondary"


# =============================================================================
# Wire shapes
# =============================================================================


class DataValue(BaseModel):
    """Typed value wrapper used by every account state field.

    The value is kept as the literal string found on the wire; no numeric
    coercion is ever performed.
    """

    data_type: StrictStr = Field(..., alias="dataType")
    value: StrictStr

    model_config = {"frozen": True}


class AccountState(BaseModel):
    """Nested account state of a Regular payload."""

    balance: DataValue
    code_hash: DataValue = Field(..., alias="codeHash")
    nonce: DataValue
    storage_root: DataValue = Field(..., alias="storageRoot")

    model_config = {"frozen": True}


class RegularAccountData(BaseModel):
    """Regular account payload. Unknown top-level keys are ignored."""

    account: AccountState
    account_type: StrictInt = Field(
        ..., alias="accountType", ge=_I32_MIN, le=_I32_MAX,
    )
    eth_address: Optional[StrictStr] = Field(default=None, alias="ethAddress")
    hash: StrictStr
    timestamp: StrictInt

    model_config = {"extra": "ignore", "frozen": True}


class SpecialAccountData(BaseModel):
    """Special account payload.

    Keys outside the known set are preserved in :attr:`other_fields` and
    never interpreted.
    """

    account_type: StrictInt = Field(
        ..., alias="accountType", ge=_I32_MIN, le=_I32_MAX,
    )
    hash: StrictStr
    id: StrictStr
    name: Optional[StrictStr] = None
    nonce: Optional[StrictInt] = None
    timestamp: StrictInt

    model_config = {"extra": "allow", "frozen": True}

    @property
    def other_fields(self) -> Dict[str, Any]:
        """Return the extra fields carried by the payload."""
        return dict(self.model_extra or {})


AccountData = Union[RegularAccountData, SpecialAccountData]


# =============================================================================
# Account record
# =============================================================================


class AccountRecord(BaseModel):
    """Decoded account with a uniform read-only comparison view.

    Attributes:
        identifier: Account identifier; the join key across sources.
        origin: ``"canonical"`` or the secondary source name. Used for
            reporting only, never for comparison.
        data: Decoded wire shape.
    """

    identifier: str = Field(..., description="Account identifier")
    origin: str = Field(
        default=CANONICAL_ORIGIN,
        description="Canonical tag or secondary source name",
    )
    data: Union[RegularAccountData, SpecialAccountData] = Field(
        ..., description="Decoded payload",
    )

    model_config = {"frozen": True}

    @property
    def shape(self) -> RecordShape:
        """Return the structural shape of the payload."""
        if isinstance(self.data, RegularAccountData):
            return RecordShape.REGULAR
        return RecordShape.SPECIAL

    def balance(self) -> Optional[str]:
        """Return the literal balance string, or None for Special records."""
        if isinstance(self.data, RegularAccountData):
            return self.data.account.balance.value
        return None

    def nonce(self) -> str:
        """Return the nonce as a string.

        Regular records return the stored string value. Special records
        return the decimal form of the optional integer nonce, or
        ``"N/A"`` when it is absent.
        """
        if isinstance(self.data, RegularAccountData):
            return self.data.account.nonce.value
        if self.data.nonce is None:
            return NOT_AVAILABLE
        return str(self.data.nonce)

    def is_comparable(self) -> bool:
        """Return True only for Regular records."""
        return self.shape is RecordShape.REGULAR


def decode_account(
    identifier: str,
    payload: Union[str, bytes],
    origin: str = CANONICAL_ORIGIN,
) -> AccountRecord:
    """Decode a serialized account payload.

    The Regular shape is tried first, then Special; the first shape that
    validates wins.

    Args:
        identifier: Account identifier the payload was stored under.
        payload: JSON text of the account.
        origin: Origin tag for the resulting record.

    Returns:
        Decoded AccountRecord.

    Raises:
        DecodeError: If the payload is not valid JSON or matches neither
            shape.

    Example:
        >>> record = decode_account("0xa", payload_json, origin="node-1")
        >>> record.is_comparable()
        True
    """
    source_name = None if origin == CANONICAL_ORIGIN else origin
    try:
        # Bounded nesting depth; NaN/Infinity and lone surrogates rejected.
        raw = from_json(payload, allow_inf_nan=False)
    except ValueError as exc:
        raise DecodeError(
            f"Payload for account {identifier} is not valid JSON",
            identifier=identifier,
            cause=str(exc),
            source_name=source_name,
        ) from exc

    try:
        data: AccountData = RegularAccountData.model_validate(raw)
    except ValidationError as regular_exc:
        try:
            data = SpecialAccountData.model_validate(raw)
        except ValidationError as special_exc:
            cause = (
                f"regular: {regular_exc.error_count()} error(s) "
                f"[{_first_error(regular_exc)}]; "
                f"special: {special_exc.error_count()} error(s) "
                f"[{_first_error(special_exc)}]"
            )
            raise DecodeError(
                f"Payload for account {identifier} matches no known "
                f"account shape",
                identifier=identifier,
                cause=cause,
                source_name=source_name,
            ) from special_exc

    return AccountRecord(identifier=identifier, origin=origin, data=data)


def _first_error(exc: ValidationError) -> str:
    """Summarize the first validation error as ``loc: msg``."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{loc}: {first.get('msg', '')}"


# =============================================================================
# Load results
# =============================================================================


class DecodeDiagnostic(BaseModel):
    """A payload dropped during load because it could not be decoded."""

    identifier: str
    source_name: str
    cause: str = ""

    model_config = {"extra": "forbid", "frozen": True}


class SourceLoadResult(BaseModel):
    """Outcome of decoding and filtering one source's raw pairs.

    Attributes:
        source_name: ``"canonical"`` or the secondary source name.
        records: Comparable records keyed by identifier, in first-seen
            order. Later duplicates overwrite earlier ones.
        special_count: Payloads that decoded as Special and were skipped.
        diagnostics: Payloads dropped because they failed to decode.
    """

    source_name: str
    records: Dict[str, AccountRecord] = Field(default_factory=dict)
    special_count: int = Field(default=0, ge=0)
    diagnostics: List[DecodeDiagnostic] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @property
    def retained(self) -> int:
        """Return the number of comparable records retained."""
        return len(self.records)


class SourceLoadSummary(BaseModel):
    """Counts reported for one successfully loaded source."""

    source_name: str
    store_path: Optional[str] = None
    retained: int = Field(default=0, ge=0)
    special_count: int = Field(default=0, ge=0)
    decode_failures: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_result(
        cls, result: SourceLoadResult, store_path: Optional[str] = None,
    ) -> SourceLoadSummary:
        """Build a summary from a load result."""
        return cls(
            source_name=result.source_name,
            store_path=store_path,
            retained=result.retained,
            special_count=result.special_count,
            decode_failures=len(result.diagnostics),
        )


class SourceFailure(BaseModel):
    """A source instance that could not be loaded."""

    source_name: str
    store_path: Optional[str] = None
    error_type: str
    message: str

    model_config = {"extra": "forbid", "frozen": True}


# =============================================================================
# Comparison and report models
# =============================================================================


class ComparisonRecord(BaseModel):
    """Classified result for one pairing or orphan.

    Orphans carry the present side's values and ``None`` for the match
    flags and for the absent side's values.
    """

    identifier: str = Field(..., description="Account identifier")
    source_name: Optional[str] = Field(
        default=None,
        description="Secondary source of the pairing; None for "
        "canonical orphans",
    )
    balance_match: Optional[bool] = None
    nonce_match: Optional[bool] = None
    canonical_balance: Optional[str] = None
    canonical_nonce: Optional[str] = None
    secondary_balance: Optional[str] = None
    secondary_nonce: Optional[str] = None
    classification: Classification
    mismatch_reasons: List[str] = Field(
        default_factory=list,
        description="Failing fields: subset of ['balance', 'nonce']",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("mismatch_reasons")
    @classmethod
    def validate_mismatch_reasons(cls, v: List[str]) -> List[str]:
        """Validate reasons name only compared fields."""
        unknown = [r for r in v if r not in ("balance", "nonce")]
        if unknown:
            raise ValueError(f"Unknown mismatch reasons: {unknown}")
        return v

    @property
    def is_orphan(self) -> bool:
        """Return True for either orphan classification."""
        return self.classification in (
            Classification.ORPHAN_CANONICAL,
            Classification.ORPHAN_SECONDARY,
        )


class ReconciliationSummary(BaseModel):
    """Aggregate counters of a reconciliation pass.

    ``total_comparisons`` counts evaluated pairings only; orphans are
    reported separately.
    """

    total_comparisons: int = Field(default=0, ge=0)
    mismatches: int = Field(default=0, ge=0)
    match_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    orphan_canonical: int = Field(default=0, ge=0)
    orphan_secondary: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid", "frozen": True}

    @property
    def matches(self) -> int:
        """Return the number of matching pairings."""
        return self.total_comparisons - self.mismatches


class PipelineStageResult(BaseModel):
    """Result of executing a single stage in the audit pipeline.

    Attributes:
        stage_name: Name of the pipeline stage.
        records_processed: Number of records processed in this stage.
        duration_ms: Stage execution duration in milliseconds.
        errors: List of error messages from this stage.
        provenance_hash: Chain hash recorded after this stage.
    """

    stage_name: str
    records_processed: int = Field(default=0, ge=0)
    duration_ms: float = Field(default=0.0, ge=0.0)
    errors: List[str] = Field(default_factory=list)
    provenance_hash: str = ""

    model_config = {"extra": "forbid"}


class ReconciliationReport(BaseModel):
    """Report of one reconciliation run.

    Attributes:
        report_id: Unique identifier for this report.
        comparisons: Classified records in engine order.
        summary: Aggregate counters.
        canonical_count: Comparable records loaded from the canonical
            source.
        secondary_sources: Per-source counts of the secondary sources
            that loaded, in discovery order.
        failed_sources: Secondary sources that could not be loaded.
        decode_failures: Payloads dropped across all sources.
        stages: Per-stage execution results.
        created_at: When the report was generated.
        provenance_hash: SHA-256 provenance chain hash of the run; empty
            when provenance is disabled.
        provenance_chain: Provenance entries of the run, oldest first.
    """

    report_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    comparisons: List[ComparisonRecord] = Field(default_factory=list)
    summary: ReconciliationSummary = Field(
        default_factory=ReconciliationSummary,
    )
    canonical_count: int = Field(default=0, ge=0)
    secondary_sources: List[SourceLoadSummary] = Field(default_factory=list)
    failed_sources: List[SourceFailure] = Field(default_factory=list)
    decode_failures: int = Field(default=0, ge=0)
    stages: List[PipelineStageResult] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    provenance_hash: str = ""
    provenance_chain: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @property
    def sources_loaded(self) -> int:
        """Return the number of secondary sources that contributed."""
        return len(self.secondary_sources)


__all__ = [
    # Constants
    "CANONICAL_ORIGIN",
    "NOT_AVAILABLE",
    # Enumerations
    "RecordShape",
    "Classification",
    # Wire shapes
    "DataValue",
    "AccountState",
    "RegularAccountData",
    "SpecialAccountData",
    "AccountData",
    # Records
    "AccountRecord",
    "decode_account",
    # Load results
    "DecodeDiagnostic",
    "SourceLoadResult",
    "SourceLoadSummary",
    "SourceFailure",
    # Reports
    "ComparisonRecord",
    "ReconciliationSummary",
    "PipelineStageResult",
    "ReconciliationReport",
]
