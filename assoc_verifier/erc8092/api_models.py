"""
Associated Accounts verifier API models.

Verdict, reason taxonomy and the JSON wire format used at the
persistence/API boundary.
"""

from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Verdict
# =============================================================================

class VerdictReason(str, Enum):
    """Stable reason codes for an invalid association."""
    NOT_YET_VALID = "NotYetValid"
    EXPIRED = "Expired"
    REVOKED = "Revoked"
    INVALID_INITIATOR_SIGNATURE = "InvalidInitiatorSignature"
    INVALID_APPROVER_SIGNATURE = "InvalidApproverSignature"
    UNSUPPORTED_KEY_TYPE = "UnsupportedKeyType"
    CHAIN_QUERY_UNAVAILABLE = "ChainQueryUnavailable"


class ValidationVerdict(BaseModel):
    """Outcome of validating one signed association record.

    reason and message are populated only when valid is False.
    """
    model_config = ConfigDict(frozen=True)

    valid: bool
    reason: Optional[VerdictReason] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationVerdict":
        return cls(valid=True)

    @classmethod
    def fail(cls, reason: VerdictReason, message: str) -> "ValidationVerdict":
        return cls(valid=False, reason=reason, message=message)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCode:
    """Error code registry for hard errors surfaced to callers."""
    # Record layer
    RECORD_RANGE = "RECORD_RANGE"
    RECORD_PARSE_FAILED = "RECORD_PARSE_FAILED"
    INTEROP_ADDRESS_INVALID = "INTEROP_ADDRESS_INVALID"

    # Chain layer
    CHAIN_QUERY_FAILED = "CHAIN_QUERY_FAILED"

    # Persistence layer
    ASSOCIATION_NOT_FOUND = "ASSOCIATION_NOT_FOUND"
    ASSOCIATION_INVALID = "ASSOCIATION_INVALID"
    REVOCATION_UNAUTHORIZED = "REVOCATION_UNAUTHORIZED"
    REVOCATION_CONFLICT = "REVOCATION_CONFLICT"


# Whether retrying the same request can succeed
ERROR_RECOVERABILITY: Dict[str, bool] = {
    ErrorCode.RECORD_RANGE: False,
    ErrorCode.RECORD_PARSE_FAILED: False,
    ErrorCode.INTEROP_ADDRESS_INVALID: False,
    ErrorCode.CHAIN_QUERY_FAILED: True,      # Recoverable
    ErrorCode.ASSOCIATION_NOT_FOUND: False,
    ErrorCode.ASSOCIATION_INVALID: False,
    ErrorCode.REVOCATION_UNAUTHORIZED: False,
    ErrorCode.REVOCATION_CONFLICT: False,
}


# =============================================================================
# Wire Format
# =============================================================================

_HEX_BYTES = r"^0x([0-9a-fA-F]{2})*$"
_DECIMAL = r"^[0-9]+$"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class AssociationRecordWire(_WireModel):
    """AssociatedAccountRecord as it crosses JSON boundaries.

    Timestamps travel as decimal strings so 40-bit values survive
    JavaScript number handling.
    """
    initiator: str = Field(pattern=_HEX_BYTES)
    approver: str = Field(pattern=_HEX_BYTES)
    valid_at: str = Field(pattern=_DECIMAL)
    valid_until: str = Field(default="0", pattern=_DECIMAL)
    interface_id: str = Field(default="0x00000000", pattern=r"^0x[0-9a-fA-F]{8}$")
    data: str = Field(default="0x", pattern=_HEX_BYTES)

    @field_validator("valid_at", "valid_until", mode="before")
    @classmethod
    def _int_to_decimal(cls, v: Union[int, str]) -> str:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class SignedAssociationRecordWire(_WireModel):
    """SignedAssociationRecord wire form; the AAR is nested under record."""
    revoked_at: str = Field(default="0", pattern=_DECIMAL)
    initiator_key_type: str = Field(default="0x0000", pattern=r"^0x[0-9a-fA-F]{4}$")
    approver_key_type: str = Field(default="0x0000", pattern=r"^0x[0-9a-fA-F]{4}$")
    initiator_signature: str = Field(default="0x", pattern=_HEX_BYTES)
    approver_signature: str = Field(default="0x", pattern=_HEX_BYTES)
    record: AssociationRecordWire

    @field_validator("revoked_at", mode="before")
    @classmethod
    def _int_to_decimal(cls, v: Union[int, str]) -> str:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("initiator_key_type", "approver_key_type", mode="before")
    @classmethod
    def _int_to_bytes2(cls, v: Union[int, str]) -> str:
        # Older clients posted key types as plain numbers
        if isinstance(v, int) and not isinstance(v, bool):
            return f"0x{v:04x}"
        return v
