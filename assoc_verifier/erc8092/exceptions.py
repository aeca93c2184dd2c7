"""
Associated Accounts verifier exceptions.

Hard errors carry an error code from ErrorCode. Signature verification
failures are never raised; they become a ValidationVerdict instead.
"""

from assoc_verifier.erc8092.api_models import ErrorCode


class AssociationError(Exception):
    """Base exception for association record handling.

    Carries an error code that maps to ErrorCode constants.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class RecordRangeError(AssociationError, ValueError):
    """A record field does not fit its on-chain type (e.g. uint40)."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.RECORD_RANGE, message)

    @classmethod
    def uint40(cls, field: str, value: int) -> "RecordRangeError":
        """Factory for timestamps outside [0, 2**40 - 1]."""
        return cls(f"{field} must fit in uint40, got {value}")


class RecordParseError(AssociationError, ValueError):
    """Wire-format record could not be decoded."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.RECORD_PARSE_FAILED, message)


class InteropAddressError(AssociationError, ValueError):
    """Malformed ERC-7930 interoperable address."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.INTEROP_ADDRESS_INVALID, message)


# =============================================================================
# Persistence / revocation
# =============================================================================

class AssociationNotFoundError(AssociationError):
    """No association with the requested id."""

    def __init__(self, association_id):
        super().__init__(
            ErrorCode.ASSOCIATION_NOT_FOUND,
            f"Association not found: {association_id}",
        )


class AssociationInvalidError(AssociationError):
    """Record failed validation and cannot be stored."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.ASSOCIATION_INVALID, message)


class RevocationError(AssociationError):
    """Base for rejected revocation requests."""


class RevocationUnauthorizedError(RevocationError):
    """Revocation request is not authenticated by a party to the record."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.REVOCATION_UNAUTHORIZED, message)

    @classmethod
    def bad_signature(cls) -> "RevocationUnauthorizedError":
        return cls("Revocation signature does not recover to the claimed signer")

    @classmethod
    def not_a_party(cls, signer: str) -> "RevocationUnauthorizedError":
        return cls(f"Signer {signer} is not a party to this association")

    @classmethod
    def message_mismatch(cls, expected: str) -> "RevocationUnauthorizedError":
        return cls(f"Revocation message format mismatch, expected: {expected!r}")


class RevocationConflictError(RevocationError):
    """Proposed revokedAt is not earlier than the existing one.

    Once non-zero, revokedAt may only move to an earlier instant.
    """

    def __init__(self, existing: int, proposed: int):
        self.existing = existing
        self.proposed = proposed
        super().__init__(
            ErrorCode.REVOCATION_CONFLICT,
            f"Association already revoked at {existing}; "
            f"revocation at {proposed} does not take precedence",
        )
