"""Association record types.

AssociatedAccountRecord is the unsigned claim; SignedAssociationRecord adds
the two signatures, their key types and the revocation instant.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum, IntEnum

from assoc_verifier.core.config import MAX_UINT40
from .exceptions import RecordRangeError, RevocationConflictError


class KeyType(IntEnum):
    """bytes2 signature-scheme tags."""
    DELEGATED = 0x0000
    K1 = 0x0001        # secp256k1
    R1 = 0x0002        # secp256r1
    BLS = 0x0003       # BLS12-381
    EdDSA = 0x0004     # Ed25519
    WEBAUTHN = 0x8001
    ERC1271 = 0x8002
    ERC6492 = 0x8003

    @classmethod
    def label(cls, value: int) -> str:
        """Human label for a raw key type value, known or not."""
        try:
            return cls(value).name
        except ValueError:
            return f"0x{value:04x}"


class Party(str, Enum):
    INITIATOR = "initiator"
    APPROVER = "approver"


def check_uint40(field: str, value: int) -> int:
    """Raise RecordRangeError unless value fits in uint40."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise RecordRangeError(f"{field} must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT40:
        raise RecordRangeError.uint40(field, value)
    return value


@dataclass(frozen=True)
class AssociatedAccountRecord:
    """Unsigned association claim between two accounts.

    initiator and approver are ERC-7930 interoperable binary addresses.
    valid_until == 0 means the association never expires.
    """
    initiator: bytes
    approver: bytes
    valid_at: int
    valid_until: int = 0
    interface_id: bytes = b"\x00\x00\x00\x00"
    data: bytes = b""


@dataclass(frozen=True)
class SignedAssociationRecord:
    """AssociatedAccountRecord with signatures and revocation state.

    revoked_at == 0 means not revoked. Key types are raw bytes2 integers so
    records carrying tags this verifier does not know still round-trip.
    """
    record: AssociatedAccountRecord
    revoked_at: int = 0
    initiator_key_type: int = KeyType.DELEGATED
    approver_key_type: int = KeyType.DELEGATED
    initiator_signature: bytes = b""
    approver_signature: bytes = b""

    @property
    def is_complete(self) -> bool:
        """Both parties have signed."""
        return bool(self.initiator_signature) and bool(self.approver_signature)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at != 0

    def with_signature(self, party: Party, signature: bytes, key_type: int) -> "SignedAssociationRecord":
        """Return a copy with one party's signature and key type attached."""
        if party == Party.INITIATOR:
            return dataclasses.replace(
                self, initiator_signature=bytes(signature), initiator_key_type=int(key_type)
            )
        return dataclasses.replace(
            self, approver_signature=bytes(signature), approver_key_type=int(key_type)
        )

    def revoke(self, revoked_at: int) -> "SignedAssociationRecord":
        """Return a copy revoked at the given instant.

        An already revoked record only accepts an earlier instant; the
        earlier timestamp takes precedence.

        Raises:
            RecordRangeError: revoked_at is zero or outside uint40.
            RevocationConflictError: revoked_at is not earlier than the existing value.
        """
        check_uint40("revokedAt", revoked_at)
        if revoked_at == 0:
            raise RecordRangeError("revokedAt must be non-zero to revoke")
        if self.revoked_at != 0 and revoked_at >= self.revoked_at:
            raise RevocationConflictError(self.revoked_at, revoked_at)
        return dataclasses.replace(self, revoked_at=revoked_at)
