"""
Off-chain association index.

Records are validated before they are stored. Revocation goes through the
authenticated path only and follows the precedence rule: once revokedAt is
set it can only move to an earlier instant.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from eth_utils import decode_hex, encode_hex
from sqlalchemy import or_
from sqlalchemy.orm import sessionmaker

from assoc_verifier.erc8092.exceptions import (
    AssociationInvalidError,
    AssociationNotFoundError,
    RecordRangeError,
    RevocationConflictError,
)
from assoc_verifier.erc8092.interop_address import extract_address
from assoc_verifier.erc8092.records import (
    AssociatedAccountRecord,
    SignedAssociationRecord,
    check_uint40,
)
from assoc_verifier.erc8092.revocation import authorize_revocation
from assoc_verifier.erc8092.signatures.chain import ChainQuery
from assoc_verifier.erc8092.typed_data import hash_record
from assoc_verifier.erc8092.verify import current_time, validate_sar
from .models import AssociationRow
from .session import session_scope

log = logging.getLogger(__name__)

DEFAULT_INTERFACE_ID = "0x00000000"
DEFAULT_LIST_LIMIT = 100


@dataclass(frozen=True)
class StoredAssociation:
    """An indexed association."""
    id: int
    association_hash: str
    sar: SignedAssociationRecord
    initiator_address: str
    approver_address: str
    created_at: datetime


def _row_to_stored(row: AssociationRow) -> StoredAssociation:
    record = AssociatedAccountRecord(
        initiator=decode_hex(row.initiator_bytes),
        approver=decode_hex(row.approver_bytes),
        valid_at=row.valid_at,
        valid_until=row.valid_until or 0,
        interface_id=decode_hex(row.interface_id or DEFAULT_INTERFACE_ID),
        data=decode_hex(row.data) if row.data else b"",
    )
    sar = SignedAssociationRecord(
        record=record,
        revoked_at=row.revoked_at or 0,
        initiator_key_type=int(row.initiator_key_type, 16),
        approver_key_type=int(row.approver_key_type, 16),
        initiator_signature=decode_hex(row.initiator_signature),
        approver_signature=decode_hex(row.approver_signature),
    )
    return StoredAssociation(
        id=row.id,
        association_hash=row.association_hash,
        sar=sar,
        initiator_address=row.initiator_address,
        approver_address=row.approver_address,
        created_at=row.created_at,
    )


class AssociationIndex:
    """Relational index of signed associations.

    Args:
        session_factory: sessionmaker bound to an initialized engine.
        chain: Chain access used to validate contract signatures on store.
    """

    def __init__(self, session_factory: sessionmaker, chain: Optional[ChainQuery] = None):
        self._sessions = session_factory
        self.chain = chain

    async def store(self, sar: SignedAssociationRecord, now: Optional[int] = None) -> int:
        """Validate and insert an association.

        Returns:
            The new row id.

        Raises:
            AssociationInvalidError: Validation produced an invalid verdict.
            RecordRangeError: Structurally invalid record.
        """
        verdict = await validate_sar(sar, chain=self.chain, now=now)
        if not verdict.valid:
            raise AssociationInvalidError(f"{verdict.reason.value}: {verdict.message}")

        aar = sar.record
        association_hash = encode_hex(hash_record(aar))
        interface_id = encode_hex(aar.interface_id)
        row = AssociationRow(
            association_hash=association_hash,
            initiator_address=extract_address(aar.initiator),
            approver_address=extract_address(aar.approver),
            initiator_bytes=encode_hex(aar.initiator),
            approver_bytes=encode_hex(aar.approver),
            valid_at=aar.valid_at,
            valid_until=aar.valid_until or None,
            interface_id=None if interface_id == DEFAULT_INTERFACE_ID else interface_id,
            data=encode_hex(aar.data) if aar.data else None,
            revoked_at=sar.revoked_at or None,
            initiator_key_type=f"0x{sar.initiator_key_type:04x}",
            approver_key_type=f"0x{sar.approver_key_type:04x}",
            initiator_signature=encode_hex(sar.initiator_signature),
            approver_signature=encode_hex(sar.approver_signature),
        )
        with session_scope(self._sessions) as db:
            db.add(row)
            db.flush()
            row_id = row.id

        log.info(
            f"Stored association id={row_id}",
            extra={"association_id": association_hash, "source": "offchain"},
        )
        return row_id

    def get(self, association_id: int) -> StoredAssociation:
        """Raises AssociationNotFoundError when absent."""
        with session_scope(self._sessions) as db:
            row = db.query(AssociationRow).filter(AssociationRow.id == association_id).first()
            if row is None:
                raise AssociationNotFoundError(association_id)
            return _row_to_stored(row)

    def list_for_address(self, address: str) -> List[StoredAssociation]:
        """Associations where address is initiator or approver, newest first."""
        address = address.lower()
        with session_scope(self._sessions) as db:
            rows = (
                db.query(AssociationRow)
                .filter(
                    or_(
                        AssociationRow.initiator_address == address,
                        AssociationRow.approver_address == address,
                    )
                )
                .order_by(AssociationRow.created_at.desc(), AssociationRow.id.desc())
                .all()
            )
            return [_row_to_stored(row) for row in rows]

    def list_recent(self, limit: int = DEFAULT_LIST_LIMIT) -> List[StoredAssociation]:
        with session_scope(self._sessions) as db:
            rows = (
                db.query(AssociationRow)
                .order_by(AssociationRow.created_at.desc(), AssociationRow.id.desc())
                .limit(limit)
                .all()
            )
            return [_row_to_stored(row) for row in rows]

    def revoke(
        self,
        association_id: int,
        revoked_at: Optional[int],
        message: str,
        signature: bytes,
        signer: str,
    ) -> StoredAssociation:
        """Apply an authenticated revocation.

        revoked_at None means "now": the signed message must then carry the
        current Unix time.

        Raises:
            AssociationNotFoundError: No such association.
            RevocationUnauthorizedError: Signature, party or message check failed.
            RevocationConflictError: Existing revokedAt is not later than revoked_at.
            RecordRangeError: revoked_at is zero or outside uint40.
        """
        if revoked_at is None:
            revoked_at = current_time()
        check_uint40("revokedAt", revoked_at)
        if revoked_at == 0:
            raise RecordRangeError("revokedAt must be non-zero to revoke")

        with session_scope(self._sessions) as db:
            row = db.query(AssociationRow).filter(AssociationRow.id == association_id).first()
            if row is None:
                raise AssociationNotFoundError(association_id)

            authorize_revocation(
                association_id,
                revoked_at,
                message,
                signature,
                signer,
                row.initiator_address,
                row.approver_address,
            )

            # Conditional update keeps the earlier timestamp under concurrent requests
            updated = (
                db.query(AssociationRow)
                .filter(
                    AssociationRow.id == association_id,
                    or_(
                        AssociationRow.revoked_at.is_(None),
                        AssociationRow.revoked_at > revoked_at,
                    ),
                )
                .update({AssociationRow.revoked_at: revoked_at}, synchronize_session=False)
            )
            if updated == 0:
                db.refresh(row)
                raise RevocationConflictError(row.revoked_at, revoked_at)

            db.refresh(row)
            stored = _row_to_stored(row)

        log.info(
            f"Revoked association id={association_id} at {revoked_at}",
            extra={"association_id": stored.association_hash, "signer": signer.lower()},
        )
        return stored
