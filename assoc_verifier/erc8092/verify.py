"""
Association validation engine.

validate() runs an ordered, short-circuiting sequence of checks:

1. now >= validAt                               else NotYetValid
2. validUntil == 0 or now < validUntil          else Expired
3. revokedAt == 0 or now < revokedAt            else Revoked
4. initiator signature (when present)           else InvalidInitiatorSignature
5. approver signature (when present)            else InvalidApproverSignature

Signature failures of any kind become a verdict. Only structurally invalid
records (RecordRangeError) are raised.
"""

import logging
import time
from typing import Optional

from eth_utils import encode_hex

from .api_models import ValidationVerdict, VerdictReason
from .interop_address import extract_address
from .records import (
    AssociatedAccountRecord,
    KeyType,
    Party,
    SignedAssociationRecord,
    check_uint40,
)
from .signatures.chain import ChainQuery
from .signatures.key_type import CHAIN_REQUIRED, verifier_for
from .typed_data import hash_record

log = logging.getLogger(__name__)


_INVALID_SIGNATURE = {
    Party.INITIATOR: VerdictReason.INVALID_INITIATOR_SIGNATURE,
    Party.APPROVER: VerdictReason.INVALID_APPROVER_SIGNATURE,
}


def current_time() -> int:
    """Wall-clock unix seconds."""
    return int(time.time())


def check_validity_window(
    aar: AssociatedAccountRecord,
    revoked_at: int,
    now: int,
) -> Optional[ValidationVerdict]:
    """Timestamp checks 1-3. Returns a failing verdict or None."""
    if now < aar.valid_at:
        return ValidationVerdict.fail(
            VerdictReason.NOT_YET_VALID,
            f"Association becomes valid at {aar.valid_at}, now is {now}",
        )
    if aar.valid_until != 0 and now >= aar.valid_until:
        return ValidationVerdict.fail(
            VerdictReason.EXPIRED,
            f"Association expired at {aar.valid_until}",
        )
    if revoked_at != 0 and now >= revoked_at:
        return ValidationVerdict.fail(
            VerdictReason.REVOKED,
            f"Association revoked at {revoked_at}",
        )
    return None


async def _check_signature(
    party: Party,
    signer: str,
    record_hash: bytes,
    signature: bytes,
    key_type: int,
    chain: Optional[ChainQuery],
) -> Optional[ValidationVerdict]:
    verifier = verifier_for(key_type)
    if verifier is None:
        return ValidationVerdict.fail(
            VerdictReason.UNSUPPORTED_KEY_TYPE,
            f"{party.value} key type {KeyType.label(key_type)} is not supported",
        )
    if key_type in CHAIN_REQUIRED and chain is None:
        return ValidationVerdict.fail(
            VerdictReason.CHAIN_QUERY_UNAVAILABLE,
            f"{party.value} key type {KeyType.label(key_type)} requires chain access",
        )

    try:
        ok = await verifier(signer, record_hash, signature, chain)
    except Exception as e:
        log.warning(
            f"{party.value} verifier raised: {e}",
            extra={"signer": signer, "key_type": KeyType.label(key_type)},
        )
        ok = False

    if not ok:
        return ValidationVerdict.fail(
            _INVALID_SIGNATURE[party],
            f"{party.value} signature does not verify for {signer}",
        )
    return None


async def validate(
    aar: AssociatedAccountRecord,
    sar: SignedAssociationRecord,
    initiator_address: str,
    approver_address: str,
    chain: Optional[ChainQuery] = None,
    now: Optional[int] = None,
) -> ValidationVerdict:
    """Decide whether an association is valid at a point in time.

    Args:
        aar: The unsigned record (the thing that was hashed and signed).
        sar: Signatures, key types and revocation state for aar.
        initiator_address: EVM address expected to have signed as initiator.
        approver_address: EVM address expected to have signed as approver.
        chain: Chain access for ERC-1271 / ERC-6492 signatures.
        now: Unix seconds; defaults to the wall clock, read once.

    Returns:
        ValidationVerdict. Empty signatures are skipped, so a partially
        signed record inside its window is valid.

    Raises:
        RecordRangeError: validAt/validUntil/revokedAt outside uint40 or
            malformed interfaceId.
    """
    if now is None:
        now = current_time()

    check_uint40("revokedAt", sar.revoked_at)
    record_hash = hash_record(aar)
    association_id = encode_hex(record_hash)

    verdict = check_validity_window(aar, sar.revoked_at, now)
    if verdict is not None:
        log.debug(
            f"Association invalid: {verdict.reason.value}",
            extra={"association_id": association_id},
        )
        return verdict

    parties = (
        (Party.INITIATOR, initiator_address, sar.initiator_signature, sar.initiator_key_type),
        (Party.APPROVER, approver_address, sar.approver_signature, sar.approver_key_type),
    )
    for party, signer, signature, key_type in parties:
        if not signature:
            continue
        verdict = await _check_signature(party, signer, record_hash, signature, key_type, chain)
        if verdict is not None:
            log.debug(
                f"Association invalid: {verdict.reason.value}",
                extra={
                    "association_id": association_id,
                    "signer": signer,
                    "key_type": KeyType.label(key_type),
                },
            )
            return verdict

    return ValidationVerdict.ok()


async def validate_sar(
    sar: SignedAssociationRecord,
    chain: Optional[ChainQuery] = None,
    now: Optional[int] = None,
) -> ValidationVerdict:
    """validate() with signer addresses taken from the record itself."""
    return await validate(
        sar.record,
        sar,
        extract_address(sar.record.initiator),
        extract_address(sar.record.approver),
        chain=chain,
        now=now,
    )
