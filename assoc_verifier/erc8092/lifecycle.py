"""Association signing lifecycle.

create_association() builds the unsigned record; each party then signs the
record hash and attach_signature() stores the signature together with the
key type resolved from it. The key type is only known once a signature
exists.
"""

import logging
from typing import Optional

from eth_account.signers.local import LocalAccount

from assoc_verifier.core.config import DEFAULT_CHAIN_ID
from .exceptions import AssociationInvalidError
from .interop_address import address_to_binary_id, extract_address, same_address
from .records import AssociatedAccountRecord, Party, SignedAssociationRecord, check_uint40
from .signatures.chain import ChainQuery
from .signatures.key_type import resolve_key_type
from .typed_data import signable_message
from .verify import current_time

log = logging.getLogger(__name__)


def create_association(
    initiator_address: str,
    approver_address: str,
    chain_id: int = DEFAULT_CHAIN_ID,
    valid_at: Optional[int] = None,
    valid_until: int = 0,
    interface_id: bytes = b"\x00\x00\x00\x00",
    data: bytes = b"",
) -> SignedAssociationRecord:
    """Create an unsigned, unrevoked association.

    Args:
        initiator_address: Initiator EVM address.
        approver_address: Approver EVM address, distinct from the initiator.
        chain_id: Chain both interoperable addresses are bound to.
        valid_at: Start of validity; defaults to now.
        valid_until: Exclusive end of validity, 0 for never.
        interface_id: 4-byte interface identifier.
        data: Opaque application payload.

    Raises:
        AssociationInvalidError: Initiator and approver are the same account.
        InteropAddressError: Malformed address or chain id.
        RecordRangeError: Timestamps outside uint40 or bad interface_id.
    """
    if same_address(initiator_address, approver_address):
        raise AssociationInvalidError("Approver must be different from initiator")
    if valid_at is None:
        valid_at = current_time()
    check_uint40("validAt", valid_at)
    check_uint40("validUntil", valid_until)
    if len(interface_id) != 4:
        raise AssociationInvalidError("interfaceId must be exactly 4 bytes")

    record = AssociatedAccountRecord(
        initiator=address_to_binary_id(initiator_address, chain_id),
        approver=address_to_binary_id(approver_address, chain_id),
        valid_at=valid_at,
        valid_until=valid_until,
        interface_id=bytes(interface_id),
        data=bytes(data),
    )
    return SignedAssociationRecord(record=record)


def signer_for(sar: SignedAssociationRecord, party: Party) -> str:
    """Address expected to sign for party."""
    if party == Party.INITIATOR:
        return extract_address(sar.record.initiator)
    return extract_address(sar.record.approver)


async def attach_signature(
    sar: SignedAssociationRecord,
    party: Party,
    signature: bytes,
    chain: Optional[ChainQuery] = None,
) -> SignedAssociationRecord:
    """Attach a party's signature, resolving its key type from the signature.

    The signature itself is not verified here; use validate() for that.
    """
    signer = signer_for(sar, party)
    key_type = await resolve_key_type(signature, signer, chain)
    log.info(
        f"Attached {party.value} signature",
        extra={"signer": signer, "key_type": key_type.name},
    )
    return sar.with_signature(party, signature, key_type)


async def sign_with_account(
    sar: SignedAssociationRecord,
    party: Party,
    account: LocalAccount,
    chain: Optional[ChainQuery] = None,
) -> SignedAssociationRecord:
    """Sign the record with a local key and attach the signature.

    Raises:
        AssociationInvalidError: account is not the expected signer for party.
    """
    expected = signer_for(sar, party)
    if not same_address(account.address, expected):
        raise AssociationInvalidError(
            f"Account {account.address} cannot sign as {party.value} ({expected})"
        )
    signed = account.sign_message(signable_message(sar.record))
    return await attach_signature(sar, party, bytes(signed.signature), chain)


def is_complete(sar: SignedAssociationRecord) -> bool:
    """Both parties have signed; the record can be stored."""
    return sar.is_complete
