"""
AssociationsStore contract reader.

Reads signed association records from the on-chain store through a
ChainQuery and decodes them with eth_abi. Transaction submission is left to
the caller; encode_store_association() and encode_revoke_association() only
build calldata.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from eth_abi import decode, encode
from eth_utils import encode_hex, function_signature_to_4byte_selector, keccak

from assoc_verifier.core.config import ASSOCIATIONS_STORE_ADDRESS
from .exceptions import AssociationNotFoundError
from .interop_address import as_bytes, same_address
from .records import AssociatedAccountRecord, SignedAssociationRecord
from .signatures.chain import ChainQuery
from .signatures.exceptions import ChainQueryError

log = logging.getLogger(__name__)

RECORD_TUPLE = "(bytes,bytes,uint40,uint40,bytes4,bytes)"
SAR_TUPLE = f"(uint40,bytes2,bytes2,bytes,bytes,{RECORD_TUPLE})"

STORE_ASSOCIATION = function_signature_to_4byte_selector(f"storeAssociation({SAR_TUPLE})")
REVOKE_ASSOCIATION = function_signature_to_4byte_selector("revokeAssociation(bytes32,uint40)")
GET_ASSOCIATION = function_signature_to_4byte_selector("getAssociation(bytes32)")
ARE_ACCOUNTS_ASSOCIATED = function_signature_to_4byte_selector("areAccountsAssociated(bytes,bytes)")
GET_ASSOCIATIONS_FOR_ACCOUNT = function_signature_to_4byte_selector(
    "getAssociationsForAccount(bytes)"
)

ASSOCIATION_CREATED_TOPIC = keccak(
    text=f"AssociationCreated(bytes32,bytes32,bytes32,{SAR_TUPLE})"
)

# Custom errors declared by the store contract
STORE_ERRORS: Dict[bytes, str] = {
    function_signature_to_4byte_selector(sig): sig.split("(")[0]
    for sig in (
        "AssociationAlreadyExists()",
        "AssociationAlreadyRevoked()",
        "AssociationNotFound()",
        "InvalidAssociation()",
        "UnauthorizedRevocation()",
        "InteroperableAddressParsingError(bytes)",
        "UnsupportedChainType(bytes2)",
        "UnsupportedKeyType(bytes2)",
    )
}


# =============================================================================
# ABI conversion
# =============================================================================

def sar_to_abi(sar: SignedAssociationRecord) -> Tuple[Any, ...]:
    aar = sar.record
    return (
        sar.revoked_at,
        sar.initiator_key_type.to_bytes(2, "big"),
        sar.approver_key_type.to_bytes(2, "big"),
        sar.initiator_signature,
        sar.approver_signature,
        (aar.initiator, aar.approver, aar.valid_at, aar.valid_until, aar.interface_id, aar.data),
    )


def sar_from_abi(value: Tuple[Any, ...]) -> SignedAssociationRecord:
    revoked_at, initiator_kt, approver_kt, initiator_sig, approver_sig, record = value
    initiator, approver, valid_at, valid_until, interface_id, data = record
    return SignedAssociationRecord(
        record=AssociatedAccountRecord(
            initiator=initiator,
            approver=approver,
            valid_at=valid_at,
            valid_until=valid_until,
            interface_id=interface_id,
            data=data,
        ),
        revoked_at=revoked_at,
        initiator_key_type=int.from_bytes(initiator_kt, "big"),
        approver_key_type=int.from_bytes(approver_kt, "big"),
        initiator_signature=initiator_sig,
        approver_signature=approver_sig,
    )


def encode_store_association(sar: SignedAssociationRecord) -> bytes:
    """Calldata for storeAssociation(sar)."""
    return STORE_ASSOCIATION + encode([SAR_TUPLE], [sar_to_abi(sar)])


def encode_revoke_association(association_id: Union[bytes, str], revoked_at: int) -> bytes:
    """Calldata for revokeAssociation(associationId, revokedAt)."""
    return REVOKE_ASSOCIATION + encode(["bytes32", "uint40"], [as_bytes(association_id), revoked_at])


def store_error_name(revert_data: Optional[bytes]) -> Optional[str]:
    """Name of the store custom error encoded in revert data, if any."""
    if not revert_data or len(revert_data) < 4:
        return None
    return STORE_ERRORS.get(revert_data[:4])


def association_id_from_logs(
    logs: Iterable[Dict[str, Any]],
    store_address: Optional[str] = None,
) -> Optional[str]:
    """Association id (record hash) from a storeAssociation receipt.

    The id is the first indexed topic of the AssociationCreated event.
    Logs from other contracts are skipped when store_address is given.

    Returns:
        0x-prefixed hex id, or None when no AssociationCreated log is present.
    """
    for entry in logs:
        if store_address and not same_address(entry.get("address"), store_address):
            continue
        topics = [as_bytes(t) for t in entry.get("topics", [])]
        if len(topics) >= 2 and topics[0] == ASSOCIATION_CREATED_TOPIC:
            return encode_hex(topics[1])
    return None


# =============================================================================
# Reader
# =============================================================================

class AssociationsStoreReader:
    """Read-only access to an AssociationsStore deployment."""

    def __init__(self, chain: ChainQuery, store_address: str = ASSOCIATIONS_STORE_ADDRESS):
        self.chain = chain
        self.store_address = store_address

    async def _read(self, selector: bytes, types: List[str], args: List[Any]) -> bytes:
        return await self.chain.read_contract(self.store_address, selector, encode(types, args))

    async def get_associations_for_account(self, account: Union[bytes, str]) -> List[SignedAssociationRecord]:
        """All stored records where account (interoperable binary id) is a party.

        Raises:
            ChainQueryError: Call failed or returned undecodable data.
        """
        result = await self._read(GET_ASSOCIATIONS_FOR_ACCOUNT, ["bytes"], [as_bytes(account)])
        try:
            (entries,) = decode([f"{SAR_TUPLE}[]"], result)
        except Exception as e:
            raise ChainQueryError(f"Undecodable getAssociationsForAccount result: {e}") from e
        records = [sar_from_abi(entry) for entry in entries]
        log.info(f"Fetched {len(records)} on-chain associations", extra={"source": "onchain"})
        return records

    async def get_association(self, association_id: Union[bytes, str]) -> SignedAssociationRecord:
        """Stored record by id.

        Raises:
            AssociationNotFoundError: The store reverted with AssociationNotFound.
            ChainQueryError: Any other failure.
        """
        association_bytes = as_bytes(association_id)
        try:
            result = await self._read(GET_ASSOCIATION, ["bytes32"], [association_bytes])
        except ChainQueryError as e:
            if store_error_name(e.revert_data) == "AssociationNotFound":
                raise AssociationNotFoundError(encode_hex(association_bytes)) from e
            raise
        try:
            (entry,) = decode([SAR_TUPLE], result)
        except Exception as e:
            raise ChainQueryError(f"Undecodable getAssociation result: {e}") from e
        return sar_from_abi(entry)

    async def are_accounts_associated(self, account1: Union[bytes, str], account2: Union[bytes, str]) -> bool:
        result = await self._read(
            ARE_ACCOUNTS_ASSOCIATED, ["bytes", "bytes"], [as_bytes(account1), as_bytes(account2)]
        )
        try:
            (associated,) = decode(["bool"], result)
        except Exception as e:
            raise ChainQueryError(f"Undecodable areAccountsAssociated result: {e}") from e
        return bool(associated)
