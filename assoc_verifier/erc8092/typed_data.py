"""EIP-712 structured hash of an AssociatedAccountRecord.

The domain is {name: "AssociatedAccounts", version: "1"} with no chainId,
verifyingContract or salt. The resulting hash, and therefore every
signature over it, is independent of the network the signer was connected
to.
"""

from typing import Any, Dict

from eth_abi import encode
from eth_account.messages import SignableMessage
from eth_utils import encode_hex, keccak

from assoc_verifier.core.config import EIP712_DOMAIN_NAME, EIP712_DOMAIN_VERSION
from .exceptions import RecordRangeError
from .records import AssociatedAccountRecord, check_uint40

PRIMARY_TYPE = "AssociatedAccountRecord"

DOMAIN_TYPE = "EIP712Domain(string name,string version)"
RECORD_TYPE = (
    "AssociatedAccountRecord(bytes initiator,bytes approver,uint40 validAt,"
    "uint40 validUntil,bytes4 interfaceId,bytes data)"
)

DOMAIN_TYPEHASH = keccak(text=DOMAIN_TYPE)
RECORD_TYPEHASH = keccak(text=RECORD_TYPE)

EIP712_TYPES: Dict[str, Any] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
    ],
    PRIMARY_TYPE: [
        {"name": "initiator", "type": "bytes"},
        {"name": "approver", "type": "bytes"},
        {"name": "validAt", "type": "uint40"},
        {"name": "validUntil", "type": "uint40"},
        {"name": "interfaceId", "type": "bytes4"},
        {"name": "data", "type": "bytes"},
    ],
}


def domain_separator() -> bytes:
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32"],
            [
                DOMAIN_TYPEHASH,
                keccak(text=EIP712_DOMAIN_NAME),
                keccak(text=EIP712_DOMAIN_VERSION),
            ],
        )
    )


def _check_record(aar: AssociatedAccountRecord) -> None:
    check_uint40("validAt", aar.valid_at)
    check_uint40("validUntil", aar.valid_until)
    if len(aar.interface_id) != 4:
        raise RecordRangeError(
            f"interfaceId must be exactly 4 bytes, got {len(aar.interface_id)}"
        )


def struct_hash(aar: AssociatedAccountRecord) -> bytes:
    """hashStruct(AssociatedAccountRecord).

    Raises:
        RecordRangeError: validAt/validUntil outside uint40 or malformed interfaceId.
    """
    _check_record(aar)
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint40", "uint40", "bytes4", "bytes32"],
            [
                RECORD_TYPEHASH,
                keccak(aar.initiator),
                keccak(aar.approver),
                aar.valid_at,
                aar.valid_until,
                aar.interface_id,
                keccak(aar.data),
            ],
        )
    )


def signable_message(aar: AssociatedAccountRecord) -> SignableMessage:
    """EIP-191 version 0x01 message for signing with eth_account."""
    return SignableMessage(
        version=b"\x01",
        header=domain_separator(),
        body=struct_hash(aar),
    )


def hash_record(aar: AssociatedAccountRecord) -> bytes:
    """The 32-byte digest actually signed by both parties.

    Also the association's identity on-chain.
    """
    return keccak(b"\x19\x01" + domain_separator() + struct_hash(aar))


def typed_data(aar: AssociatedAccountRecord) -> Dict[str, Any]:
    """eth_signTypedData_v4 payload for handing the record to a wallet."""
    _check_record(aar)
    return {
        "types": EIP712_TYPES,
        "primaryType": PRIMARY_TYPE,
        "domain": {"name": EIP712_DOMAIN_NAME, "version": EIP712_DOMAIN_VERSION},
        "message": {
            "initiator": encode_hex(aar.initiator),
            "approver": encode_hex(aar.approver),
            "validAt": aar.valid_at,
            "validUntil": aar.valid_until,
            "interfaceId": encode_hex(aar.interface_id),
            "data": encode_hex(aar.data),
        },
    }
