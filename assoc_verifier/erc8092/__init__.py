"""ERC-8092 associated accounts: records, hashing, signature verification
and validation.

Quick start:
    from assoc_verifier.erc8092 import validate_sar, sar_from_json

    verdict = await validate_sar(sar_from_json(payload), chain=chain)
"""

from .api_models import ErrorCode, ValidationVerdict, VerdictReason
from .exceptions import (
    AssociationError,
    AssociationInvalidError,
    AssociationNotFoundError,
    InteropAddressError,
    RecordParseError,
    RecordRangeError,
    RevocationConflictError,
    RevocationError,
    RevocationUnauthorizedError,
)
from .interop_address import address_to_binary_id, extract_address, parse_interop_address
from .records import AssociatedAccountRecord, KeyType, Party, SignedAssociationRecord
from .reconcile import ReconciledAssociation, Source, pair_key, reconcile, validate_all
from .serialize import sar_from_json, sar_to_json
from .typed_data import hash_record, signable_message, typed_data
from .verify import validate, validate_sar

__all__ = [
    "AssociatedAccountRecord",
    "AssociationError",
    "AssociationInvalidError",
    "AssociationNotFoundError",
    "ErrorCode",
    "InteropAddressError",
    "KeyType",
    "Party",
    "ReconciledAssociation",
    "RecordParseError",
    "RecordRangeError",
    "RevocationConflictError",
    "RevocationError",
    "RevocationUnauthorizedError",
    "SignedAssociationRecord",
    "Source",
    "ValidationVerdict",
    "VerdictReason",
    "address_to_binary_id",
    "extract_address",
    "hash_record",
    "pair_key",
    "parse_interop_address",
    "reconcile",
    "sar_from_json",
    "sar_to_json",
    "signable_message",
    "typed_data",
    "validate",
    "validate_all",
    "validate_sar",
]
