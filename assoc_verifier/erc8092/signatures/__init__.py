"""Signature verification strategies for association records.

Every verifier has the same shape, (signer, record_hash, signature, chain)
-> bool, and never raises for an invalid signature.
"""

from .chain import ChainQuery, JsonRpcChainClient
from .eoa import recover_signer, verify_k1_signature
from .erc1271 import is_smart_contract, verify_erc1271_signature
from .erc6492 import (
    WrappedSignature,
    is_wrapped,
    unwrap_signature,
    validator_address_for,
    verify_erc6492_signature,
    wrap_signature,
)
from .exceptions import ChainQueryError
from .key_type import CHAIN_REQUIRED, VERIFIERS, resolve_key_type, verifier_for

__all__ = [
    "ChainQuery",
    "ChainQueryError",
    "JsonRpcChainClient",
    "recover_signer",
    "verify_k1_signature",
    "is_smart_contract",
    "verify_erc1271_signature",
    "WrappedSignature",
    "is_wrapped",
    "unwrap_signature",
    "wrap_signature",
    "validator_address_for",
    "verify_erc6492_signature",
    "CHAIN_REQUIRED",
    "VERIFIERS",
    "resolve_key_type",
    "verifier_for",
]
