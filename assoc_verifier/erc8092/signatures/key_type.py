"""Key type resolution and the key type to verifier mapping."""

from typing import Awaitable, Callable, Dict, FrozenSet, Optional

from assoc_verifier.erc8092.records import KeyType
from .chain import ChainQuery
from .eoa import verify_k1_signature
from .erc1271 import is_smart_contract, verify_erc1271_signature
from .erc6492 import is_wrapped, verify_erc6492_signature

Verifier = Callable[[str, bytes, bytes, Optional[ChainQuery]], Awaitable[bool]]

# DELEGATED is checked as a plain secp256k1 signature
VERIFIERS: Dict[int, Verifier] = {
    KeyType.DELEGATED: verify_k1_signature,
    KeyType.K1: verify_k1_signature,
    KeyType.ERC1271: verify_erc1271_signature,
    KeyType.ERC6492: verify_erc6492_signature,
}

CHAIN_REQUIRED: FrozenSet[int] = frozenset({KeyType.ERC1271, KeyType.ERC6492})


def verifier_for(key_type: int) -> Optional[Verifier]:
    """Verifier for a raw key type value, or None when unsupported."""
    return VERIFIERS.get(key_type)


async def resolve_key_type(
    signature: bytes,
    signer: str,
    chain: Optional[ChainQuery] = None,
) -> KeyType:
    """Classify a freshly produced signature.

    - ERC6492 when the signature carries the ERC-6492 suffix
    - ERC1271 when chain access is available and the signer has code
    - K1 otherwise
    """
    if is_wrapped(signature):
        return KeyType.ERC6492
    if chain is not None and await is_smart_contract(chain, signer):
        return KeyType.ERC1271
    return KeyType.K1
