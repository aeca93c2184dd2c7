"""secp256k1 (externally owned account) signature verification."""

import logging
from typing import Optional

from eth_keys import keys

from assoc_verifier.erc8092.interop_address import same_address
from .chain import ChainQuery

log = logging.getLogger(__name__)


def recover_signer(record_hash: bytes, signature: bytes) -> str:
    """Recover the signing address from a 65-byte r || s || v signature.

    v may be given as 0/1 or 27/28.

    Returns:
        Checksummed address.

    Raises:
        ValueError: Signature is not 65 bytes.
        eth_keys.exceptions.BadSignature / ValidationError: Not recoverable.
    """
    if len(signature) != 65:
        raise ValueError(f"Expected 65-byte signature, got {len(signature)}")
    v = signature[64]
    if v >= 27:
        v -= 27
    sig = keys.Signature(signature[:64] + bytes([v]))
    public_key = sig.recover_public_key_from_msg_hash(record_hash)
    return public_key.to_checksum_address()


async def verify_k1_signature(
    signer: str,
    record_hash: bytes,
    signature: bytes,
    chain: Optional[ChainQuery] = None,
) -> bool:
    """True iff the signature over record_hash recovers to signer.

    Never raises for malformed input; chain is not consulted.
    """
    try:
        recovered = recover_signer(record_hash, signature)
    except Exception as e:
        log.debug(f"K1 recovery failed for {signer}: {e}")
        return False
    return same_address(recovered, signer)
