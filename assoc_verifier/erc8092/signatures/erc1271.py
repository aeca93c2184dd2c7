"""ERC-1271 contract signature verification."""

import logging
from typing import Optional

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from assoc_verifier.core.config import ERC1271_MAGIC_VALUE
from .chain import ChainQuery

log = logging.getLogger(__name__)

IS_VALID_SIGNATURE_SELECTOR = function_signature_to_4byte_selector(
    "isValidSignature(bytes32,bytes)"
)


async def is_smart_contract(chain: ChainQuery, address: str) -> bool:
    """True iff deployed code exists at address.

    A failed code lookup counts as "no code".
    """
    try:
        code = await chain.get_code(to_checksum_address(address))
    except Exception as e:
        log.debug(f"get_code failed for {address}: {e}")
        return False
    return bool(code)


async def verify_erc1271_signature(
    signer: str,
    record_hash: bytes,
    signature: bytes,
    chain: Optional[ChainQuery] = None,
) -> bool:
    """Ask the signer contract whether signature is valid for record_hash.

    Valid only when isValidSignature returns the 0x1626ba7e magic value.
    Reverts, transport errors and undecodable return data all yield False.
    """
    if chain is None:
        return False
    try:
        result = await chain.read_contract(
            to_checksum_address(signer),
            IS_VALID_SIGNATURE_SELECTOR,
            encode(["bytes32", "bytes"], [record_hash, signature]),
        )
        (magic,) = decode(["bytes4"], result)
    except Exception as e:
        log.debug(f"isValidSignature failed for {signer}: {e}")
        return False
    return magic == ERC1271_MAGIC_VALUE
