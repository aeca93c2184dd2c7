"""
ERC-6492 signature verification for counterfactual (not yet deployed) accounts.

A wrapped signature is

    abi.encode(address factory, bytes factoryCalldata, bytes innerSignature)
    || 0x6492...6492 (32 bytes)

Verification order:
1. Deployed account with an unwrapped signature: plain ERC-1271.
2. Otherwise simulate UniversalSigValidator.isValidSig(signer, hash, sig),
   which deploys the account in the simulation when needed.
3. If the simulated call fails, unwrap manually and, when the account is
   already deployed, retry ERC-1271 with the inner signature.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from assoc_verifier.core.config import ERC6492_MAGIC_SUFFIX, UNIVERSAL_VALIDATOR_ADDRESS
from .chain import ChainQuery
from .erc1271 import is_smart_contract, verify_erc1271_signature
from .exceptions import ChainQueryError

log = logging.getLogger(__name__)

IS_VALID_SIG_SELECTOR = function_signature_to_4byte_selector("isValidSig(address,bytes32,bytes)")

_WRAPPER_TYPES = ["address", "bytes", "bytes"]


@dataclass(frozen=True)
class WrappedSignature:
    """Decoded ERC-6492 wrapper."""
    factory: str
    factory_calldata: bytes
    signature: bytes


def is_wrapped(signature: bytes) -> bool:
    """True iff signature ends with the 32-byte ERC-6492 magic suffix."""
    return len(signature) >= 32 and signature[-32:] == ERC6492_MAGIC_SUFFIX


def wrap_signature(factory: str, factory_calldata: bytes, signature: bytes) -> bytes:
    """Build an ERC-6492 wrapped signature."""
    body = encode(_WRAPPER_TYPES, [to_checksum_address(factory), factory_calldata, signature])
    return body + ERC6492_MAGIC_SUFFIX


def unwrap_signature(signature: bytes) -> WrappedSignature:
    """Decode an ERC-6492 wrapper.

    Raises:
        ValueError: No magic suffix or the body is not a valid encoding.
    """
    if not is_wrapped(signature):
        raise ValueError("Signature does not carry the ERC-6492 suffix")
    try:
        factory, calldata, inner = decode(_WRAPPER_TYPES, signature[:-32])
    except Exception as e:
        raise ValueError(f"Malformed ERC-6492 wrapper: {e}") from e
    return WrappedSignature(
        factory=to_checksum_address(factory),
        factory_calldata=calldata,
        signature=inner,
    )


def validator_address_for(chain: ChainQuery) -> Optional[str]:
    """Universal validator the chain exposes, else the configured default."""
    return getattr(chain, "validator_address", UNIVERSAL_VALIDATOR_ADDRESS)


async def _universal_validator_check(
    chain: ChainQuery,
    validator_address: Optional[str],
    signer: str,
    record_hash: bytes,
    signature: bytes,
) -> bool:
    if validator_address is None:
        raise ChainQueryError("No universal signature validator configured")
    calldata = IS_VALID_SIG_SELECTOR + encode(
        ["address", "bytes32", "bytes"],
        [to_checksum_address(signer), record_hash, signature],
    )
    result = await chain.call(to_checksum_address(validator_address), calldata)
    (ok,) = decode(["bool"], result)
    return bool(ok)


async def verify_erc6492_signature(
    signer: str,
    record_hash: bytes,
    signature: bytes,
    chain: Optional[ChainQuery] = None,
    validator_address: Optional[str] = None,
) -> bool:
    """Verify a possibly-wrapped signature from a possibly-undeployed account.

    Args:
        signer: Account address.
        record_hash: The 32-byte digest that was signed.
        signature: Raw or ERC-6492 wrapped signature.
        chain: Chain access; without it the result is always False.
        validator_address: UniversalSigValidator deployment. Defaults to the
            chain's own (see validator_address_for); when neither is set the
            simulated call is skipped in favour of the manual fallback.

    Returns:
        True iff the signature is valid. Never raises for verification failures.
    """
    if chain is None:
        return False

    wrapped = is_wrapped(signature)
    deployed = await is_smart_contract(chain, signer)

    if deployed and not wrapped:
        return await verify_erc1271_signature(signer, record_hash, signature, chain)

    if validator_address is None:
        validator_address = validator_address_for(chain)
    try:
        return await _universal_validator_check(
            chain, validator_address, signer, record_hash, signature
        )
    except Exception as e:
        log.debug(f"Universal validator check failed for {signer}: {e}")

    if not wrapped:
        return False
    try:
        unwrapped = unwrap_signature(signature)
    except ValueError as e:
        log.debug(f"ERC-6492 unwrap failed for {signer}: {e}")
        return False
    if not deployed:
        return False
    return await verify_erc1271_signature(signer, record_hash, unwrapped.signature, chain)
