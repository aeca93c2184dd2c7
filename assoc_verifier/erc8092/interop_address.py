"""ERC-7930 interoperable address codec.

Binary layout (version 1):

    version(2) | chainType(2) | chainRefLen(1) | chainRef | addrLen(1) | address

For EVM accounts the address is the trailing 20 bytes, so the decoder used
during validation only looks at the tail and ignores the prefix.
"""

from dataclasses import dataclass
from typing import Optional, Union

from eth_utils import decode_hex, encode_hex, is_hex_address, to_canonical_address

from assoc_verifier.core.config import EVM_ADDRESS_LENGTH
from .exceptions import InteropAddressError

INTEROP_VERSION_1 = 1
CHAIN_TYPE_EIP155 = bytes.fromhex("0000")

BytesLike = Union[bytes, bytearray, str]


def as_bytes(value: BytesLike) -> bytes:
    """Accept raw bytes or a 0x-prefixed hex string."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return decode_hex(value)


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive hex address comparison."""
    if not a or not b:
        return False
    return a.lower() == b.lower()


def extract_address(binary_id: BytesLike) -> str:
    """Extract the EVM account address from an interoperable address.

    Inputs shorter than 20 bytes are treated as a raw address and returned
    verbatim (lowercased) rather than rejected.

    Returns:
        Lowercase 0x-prefixed hex address.
    """
    raw = as_bytes(binary_id)
    if len(raw) >= EVM_ADDRESS_LENGTH:
        return encode_hex(raw[-EVM_ADDRESS_LENGTH:])
    return encode_hex(raw)


def address_to_binary_id(address: str, chain_id: int) -> bytes:
    """Build a version 1 eip155 interoperable address.

    Args:
        address: 20-byte EVM address (any case).
        chain_id: Positive EIP-155 chain id.

    Raises:
        InteropAddressError: address is not a 20-byte hex address or
            chain_id is not positive.
    """
    if not is_hex_address(address):
        raise InteropAddressError(f"Not an EVM address: {address!r}")
    if chain_id <= 0:
        raise InteropAddressError(f"chain_id must be positive, got {chain_id}")

    chain_ref = chain_id.to_bytes((chain_id.bit_length() + 7) // 8, "big")
    if len(chain_ref) > 255:
        raise InteropAddressError(f"chain_id too large: {chain_id}")
    addr = to_canonical_address(address)

    return (
        INTEROP_VERSION_1.to_bytes(2, "big")
        + CHAIN_TYPE_EIP155
        + bytes([len(chain_ref)])
        + chain_ref
        + bytes([len(addr)])
        + addr
    )


@dataclass(frozen=True)
class InteropAddress:
    """Fully decoded interoperable address."""
    version: int
    chain_type: bytes
    chain_reference: bytes
    address: bytes

    @property
    def chain_id(self) -> Optional[int]:
        """EIP-155 chain id, or None for a non-EVM or chain-less address."""
        if self.chain_type != CHAIN_TYPE_EIP155 or not self.chain_reference:
            return None
        return int.from_bytes(self.chain_reference, "big")

    @property
    def address_hex(self) -> str:
        return encode_hex(self.address)


def parse_interop_address(binary_id: BytesLike) -> InteropAddress:
    """Strictly decode an interoperable address.

    Unlike extract_address this validates every length prefix.

    Raises:
        InteropAddressError: Truncated, trailing bytes, or unknown version.
    """
    raw = as_bytes(binary_id)
    if len(raw) < 6:
        raise InteropAddressError(f"Interoperable address too short: {len(raw)} bytes")

    version = int.from_bytes(raw[0:2], "big")
    if version != INTEROP_VERSION_1:
        raise InteropAddressError(f"Unsupported interoperable address version: {version}")

    chain_type = raw[2:4]
    chain_ref_len = raw[4]
    cursor = 5 + chain_ref_len
    if len(raw) < cursor + 1:
        raise InteropAddressError("Truncated chain reference")
    chain_reference = raw[5:cursor]

    addr_len = raw[cursor]
    address = raw[cursor + 1:cursor + 1 + addr_len]
    if len(address) != addr_len:
        raise InteropAddressError("Truncated address")
    if len(raw) != cursor + 1 + addr_len:
        raise InteropAddressError("Trailing bytes after address")

    return InteropAddress(
        version=version,
        chain_type=chain_type,
        chain_reference=chain_reference,
        address=address,
    )
