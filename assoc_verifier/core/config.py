"""
Associated Accounts verifier configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by ERC-8092 / ERC-1271 / ERC-6492, cannot be changed
- CONFIGURABLE: Defaults that a deployment may override
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os
from typing import Optional

# =============================================================================
# NORMATIVE CONSTANTS
# =============================================================================

# EIP-712 domain for AssociatedAccountRecord.
# The domain deliberately carries no chainId: a signature produced while the
# wallet is connected to any network must verify on every other network.
EIP712_DOMAIN_NAME: str = "AssociatedAccounts"
EIP712_DOMAIN_VERSION: str = "1"

# validAt / validUntil / revokedAt are uint40 on the wire and in the hash
MAX_UINT40: int = 2**40 - 1

# ERC-1271 isValidSignature(bytes32,bytes) magic return value
ERC1271_MAGIC_VALUE: bytes = bytes.fromhex("1626ba7e")

# ERC-6492 wrapped signature suffix (32 bytes)
ERC6492_MAGIC_SUFFIX: bytes = bytes.fromhex("6492" * 16)

# Length in bytes of an EVM account address
EVM_ADDRESS_LENGTH: int = 20

# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================

# Timeout for a single JSON-RPC request to the chain endpoint.
# The core never retries; callers wrap calls in their own retry policy.
RPC_TIMEOUT_SECONDS: float = float(os.getenv("AAV_RPC_TIMEOUT", "10.0"))

# Chain used when building interoperable addresses without an explicit chain
# (Base Sepolia, where the reference AssociationsStore is deployed)
DEFAULT_CHAIN_ID: int = int(os.getenv("AAV_DEFAULT_CHAIN_ID", "84532"))

# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# JSON-RPC endpoint used by the CLI and JsonRpcChainClient defaults
RPC_URL: str = os.getenv("AAV_RPC_URL", "https://sepolia.base.org")

# AssociationsStore contract (proxy) on Base Sepolia
ASSOCIATIONS_STORE_ADDRESS: str = os.getenv(
    "AAV_STORE_ADDRESS", "0x6f4D643BD9332d9Aa3a828576e3a64ccc58D2684"
)


# UniversalSigValidator deployment used when none is configured. Same
# deterministic address on every chain it is deployed to.
DEFAULT_UNIVERSAL_VALIDATOR_ADDRESS = "0xdAcD51A54883eb67D95FAEb2BBfdC4a9a6BD2a3B"


def _parse_validator_address() -> Optional[str]:
    """Read the ERC-6492 universal signature validator address.

    The validator contract must be deployed on the chain the RPC endpoint
    serves. Defaults to DEFAULT_UNIVERSAL_VALIDATOR_ADDRESS. Setting the
    variable to an empty string disables the simulated isValidSig call, so
    the ERC-6492 verifier goes straight to its manual-unwrap fallback.

    Environment variable format:
        AAV_UNIVERSAL_VALIDATOR_ADDRESS=0xabc...

    Returns:
        Address string, or None when explicitly disabled.
    """
    value = os.getenv("AAV_UNIVERSAL_VALIDATOR_ADDRESS", DEFAULT_UNIVERSAL_VALIDATOR_ADDRESS).strip()
    return value or None


# ERC-6492 UniversalSigValidator deployment used for counterfactual signatures
UNIVERSAL_VALIDATOR_ADDRESS: Optional[str] = _parse_validator_address()

# Off-chain association index.
# SQLite for local development; point at PostgreSQL in production.
DATABASE_URL: str = os.getenv("AAV_DATABASE_URL", "sqlite:///data/associations.db")
