"""Shared fixtures: deterministic keys, record factories and an in-memory chain."""

from typing import Dict, List, Optional, Set, Tuple

import pytest
from eth_abi import decode, encode
from eth_account import Account

from assoc_verifier.core.config import ERC1271_MAGIC_VALUE
from assoc_verifier.erc8092.interop_address import address_to_binary_id, same_address
from assoc_verifier.erc8092.records import AssociatedAccountRecord
from assoc_verifier.erc8092.signatures.eoa import recover_signer
from assoc_verifier.erc8092.signatures.erc1271 import IS_VALID_SIGNATURE_SELECTOR
from assoc_verifier.erc8092.signatures.erc6492 import (
    IS_VALID_SIG_SELECTOR,
    is_wrapped,
    unwrap_signature,
)
from assoc_verifier.erc8092.signatures.exceptions import ChainQueryError
from assoc_verifier.erc8092.typed_data import signable_message


# =============================================================================
# Test keys (fixed so failures are reproducible)
# =============================================================================

INITIATOR_KEY = "0x" + "11" * 32
APPROVER_KEY = "0x" + "22" * 32
WALLET_OWNER_KEY = "0x" + "33" * 32
OUTSIDER_KEY = "0x" + "44" * 32

SMART_WALLET = "0x" + "ab" * 20
FACTORY = "0x" + "fa" * 20
VALIDATOR = "0x" + "76" * 20

CHAIN_ID = 84532


class FakeChain:
    """In-memory ChainQuery.

    Smart wallets accept a signature when it recovers to the wallet owner.
    The universal validator "deploys" counterfactual wallets when handed an
    ERC-6492 wrapper, otherwise it behaves like ERC-1271 or ecrecover.
    """

    def __init__(self, validator_address: Optional[str] = None):
        self.validator_address = validator_address
        self.owners: Dict[str, str] = {}
        self.deployed: Set[str] = set()
        self.calls: List[Tuple[str, str]] = []
        self.fail_get_code = False
        self.fail_calls = False

    def add_wallet(self, address: str, owner: str, deployed: bool = True) -> None:
        self.owners[address.lower()] = owner
        if deployed:
            self.deployed.add(address.lower())

    def _owner_signed(self, address: str, record_hash: bytes, signature: bytes) -> bool:
        owner = self.owners.get(address.lower())
        try:
            return same_address(recover_signer(record_hash, signature), owner)
        except Exception:
            return False

    async def get_code(self, address: str) -> Optional[bytes]:
        self.calls.append(("get_code", address.lower()))
        if self.fail_get_code:
            raise ChainQueryError("eth_getCode failed: upstream unavailable")
        return b"\x60\x80\x60\x40" if address.lower() in self.deployed else None

    async def read_contract(self, address: str, selector: bytes, args: bytes) -> bytes:
        self.calls.append(("read_contract", address.lower()))
        if self.fail_calls or address.lower() not in self.deployed:
            raise ChainQueryError("eth_call failed: execution reverted")
        if selector != IS_VALID_SIGNATURE_SELECTOR:
            raise ChainQueryError("eth_call failed: execution reverted")
        record_hash, signature = decode(["bytes32", "bytes"], args)
        ok = self._owner_signed(address, record_hash, signature)
        return encode(["bytes4"], [ERC1271_MAGIC_VALUE if ok else b"\xff\xff\xff\xff"])

    async def call(self, address: str, calldata: bytes) -> bytes:
        self.calls.append(("call", address.lower()))
        if self.fail_calls or not same_address(address, self.validator_address):
            raise ChainQueryError("eth_call failed: execution reverted")
        if calldata[:4] != IS_VALID_SIG_SELECTOR:
            raise ChainQueryError("eth_call failed: execution reverted")
        signer, record_hash, signature = decode(["address", "bytes32", "bytes"], calldata[4:])

        if is_wrapped(signature):
            inner = unwrap_signature(signature).signature
            ok = signer.lower() in self.owners and self._owner_signed(signer, record_hash, inner)
        elif signer.lower() in self.deployed:
            ok = self._owner_signed(signer, record_hash, signature)
        else:
            try:
                ok = same_address(recover_signer(record_hash, signature), signer)
            except Exception:
                ok = False
        return encode(["bool"], [ok])


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def initiator():
    return Account.from_key(INITIATOR_KEY)


@pytest.fixture
def approver():
    return Account.from_key(APPROVER_KEY)


@pytest.fixture
def wallet_owner():
    return Account.from_key(WALLET_OWNER_KEY)


@pytest.fixture
def outsider():
    return Account.from_key(OUTSIDER_KEY)


@pytest.fixture
def chain():
    """Chain with no universal validator configured."""
    return FakeChain()


@pytest.fixture
def validator_chain():
    """Chain with a universal validator deployed at VALIDATOR."""
    return FakeChain(validator_address=VALIDATOR)


@pytest.fixture
def make_record(initiator, approver):
    """Factory for AssociatedAccountRecords between initiator and approver."""
    def _make(
        valid_at: int = 1000,
        valid_until: int = 2000,
        initiator_address: Optional[str] = None,
        approver_address: Optional[str] = None,
        interface_id: bytes = b"\x00\x00\x00\x00",
        data: bytes = b"",
    ) -> AssociatedAccountRecord:
        return AssociatedAccountRecord(
            initiator=address_to_binary_id(initiator_address or initiator.address, CHAIN_ID),
            approver=address_to_binary_id(approver_address or approver.address, CHAIN_ID),
            valid_at=valid_at,
            valid_until=valid_until,
            interface_id=interface_id,
            data=data,
        )
    return _make


@pytest.fixture
def sign():
    """sign(account, aar) -> 65-byte EIP-712 signature over the record."""
    def _sign(account, aar: AssociatedAccountRecord) -> bytes:
        return bytes(account.sign_message(signable_message(aar)).signature)
    return _sign
