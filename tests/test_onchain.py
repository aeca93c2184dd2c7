"""Tests for the AssociationsStore reader and receipt parsing."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from assoc_verifier.erc8092.exceptions import AssociationNotFoundError
from assoc_verifier.erc8092.onchain import (
    ASSOCIATION_CREATED_TOPIC,
    GET_ASSOCIATION,
    GET_ASSOCIATIONS_FOR_ACCOUNT,
    REVOKE_ASSOCIATION,
    SAR_TUPLE,
    STORE_ASSOCIATION,
    AssociationsStoreReader,
    association_id_from_logs,
    encode_revoke_association,
    encode_store_association,
    sar_to_abi,
    store_error_name,
)
from assoc_verifier.erc8092.records import KeyType, SignedAssociationRecord
from assoc_verifier.erc8092.signatures.exceptions import ChainQueryError

STORE = "0x6f4D643BD9332d9Aa3a828576e3a64ccc58D2684"


@pytest.fixture
def sar(make_record):
    return SignedAssociationRecord(
        record=make_record(data=b"\x01\x02"),
        revoked_at=1800,
        initiator_key_type=KeyType.K1,
        approver_key_type=KeyType.ERC6492,
        initiator_signature=b"\xaa" * 65,
        approver_signature=b"\xbb" * 97,
    )


@pytest.fixture
def mock_chain():
    chain = MagicMock()
    chain.read_contract = AsyncMock()
    return chain


class TestReader:

    @pytest.mark.asyncio
    async def test_get_associations_for_account(self, mock_chain, sar):
        mock_chain.read_contract.return_value = encode([f"{SAR_TUPLE}[]"], [[sar_to_abi(sar)]])
        reader = AssociationsStoreReader(mock_chain, STORE)

        records = await reader.get_associations_for_account(sar.record.initiator)

        assert records == [sar]
        address, selector, args = mock_chain.read_contract.call_args.args
        assert address == STORE
        assert selector == GET_ASSOCIATIONS_FOR_ACCOUNT
        assert args == encode(["bytes"], [sar.record.initiator])

    @pytest.mark.asyncio
    async def test_no_associations(self, mock_chain):
        mock_chain.read_contract.return_value = encode([f"{SAR_TUPLE}[]"], [[]])
        reader = AssociationsStoreReader(mock_chain, STORE)
        assert await reader.get_associations_for_account("0x1234") == []

    @pytest.mark.asyncio
    async def test_get_association(self, mock_chain, sar):
        mock_chain.read_contract.return_value = encode([SAR_TUPLE], [sar_to_abi(sar)])
        reader = AssociationsStoreReader(mock_chain, STORE)

        assert await reader.get_association("0x" + "11" * 32) == sar
        assert mock_chain.read_contract.call_args.args[1] == GET_ASSOCIATION

    @pytest.mark.asyncio
    async def test_get_association_not_found(self, mock_chain):
        revert = function_signature_to_4byte_selector("AssociationNotFound()")
        mock_chain.read_contract.side_effect = ChainQueryError("reverted", revert_data=revert)
        reader = AssociationsStoreReader(mock_chain, STORE)

        with pytest.raises(AssociationNotFoundError):
            await reader.get_association(b"\x11" * 32)

    @pytest.mark.asyncio
    async def test_other_chain_errors_propagate(self, mock_chain):
        mock_chain.read_contract.side_effect = ChainQueryError("timeout")
        reader = AssociationsStoreReader(mock_chain, STORE)
        with pytest.raises(ChainQueryError):
            await reader.get_association(b"\x11" * 32)

    @pytest.mark.asyncio
    async def test_undecodable_result(self, mock_chain):
        mock_chain.read_contract.return_value = b"\x00\x01"
        reader = AssociationsStoreReader(mock_chain, STORE)
        with pytest.raises(ChainQueryError, match="Undecodable"):
            await reader.get_associations_for_account(b"\x01")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("flag", [True, False])
    async def test_are_accounts_associated(self, mock_chain, flag):
        mock_chain.read_contract.return_value = encode(["bool"], [flag])
        reader = AssociationsStoreReader(mock_chain, STORE)
        assert await reader.are_accounts_associated(b"\x01", b"\x02") is flag


class TestCalldata:

    def test_store_association_selector(self, sar):
        calldata = encode_store_association(sar)
        assert calldata[:4] == STORE_ASSOCIATION
        assert calldata[4:] == encode([SAR_TUPLE], [sar_to_abi(sar)])

    def test_revoke_association(self):
        calldata = encode_revoke_association("0x" + "22" * 32, 1700)
        assert calldata[:4] == REVOKE_ASSOCIATION
        assert calldata[4:] == encode(["bytes32", "uint40"], [b"\x22" * 32, 1700])

    def test_store_error_names(self):
        assert store_error_name(function_signature_to_4byte_selector("UnauthorizedRevocation()")) == (
            "UnauthorizedRevocation"
        )
        assert store_error_name(b"\x00\x00\x00\x00") is None
        assert store_error_name(None) is None


class TestAssociationIdFromLogs:

    def test_first_indexed_topic(self):
        association_id = "0x" + "ab" * 32
        logs = [
            {"address": "0x" + "99" * 20, "topics": ["0x" + "00" * 32]},
            {
                "address": STORE.lower(),
                "topics": [
                    "0x" + ASSOCIATION_CREATED_TOPIC.hex(),
                    association_id,
                    "0x" + "01" * 32,
                    "0x" + "02" * 32,
                ],
            },
        ]
        assert association_id_from_logs(logs, STORE) == association_id

    def test_bytes_topics(self):
        logs = [{"address": STORE, "topics": [ASSOCIATION_CREATED_TOPIC, b"\xcd" * 32]}]
        assert association_id_from_logs(logs) == "0x" + "cd" * 32

    def test_other_contract_ignored(self):
        logs = [{"address": "0x" + "99" * 20, "topics": [ASSOCIATION_CREATED_TOPIC, b"\xcd" * 32]}]
        assert association_id_from_logs(logs, STORE) is None

    def test_no_event(self):
        assert association_id_from_logs([]) is None
