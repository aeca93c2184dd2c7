"""Tests for EIP-712 hashing of AssociatedAccountRecord."""

import dataclasses

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import keccak

from assoc_verifier.core.config import MAX_UINT40
from assoc_verifier.erc8092.exceptions import RecordRangeError
from assoc_verifier.erc8092.signatures.eoa import recover_signer
from assoc_verifier.erc8092.typed_data import (
    EIP712_TYPES,
    PRIMARY_TYPE,
    domain_separator,
    hash_record,
    signable_message,
    struct_hash,
    typed_data,
)


class TestHashRecord:

    def test_matches_eth_account_typed_data_encoding(self, make_record):
        aar = make_record(interface_id=b"\x12\x34\x56\x78", data=b"\xde\xad")
        message_types = {PRIMARY_TYPE: EIP712_TYPES[PRIMARY_TYPE]}
        message_data = {
            "initiator": aar.initiator,
            "approver": aar.approver,
            "validAt": aar.valid_at,
            "validUntil": aar.valid_until,
            "interfaceId": aar.interface_id,
            "data": aar.data,
        }
        expected = encode_typed_data(
            domain_data={"name": "AssociatedAccounts", "version": "1"},
            message_types=message_types,
            message_data=message_data,
        )
        ours = signable_message(aar)
        assert ours.header == expected.header
        assert ours.body == expected.body

    def test_digest_layout(self, make_record):
        aar = make_record()
        assert hash_record(aar) == keccak(b"\x19\x01" + domain_separator() + struct_hash(aar))

    def test_domain_has_no_chain_id(self):
        domain_fields = [field["name"] for field in EIP712_TYPES["EIP712Domain"]]
        assert domain_fields == ["name", "version"]

    def test_any_field_changes_hash(self, make_record):
        aar = make_record()
        variants = [
            dataclasses.replace(aar, valid_at=aar.valid_at + 1),
            dataclasses.replace(aar, valid_until=0),
            dataclasses.replace(aar, interface_id=b"\x00\x00\x00\x01"),
            dataclasses.replace(aar, data=b"\x01"),
            dataclasses.replace(aar, initiator=aar.approver, approver=aar.initiator),
        ]
        hashes = {hash_record(v) for v in variants}
        assert hash_record(aar) not in hashes
        assert len(hashes) == len(variants)

    def test_k1_round_trip(self, make_record):
        """recover_signer(hash, sign(hash, key)) == address(key)."""
        account = Account.create()
        aar = make_record()
        signature = account.sign_message(signable_message(aar)).signature
        assert recover_signer(hash_record(aar), bytes(signature)) == account.address


class TestRangeChecks:

    def test_uint40_max_accepted(self, make_record):
        aar = make_record(valid_at=MAX_UINT40, valid_until=MAX_UINT40)
        assert len(hash_record(aar)) == 32

    @pytest.mark.parametrize("field", ["valid_at", "valid_until"])
    def test_overflow_rejected(self, make_record, field):
        aar = dataclasses.replace(make_record(), **{field: MAX_UINT40 + 1})
        with pytest.raises(RecordRangeError) as exc:
            hash_record(aar)
        assert exc.value.code == "RECORD_RANGE"

    def test_negative_rejected(self, make_record):
        aar = dataclasses.replace(make_record(), valid_at=-1)
        with pytest.raises(RecordRangeError):
            hash_record(aar)

    def test_interface_id_must_be_four_bytes(self, make_record):
        aar = make_record(interface_id=b"\x01\x02\x03")
        with pytest.raises(RecordRangeError, match="interfaceId"):
            hash_record(aar)


class TestTypedDataPayload:

    def test_wallet_payload(self, make_record):
        aar = make_record(data=b"\xca\xfe")
        payload = typed_data(aar)
        assert payload["primaryType"] == "AssociatedAccountRecord"
        assert payload["domain"] == {"name": "AssociatedAccounts", "version": "1"}
        assert payload["message"]["validAt"] == 1000
        assert payload["message"]["interfaceId"] == "0x00000000"
        assert payload["message"]["data"] == "0xcafe"
