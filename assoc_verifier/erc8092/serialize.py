"""Conversion between records and their JSON wire form."""

from typing import Any, Dict

from eth_utils import decode_hex, encode_hex
from pydantic import ValidationError

from .api_models import AssociationRecordWire, SignedAssociationRecordWire
from .exceptions import RecordParseError
from .records import AssociatedAccountRecord, SignedAssociationRecord, check_uint40


def aar_to_wire(aar: AssociatedAccountRecord) -> AssociationRecordWire:
    return AssociationRecordWire(
        initiator=encode_hex(aar.initiator),
        approver=encode_hex(aar.approver),
        valid_at=str(aar.valid_at),
        valid_until=str(aar.valid_until),
        interface_id=encode_hex(aar.interface_id),
        data=encode_hex(aar.data),
    )


def aar_from_wire(wire: AssociationRecordWire) -> AssociatedAccountRecord:
    """Build a record from its wire form.

    Raises:
        RecordRangeError: validAt/validUntil outside uint40.
    """
    return AssociatedAccountRecord(
        initiator=decode_hex(wire.initiator),
        approver=decode_hex(wire.approver),
        valid_at=check_uint40("validAt", int(wire.valid_at)),
        valid_until=check_uint40("validUntil", int(wire.valid_until)),
        interface_id=decode_hex(wire.interface_id),
        data=decode_hex(wire.data),
    )


def sar_to_wire(sar: SignedAssociationRecord) -> SignedAssociationRecordWire:
    return SignedAssociationRecordWire(
        revoked_at=str(sar.revoked_at),
        initiator_key_type=f"0x{sar.initiator_key_type:04x}",
        approver_key_type=f"0x{sar.approver_key_type:04x}",
        initiator_signature=encode_hex(sar.initiator_signature),
        approver_signature=encode_hex(sar.approver_signature),
        record=aar_to_wire(sar.record),
    )


def sar_from_wire(wire: SignedAssociationRecordWire) -> SignedAssociationRecord:
    return SignedAssociationRecord(
        record=aar_from_wire(wire.record),
        revoked_at=check_uint40("revokedAt", int(wire.revoked_at)),
        initiator_key_type=int(wire.initiator_key_type, 16),
        approver_key_type=int(wire.approver_key_type, 16),
        initiator_signature=decode_hex(wire.initiator_signature),
        approver_signature=decode_hex(wire.approver_signature),
    )


def sar_to_json(sar: SignedAssociationRecord) -> Dict[str, Any]:
    """JSON-ready dict with camelCase keys."""
    return sar_to_wire(sar).model_dump(by_alias=True)


def sar_from_json(data: Dict[str, Any]) -> SignedAssociationRecord:
    """Parse a JSON dict produced by sar_to_json (or a compatible client).

    Raises:
        RecordParseError: Structurally invalid payload.
        RecordRangeError: Timestamp outside uint40.
    """
    try:
        wire = SignedAssociationRecordWire.model_validate(data)
    except ValidationError as e:
        raise RecordParseError(f"Invalid signed association record: {e}") from e
    return sar_from_wire(wire)
