"""SQLAlchemy ORM models for the off-chain association index.

One row per stored SignedAssociationRecord. Byte fields are kept as
0x-prefixed hex text; addresses are lowercase so lookups can compare them
directly. Zero-valued optional fields (validUntil, revokedAt, default
interfaceId, empty data) are stored as NULL.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class AssociationRow(Base):
    """Stored association with its signatures and revocation state."""

    __tablename__ = "associations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    association_hash = Column(String(66), nullable=False)  # EIP-712 record hash
    initiator_address = Column(String(42), nullable=False)
    approver_address = Column(String(42), nullable=False)
    initiator_bytes = Column(Text, nullable=False)  # ERC-7930 binary id
    approver_bytes = Column(Text, nullable=False)
    valid_at = Column(BigInteger, nullable=False)
    valid_until = Column(BigInteger, nullable=True)
    interface_id = Column(String(10), nullable=True)
    data = Column(Text, nullable=True)
    revoked_at = Column(BigInteger, nullable=True)
    initiator_key_type = Column(String(6), nullable=False)  # "0x0001"
    approver_key_type = Column(String(6), nullable=False)
    initiator_signature = Column(Text, nullable=False)
    approver_signature = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_associations_initiator", "initiator_address"),
        Index("ix_associations_approver", "approver_address"),
        Index("ix_associations_hash", "association_hash"),
    )

    def __repr__(self) -> str:
        return (
            f"<AssociationRow(id={self.id!r}, initiator={self.initiator_address!r}, "
            f"approver={self.approver_address!r}, revoked_at={self.revoked_at!r})>"
        )
