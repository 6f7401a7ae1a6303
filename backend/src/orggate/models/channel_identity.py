"""ChannelIdentity SQLAlchemy model"""

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Text, UniqueConstraint, Uuid

from .base import Base, UTCDateTime, utcnow


class ChannelIdentity(Base):
    """External channel identifier (phone number, email address) of a user.

    An identifier registered and verified against exactly one organization is
    identifier-scoped to it and wins the channel workspace cascade.
    """
    __tablename__ = "channel_identity"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    channel = Column(Text, nullable=False)
    external_id = Column(Text, nullable=False)
    verification_status = Column(Text, nullable=False, default="pending")
    verified_at = Column(UTCDateTime, nullable=True)
    last_used_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('channel', 'external_id', 'organization_id', name='uq_channel_identity'),
        CheckConstraint(
            "verification_status IN ('pending', 'verified', 'revoked')",
            name='ck_channel_identity_verification_status'
        ),
        Index("ix_channel_identity_lookup", "channel", "external_id"),
    )
