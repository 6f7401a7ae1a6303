"""WorkspaceBindingCode SQLAlchemy model"""

import uuid

from sqlalchemy import Column, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow


class WorkspaceBindingCode(Base):
    """Short-lived, single-use 6-digit code binding a channel to one org.

    The code value is only unique among live (unused, unexpired) rows, so it
    carries an index rather than a unique constraint. Consumption is a
    conditional UPDATE on used_at IS NULL.
    """
    __tablename__ = "workspace_binding_code"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(Text, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    channel = Column(Text, nullable=True)
    expires_at = Column(UTCDateTime, nullable=False)
    used_at = Column(UTCDateTime, nullable=True)
    used_by_channel = Column(Text, nullable=True)
    used_by_identifier = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    user = relationship("User")

    __table_args__ = (
        Index("ix_workspace_binding_code_code", "code"),
        Index("ix_workspace_binding_code_user_id", "user_id"),
    )
