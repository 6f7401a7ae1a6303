"""ConversationSession SQLAlchemy model"""

import uuid

from sqlalchemy import Column, ForeignKey, Index, Text, Uuid

from .base import Base, UTCDateTime, utcnow


class ConversationSession(Base):
    """Binding of a channel thread to an organization.

    The last_referenced_* columns cache the entities the conversation was
    last talking about. They belong to the bound organization and must be
    cleared whenever organization_id changes.
    """
    __tablename__ = "conversation_session"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    channel = Column(Text, nullable=False)
    channel_identifier = Column(Text, nullable=True)
    channel_thread_id = Column(Text, nullable=True)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="SET NULL"), nullable=True)
    last_referenced_entity_type = Column(Text, nullable=True)
    last_referenced_project_id = Column(Uuid(as_uuid=True), nullable=True)
    last_referenced_document_id = Column(Uuid(as_uuid=True), nullable=True)
    last_referenced_asset_id = Column(Uuid(as_uuid=True), nullable=True)
    last_message_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_conversation_session_thread", "user_id", "channel", "channel_thread_id"),
    )

    def clear_pointers(self) -> None:
        self.last_referenced_entity_type = None
        self.last_referenced_project_id = None
        self.last_referenced_document_id = None
        self.last_referenced_asset_id = None
