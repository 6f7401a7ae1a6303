"""UserWorkspacePreferences SQLAlchemy model"""

from sqlalchemy import Column, ForeignKey, Uuid

from .base import Base, UTCDateTime, utcnow


class UserWorkspacePreferences(Base):
    """Per-user workspace defaults, one row per user.

    Channel defaults are kept per channel type so a user can route WhatsApp
    and email traffic to different organizations.
    """
    __tablename__ = "user_workspace_preferences"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)
    default_org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="SET NULL"), nullable=True)
    primary_org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="SET NULL"), nullable=True)
    whatsapp_default_org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="SET NULL"), nullable=True)
    email_default_org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="SET NULL"), nullable=True)
    web_last_active_org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def default_for_channel(self, channel: str):
        if channel == "whatsapp":
            return self.whatsapp_default_org_id
        if channel == "email":
            return self.email_default_org_id
        return None
