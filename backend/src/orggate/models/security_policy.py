"""SecurityPolicy model - per-organization automation policy"""

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, UTCDateTime, utcnow

DEFAULT_ALLOWED_CHANNELS = ["whatsapp", "telegram", "slack", "webchat", "email"]


class SecurityPolicy(Base):
    """Per-organization security policy, one row per org.

    Created with organization-safe defaults at tenant provisioning and read on
    every capability check.

    allowed_hours, when set, has the shape:
        {"start": "08:00", "end": "18:00", "timezone": "Africa/Lagos",
         "days_of_week": [1, 2, 3, 4, 5]}
    with days counted from Sunday = 0.
    """
    __tablename__ = "security_policy"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False, unique=True)
    allowed_channels = Column(PortableJSONB, nullable=False, default=lambda: list(DEFAULT_ALLOWED_CHANNELS))
    allowed_hours = Column(PortableJSONB, nullable=True)
    require_pairing = Column(Boolean, nullable=False, default=True)
    export_requires_approval = Column(Boolean, nullable=False, default=True)
    browser_automation_allowed = Column(Boolean, nullable=False, default=False)
    shell_execution_allowed = Column(Boolean, nullable=False, default=False)
    file_upload_allowed = Column(Boolean, nullable=False, default=True)
    global_rate_limit_per_minute = Column(Integer, nullable=True, default=60)
    global_rate_limit_per_day = Column(Integer, nullable=True, default=1000)
    retain_conversations_for_days = Column(Integer, nullable=False, default=365)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    org = relationship("Org", back_populates="security_policy")
