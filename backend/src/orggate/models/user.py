"""User SQLAlchemy model"""

import re
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, UTCDateTime, utcnow


class User(Base):
    """User model representing an authenticated principal.

    A user may hold memberships in many organizations. active_org_id is the
    session-level workspace selection; totp_enabled records whether a second
    factor is enrolled (checked against Org.require_2fa).
    """
    __tablename__ = "user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="ACTIVE")
    totp_enabled = Column(Boolean, nullable=False, default=False)
    active_org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="SET NULL"), nullable=True)
    last_login_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    memberships = relationship("Membership", back_populates="user")
    active_org = relationship("Org", foreign_keys=[active_org_id])

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'DISABLED')",
            name='ck_user_status'
        ),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()
