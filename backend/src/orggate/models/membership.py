"""Membership SQLAlchemy model"""

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow


class MembershipStatus:
    ACTIVE = "active"
    INVITED = "invited"
    REMOVED = "removed"


class Membership(Base):
    """Membership of a user in an organization.

    A user may hold many memberships; only rows with status 'active' count
    towards org context resolution, workspace selection and role checks.
    """
    __tablename__ = "membership"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    role = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=MembershipStatus.ACTIVE)
    invited_by = Column(Uuid(as_uuid=True), nullable=True)
    accepted_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="memberships")
    org = relationship("Org", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint('user_id', 'organization_id', name='uq_membership_user_org'),
        CheckConstraint(
            "role IN ('admin', 'editor', 'reviewer', 'viewer')",
            name='ck_membership_role'
        ),
        CheckConstraint(
            "status IN ('active', 'invited', 'removed')",
            name='ck_membership_status'
        ),
        Index("ix_membership_user_id", "user_id"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    def __repr__(self):
        return f"<Membership(user_id={self.user_id}, org={self.organization_id}, role='{self.role}', status='{self.status}')>"
