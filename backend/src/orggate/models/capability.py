"""Capability registry models"""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow


class Capability(Base):
    """Global capability definition.

    capability_id is a dotted namespaced key (e.g. "kiisha.ticket.create"),
    treated as opaque and stable. Rows are seeded from the built-in catalog
    and only change through administrative action.
    """
    __tablename__ = "capability"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    capability_id = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=False)
    risk_level = Column(Text, nullable=False, default="low")
    requires_approval = Column(Boolean, nullable=False, default=False)
    requires_2fa = Column(Boolean, nullable=False, default=False)
    requires_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_built_in = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "category IN ('channel', 'query', 'document', 'operation', 'browser', 'skill', 'cron', 'payment')",
            name='ck_capability_category'
        ),
        CheckConstraint(
            "risk_level IN ('low', 'medium', 'high', 'critical')",
            name='ck_capability_risk_level'
        ),
    )

    def __repr__(self):
        return f"<Capability(capability_id='{self.capability_id}', risk='{self.risk_level}')>"


class OrgCapability(Base):
    """Per-organization enablement, approval policy and quota of a capability.

    current_daily_usage / current_monthly_usage are only changed by the atomic
    increment in capabilities.registry and by the periodic reset jobs.
    """
    __tablename__ = "org_capability"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    capability_id = Column(Text, ForeignKey("capability.capability_id", ondelete="CASCADE"), nullable=False)
    enabled = Column(Boolean, nullable=False, default=False)
    approval_policy = Column(Text, nullable=False, default="inherit")
    daily_limit = Column(Integer, nullable=True)
    monthly_limit = Column(Integer, nullable=True)
    current_daily_usage = Column(Integer, nullable=False, default=0)
    current_monthly_usage = Column(Integer, nullable=False, default=0)
    enabled_by = Column(Uuid(as_uuid=True), nullable=True)
    enabled_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    capability = relationship("Capability")

    __table_args__ = (
        UniqueConstraint('organization_id', 'capability_id', name='uq_org_capability'),
        CheckConstraint(
            "approval_policy IN ('inherit', 'always', 'never')",
            name='ck_org_capability_approval_policy'
        ),
        Index("ix_org_capability_org_id", "organization_id"),
    )
