"""Org model - Root entity for multi-tenant isolation"""

import re
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, Text, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, UTCDateTime, utcnow


class OrgStatus:
    """Lifecycle states of an organization."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class Org(Base):
    """
    Organization model - Root entity for the multi-tenant system.

    Each organization represents a distinct tenant with isolated data.
    Owned by the tenant directory; the engine only reads it outside of
    provisioning. Status and require_2fa gate every org context resolution.
    """
    __tablename__ = "org"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    status = Column(Text, nullable=False, default=OrgStatus.ACTIVE)
    require_2fa = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    memberships = relationship("Membership", back_populates="org")
    security_policy = relationship("SecurityPolicy", back_populates="org", uselist=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'suspended', 'archived')",
            name='ck_org_status'
        ),
    )

    @validates('slug')
    def validate_slug(self, key, value):
        """
        Ensure slug is URL-friendly and follows naming conventions.

        Pattern: ^[a-z0-9-]+$
        Valid: acme-solar, test-org-123
        Invalid: Acme_Solar, acme solar, acme.solar

        Raises:
            ValueError: If slug doesn't match pattern or length requirements
        """
        if not re.match(r'^[a-z0-9-]+$', value):
            raise ValueError(
                "Slug must contain only lowercase letters, numbers, and hyphens"
            )
        if len(value) < 2 or len(value) > 100:
            raise ValueError("Slug must be between 2 and 100 characters")
        return value

    @validates('name')
    def validate_name(self, key, value):
        """
        Ensure organization name is not empty and within length limits.

        Raises:
            ValueError: If name is empty/whitespace or exceeds 200 characters
        """
        if not value or len(value.strip()) == 0:
            raise ValueError("Organization name cannot be empty")
        if len(value) > 200:
            raise ValueError("Organization name cannot exceed 200 characters")
        return value.strip()

    @property
    def is_active(self) -> bool:
        return self.status == OrgStatus.ACTIVE

    def __repr__(self):
        return f"<Org(id={self.id}, slug='{self.slug}', status='{self.status}')>"
