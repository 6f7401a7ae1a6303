"""AuditLog SQLAlchemy model"""

import uuid

from sqlalchemy import Column, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, UTCDateTime, utcnow


class AuditLog(Base):
    """AuditLog model for immutable security event logging.

    Records workspace switches, binding code redemptions, approval decisions,
    capability changes and org context denials. Entries are append-only.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_org_id", "org_id"),
        Index("ix_audit_log_org_id_created_at", "org_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    actor_id = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(Text, nullable=True)
    metadata_json = Column(PortableJSONB, nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    org = relationship("Org")
    actor = relationship("User")
