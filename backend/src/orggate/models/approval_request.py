"""ApprovalRequest SQLAlchemy model"""

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, UTCDateTime, utcnow


class ApprovalRequest(Base):
    """Time-boxed human approval request for a capability invocation.

    task_spec, risk_assessment and audit_trail hold serialized typed records
    (see approvals.schemas); they are validated on read and never patched in
    place. Rows are terminal once status leaves 'pending'.
    """
    __tablename__ = "approval_request"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(Text, nullable=False, unique=True)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    requested_by = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    capability_id = Column(Text, nullable=False)
    channel = Column(Text, nullable=True)
    task_spec = Column(PortableJSONB, nullable=False)
    summary = Column(Text, nullable=False, default="")
    risk_assessment = Column(PortableJSONB, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    approved_by = Column(Uuid(as_uuid=True), nullable=True)
    approved_at = Column(UTCDateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    audit_trail = Column(PortableJSONB, nullable=False, default=list)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    expires_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    requester = relationship("User", foreign_keys=[requested_by])

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'expired')",
            name='ck_approval_request_status'
        ),
        Index("ix_approval_request_org_status", "organization_id", "status"),
        Index("ix_approval_request_org_created_at", "organization_id", "created_at"),
    )

    def __repr__(self):
        return f"<ApprovalRequest(request_id='{self.request_id}', status='{self.status}')>"
