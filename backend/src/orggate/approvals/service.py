"""Approval workflow service.

Creates approval requests for capability invocations that need a human
decision, and applies approve / reject / expire transitions.

Every transition is a single conditional UPDATE guarded by
status = 'pending'; the row count decides the winner when two responses
race, so a request is resolved exactly once.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_audit_event
from ..capabilities.catalog import CapabilityCategory, RiskLevel
from ..config import get_settings
from ..models.approval_request import ApprovalRequest
from ..models.capability import Capability
from ..notifications.dispatcher import NotificationEvent, notify_org_admins
from ..observability.logging_config import get_logger
from ..observability.metrics import approval_transitions_total
from .schemas import (
    ApprovalDetailResponse,
    ApprovalRequestInput,
    ApprovalSummaryResponse,
    AuditTrail,
    AuditTrailEntry,
    RiskAssessment,
    task_spec_adapter,
)
from .status import ApprovalStatus, can_transition, is_terminal, validate_transition

logger = get_logger(__name__)


class ApprovalError(Exception):
    """Raised when an approval response cannot be applied."""

    status_code = 409
    message = "Approval request cannot be processed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class ApprovalNotFoundError(ApprovalError):
    """Missing, or owned by another organization."""

    status_code = 404
    message = "Resource not found"


class ApprovalAlreadyProcessedError(ApprovalError):
    status_code = 409
    message = "Request has already been processed"


class ApprovalExpiredError(ApprovalError):
    status_code = 410
    message = "Request has expired"


def _utcnow(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def load_risk_assessment(request: ApprovalRequest) -> RiskAssessment:
    return RiskAssessment.model_validate(request.risk_assessment or {})


def load_audit_trail(request: ApprovalRequest) -> AuditTrail:
    return AuditTrail.model_validate(request.audit_trail or [])


def load_task_spec(request: ApprovalRequest):
    return task_spec_adapter.validate_python(request.task_spec)


def assess_risk(capability: Optional[Capability], data: ApprovalRequestInput) -> RiskAssessment:
    """Build the risk assessment shown to approvers.

    The level is inherited from the capability (medium when unknown); the
    task type contributes additional factors.
    """
    level = capability.risk_level if capability else RiskLevel.MEDIUM
    factors: List[str] = []
    potential_impact = ""

    if level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        factors.append("High-risk capability")

    task_type = data.task_spec.task_type
    if task_type == CapabilityCategory.BROWSER:
        factors.append("Browser automation involved")
    if task_type == CapabilityCategory.PAYMENT:
        factors.append("Financial transaction")
        potential_impact = "May result in financial charges"

    return RiskAssessment(level=level, factors=factors, potential_impact=potential_impact)


def create_approval_request(
    db: Session,
    data: ApprovalRequestInput,
    now: Optional[datetime] = None,
) -> ApprovalRequest:
    """Create a pending approval request and notify the org's admins.

    Args:
        db: Database session
        data: Validated request input (org, requester, capability, task spec)
        now: Creation time (defaults to the current UTC time)

    Returns:
        ApprovalRequest: The new pending request (expires after APPROVAL_TTL_HOURS)
    """
    now = _utcnow(now)
    capability = db.query(Capability).filter(Capability.capability_id == data.capability_id).first()
    risk = assess_risk(capability, data)

    trail = AuditTrail().append(
        AuditTrailEntry(action="created", actor_id=str(data.requested_by), timestamp=now)
    )

    request = ApprovalRequest(
        request_id=str(uuid.uuid4()),
        organization_id=data.organization_id,
        requested_by=data.requested_by,
        capability_id=data.capability_id,
        channel=data.channel,
        task_spec=task_spec_adapter.dump_python(data.task_spec, mode="json"),
        summary=data.summary,
        risk_assessment=risk.model_dump(mode="json"),
        status=ApprovalStatus.PENDING.value,
        audit_trail=trail.model_dump(mode="json"),
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(hours=get_settings().APPROVAL_TTL_HOURS),
    )
    db.add(request)
    db.flush()

    log_audit_event(
        db=db,
        org_id=data.organization_id,
        action=AuditAction.APPROVAL_REQUESTED,
        actor_id=data.requested_by,
        entity_type="approval_request",
        entity_id=request.request_id,
        metadata={"capability_id": data.capability_id, "risk_level": risk.level},
    )
    approval_transitions_total.labels(to_status=ApprovalStatus.PENDING.value).inc()
    logger.info(
        "Approval request created",
        extra={
            "org_id": data.organization_id,
            "capability_id": data.capability_id,
            "request_id_ref": request.request_id,
        },
    )

    notify_org_admins(
        db,
        data.organization_id,
        NotificationEvent.APPROVAL_REQUESTED,
        {
            "request_id": request.request_id,
            "capability_id": data.capability_id,
            "summary": data.summary,
            "risk_level": risk.level,
            "expires_at": request.expires_at.isoformat(),
        },
        exclude=data.requested_by,
    )

    return request


def _get_request(db: Session, request_id: str, organization_id: Optional[UUID]) -> Optional[ApprovalRequest]:
    query = db.query(ApprovalRequest).filter(ApprovalRequest.request_id == request_id)
    if organization_id is not None:
        query = query.filter(ApprovalRequest.organization_id == organization_id)
    return query.populate_existing().first()


def _mark_expired(db: Session, request: ApprovalRequest, now: datetime) -> bool:
    """Flip a pending request to expired; False if it already left pending."""
    if not can_transition(ApprovalStatus(request.status), ApprovalStatus.EXPIRED):
        return False
    trail = load_audit_trail(request).append(
        AuditTrailEntry(action="expired", timestamp=now)
    )
    result = db.execute(
        update(ApprovalRequest)
        .where(
            ApprovalRequest.id == request.id,
            ApprovalRequest.status == ApprovalStatus.PENDING.value,
        )
        .values(
            status=ApprovalStatus.EXPIRED.value,
            audit_trail=trail.model_dump(mode="json"),
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False

    db.refresh(request)
    log_audit_event(
        db=db,
        org_id=request.organization_id,
        action=AuditAction.APPROVAL_EXPIRED,
        entity_type="approval_request",
        entity_id=request.request_id,
    )
    approval_transitions_total.labels(to_status=ApprovalStatus.EXPIRED.value).inc()
    return True


def process_approval_response(
    db: Session,
    request_id: str,
    action: Literal["approve", "reject"],
    actor_id: UUID,
    reason: Optional[str] = None,
    organization_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> ApprovalRequest:
    """Approve or reject a pending request.

    Args:
        db: Database session
        request_id: Opaque request token
        action: "approve" or "reject"
        actor_id: Responding admin
        reason: Rejection reason / approval note
        organization_id: Restrict the lookup to this tenant
        now: Response time (defaults to the current UTC time)

    Returns:
        ApprovalRequest: The resolved request

    Raises:
        ApprovalNotFoundError: Unknown request or other tenant
        ApprovalAlreadyProcessedError: Request is no longer pending (or a concurrent response won)
        ApprovalExpiredError: Deadline passed; the request is flipped to expired first
    """
    now = _utcnow(now)
    request = _get_request(db, request_id, organization_id)
    if request is None:
        raise ApprovalNotFoundError()

    if is_terminal(ApprovalStatus(request.status)):
        raise ApprovalAlreadyProcessedError()

    if request.expires_at <= now:
        _mark_expired(db, request, now)
        raise ApprovalExpiredError()

    target = ApprovalStatus.APPROVED if action == "approve" else ApprovalStatus.REJECTED
    validate_transition(ApprovalStatus.PENDING, target)

    trail = load_audit_trail(request).append(
        AuditTrailEntry(action=target.value, actor_id=str(actor_id), timestamp=now, details=reason)
    )
    result = db.execute(
        update(ApprovalRequest)
        .where(
            ApprovalRequest.id == request.id,
            ApprovalRequest.status == ApprovalStatus.PENDING.value,
        )
        .values(
            status=target.value,
            approved_by=actor_id,
            approved_at=now,
            rejection_reason=reason if target == ApprovalStatus.REJECTED else None,
            audit_trail=trail.model_dump(mode="json"),
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info(
            "Approval response lost race",
            extra={"org_id": request.organization_id, "request_id_ref": request_id},
        )
        raise ApprovalAlreadyProcessedError()

    db.refresh(request)

    log_audit_event(
        db=db,
        org_id=request.organization_id,
        action=AuditAction.APPROVAL_APPROVED if target == ApprovalStatus.APPROVED else AuditAction.APPROVAL_REJECTED,
        actor_id=actor_id,
        entity_type="approval_request",
        entity_id=request.request_id,
        metadata={"capability_id": request.capability_id, "reason": reason},
    )
    approval_transitions_total.labels(to_status=target.value).inc()

    notify_org_admins(
        db,
        request.organization_id,
        NotificationEvent.APPROVAL_DECIDED,
        {"request_id": request.request_id, "status": target.value},
        exclude=actor_id,
    )

    return request


def get_pending_approvals(
    db: Session,
    org_id: UUID,
    limit: Optional[int] = None,
    for_user: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> List[ApprovalSummaryResponse]:
    """Outstanding (pending, unexpired) requests of an org, newest first."""
    now = _utcnow(now)
    query = db.query(ApprovalRequest).filter(
        ApprovalRequest.organization_id == org_id,
        ApprovalRequest.status == ApprovalStatus.PENDING.value,
        ApprovalRequest.expires_at > now,
    )
    if for_user is not None:
        query = query.filter(ApprovalRequest.requested_by == for_user)

    rows = query.order_by(ApprovalRequest.created_at.desc()).limit(
        limit or get_settings().APPROVAL_LIST_LIMIT
    ).all()

    return [
        ApprovalSummaryResponse(
            request_id=row.request_id,
            capability_id=row.capability_id,
            summary=row.summary or "",
            requested_by=row.requested_by,
            requested_at=row.created_at,
            expires_at=row.expires_at,
            risk_level=load_risk_assessment(row).level,
        )
        for row in rows
    ]


def get_approval_request(db: Session, org_id: UUID, request_id: str) -> ApprovalRequest:
    """Tenant-scoped detail lookup.

    Raises:
        ApprovalNotFoundError: Missing or owned by another org
    """
    request = _get_request(db, request_id, org_id)
    if request is None:
        raise ApprovalNotFoundError()
    return request


def to_detail(request: ApprovalRequest) -> ApprovalDetailResponse:
    return ApprovalDetailResponse(
        request_id=request.request_id,
        organization_id=request.organization_id,
        capability_id=request.capability_id,
        channel=request.channel,
        status=request.status,
        summary=request.summary or "",
        requested_by=request.requested_by,
        requested_at=request.created_at,
        expires_at=request.expires_at,
        approved_by=request.approved_by,
        approved_at=request.approved_at,
        rejection_reason=request.rejection_reason,
        task_spec=task_spec_adapter.dump_python(load_task_spec(request), mode="json"),
        risk_assessment=load_risk_assessment(request),
        audit_trail=list(load_audit_trail(request).root),
    )


def expire_stale_approval_requests(db: Session, now: Optional[datetime] = None) -> int:
    """Flip every overdue pending request to expired.

    Returns:
        int: Number of requests expired by this sweep
    """
    now = _utcnow(now)
    overdue = db.query(ApprovalRequest).filter(
        ApprovalRequest.status == ApprovalStatus.PENDING.value,
        ApprovalRequest.expires_at <= now,
    ).all()

    expired = sum(1 for request in overdue if _mark_expired(db, request, now))
    if expired:
        logger.info(f"Expired {expired} stale approval requests")
    return expired
