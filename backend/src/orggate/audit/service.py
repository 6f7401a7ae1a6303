"""Audit logging service for security events.

This service provides a centralized interface for creating immutable audit log
entries. All security-relevant events must be logged through this service.
"""

from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


class AuditAction:
    """Action names recorded in audit_log.action."""
    WORKSPACE_SWITCHED = "WORKSPACE_SWITCHED"
    WORKSPACE_DEFAULTS_UPDATED = "WORKSPACE_DEFAULTS_UPDATED"
    BINDING_CODE_GENERATED = "BINDING_CODE_GENERATED"
    BINDING_CODE_REDEEMED = "BINDING_CODE_REDEEMED"
    ORG_ACCESS_DENIED = "ORG_ACCESS_DENIED"
    CAPABILITY_UPDATED = "CAPABILITY_UPDATED"
    APPROVAL_REQUESTED = "APPROVAL_REQUESTED"
    APPROVAL_APPROVED = "APPROVAL_APPROVED"
    APPROVAL_REJECTED = "APPROVAL_REJECTED"
    APPROVAL_EXPIRED = "APPROVAL_EXPIRED"
    ORG_PROVISIONED = "ORG_PROVISIONED"


def log_audit_event(
    db: Session,
    org_id: UUID,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    Args:
        db: Database session
        org_id: Organization ID
        action: Event action (see AuditAction)
        actor_id: User who performed the action (None for system events)
        entity_type: Type of entity affected (e.g., "approval_request")
        entity_id: ID of affected entity, stored as text
        metadata: Additional context as JSON
        ip_address: Client IP address
        user_agent: Client User-Agent header

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=db,
            org_id=ctx.organization_id,
            action=AuditAction.APPROVAL_APPROVED,
            actor_id=admin.id,
            entity_type="approval_request",
            entity_id=request.request_id,
        )
    """
    audit_entry = AuditLog(
        org_id=org_id,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry


def request_client_info(request: Request) -> Tuple[Optional[str], Optional[str]]:
    """Client IP (first X-Forwarded-For hop when proxied) and User-Agent."""
    ip_address = request.client.host if request.client else None
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    return ip_address, request.headers.get("User-Agent")


def log_from_request(
    db: Session,
    request: Request,
    org_id: UUID,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Create audit log entry extracting IP and User-Agent from the request."""
    ip_address, user_agent = request_client_info(request)

    return log_audit_event(
        db=db,
        org_id=org_id,
        action=action,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )
