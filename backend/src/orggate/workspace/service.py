"""Web workspace selection service.

A user with several memberships picks the active workspace for their web
session; the choice is stored on User.active_org_id and consumed by org
context resolution. Per-channel defaults feed channel workspace resolution.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_audit_event
from ..errors import ForbiddenError
from ..models.user import User
from ..models.workspace_preferences import UserWorkspacePreferences
from ..observability.logging_config import get_logger
from ..tenancy import directory
from ..tenancy.context import check_org_entry

logger = get_logger(__name__)

DEFAULT_FIELDS = ("default_org_id", "primary_org_id", "whatsapp_default_org_id", "email_default_org_id")


@dataclass
class MembershipSummary:
    organization_id: UUID
    organization_name: str
    organization_slug: str
    role: str
    status: str
    is_active: bool


@dataclass
class ActiveWorkspace:
    organization_id: UUID
    organization_slug: str
    organization_name: str
    role: str


def list_memberships(db: Session, user: User) -> List[MembershipSummary]:
    return [
        MembershipSummary(
            organization_id=m.organization_id,
            organization_name=m.org.name,
            organization_slug=m.org.slug,
            role=m.role,
            status=m.status,
            is_active=user.active_org_id == m.organization_id,
        )
        for m in directory.get_active_memberships(db, user.id)
    ]


def get_active_workspace(db: Session, user: User) -> Optional[ActiveWorkspace]:
    """The session's active workspace, or None when unset or no longer usable."""
    if user.active_org_id is None:
        return None
    role = directory.get_active_role_in_active_org(db, user.id, user.active_org_id)
    if role is None:
        return None
    org = directory.get_org(db, user.active_org_id)
    return ActiveWorkspace(
        organization_id=org.id,
        organization_slug=org.slug,
        organization_name=org.name,
        role=role,
    )


def _get_or_create_preferences(db: Session, user_id: UUID) -> UserWorkspacePreferences:
    prefs = db.get(UserWorkspacePreferences, user_id)
    if prefs is None:
        prefs = UserWorkspacePreferences(user_id=user_id)
        db.add(prefs)
    return prefs


def set_active_workspace(
    db: Session,
    user: User,
    organization_id: UUID,
    switch_method: str = "switcher",
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ActiveWorkspace:
    """Switch the user's web session into organization_id.

    Raises:
        ForbiddenError: Not an active member, org not active, or the org
            requires 2FA the user has not enrolled (indistinguishable)
    """
    membership = check_org_entry(db, user, organization_id)

    previous_org_id = user.active_org_id
    user.active_org_id = organization_id
    _get_or_create_preferences(db, user.id).web_last_active_org_id = organization_id
    db.flush()

    log_audit_event(
        db=db,
        org_id=organization_id,
        action=AuditAction.WORKSPACE_SWITCHED,
        actor_id=user.id,
        entity_type="org",
        entity_id=organization_id,
        metadata={
            "from_org_id": str(previous_org_id) if previous_org_id else None,
            "channel": "web",
            "switch_method": switch_method,
        },
        ip_address=ip_address,
        user_agent=user_agent,
    )
    logger.info("Workspace switched", extra={"user_id": user.id, "org_id": organization_id})

    org = membership.org
    return ActiveWorkspace(
        organization_id=org.id,
        organization_slug=org.slug,
        organization_name=org.name,
        role=membership.role,
    )


def get_workspace_defaults(db: Session, user_id: UUID) -> Dict[str, Optional[UUID]]:
    prefs = db.get(UserWorkspacePreferences, user_id)
    return {field: getattr(prefs, field) if prefs else None for field in DEFAULT_FIELDS}


def set_workspace_defaults(db: Session, user: User, changes: Dict[str, Optional[UUID]]) -> Dict[str, Optional[UUID]]:
    """Update default workspaces. Every org id set must be an active membership.

    A None value clears that default.

    Raises:
        ForbiddenError: Any org id the user is not an active member of
        ValueError: Unknown field in changes
    """
    unknown = set(changes) - set(DEFAULT_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported workspace default fields: {sorted(unknown)}")

    for org_id in changes.values():
        if org_id is not None and directory.get_active_membership(db, user.id, org_id) is None:
            logger.info(
                "Workspace default denied",
                extra={"user_id": user.id, "reason": "membership_inactive"},
            )
            raise ForbiddenError(reason="membership_inactive")

    prefs = _get_or_create_preferences(db, user.id)
    for field, value in changes.items():
        setattr(prefs, field, value)
    db.flush()

    for org_id in {value for value in changes.values() if value is not None}:
        log_audit_event(
            db=db,
            org_id=org_id,
            action=AuditAction.WORKSPACE_DEFAULTS_UPDATED,
            actor_id=user.id,
            entity_type="user",
            entity_id=user.id,
            metadata={"fields": sorted(field for field, value in changes.items() if value == org_id)},
        )
    return get_workspace_defaults(db, user.id)
