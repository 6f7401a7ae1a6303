"""Org context resolution.

Binds an authenticated principal to exactly one organization per request.

Resolution order (first match wins):
1. Explicit org hint (X-Organization-Id / X-Organization-Slug header or subdomain)
2. The principal's session-level active_org_id
3. The principal's only active membership

Principals without any active membership fall back to the lobby tenant
(LOBBY_ORG_SLUG) with a fixed read-only reviewer role. Every denial raises
the same ForbiddenError("Access denied"); the internal reason is logged and
kept on the exception, never returned to the caller.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth.roles import MembershipRole, has_permission
from ..errors import BadRequestError, ForbiddenError, NoMembershipError
from ..models.membership import Membership
from ..models.org import Org, OrgStatus
from ..models.user import User
from ..observability.logging_config import get_logger
from ..observability.metrics import org_context_resolutions_total
from . import directory

logger = get_logger(__name__)


class ResolutionMethod:
    HINT = "hint"
    SESSION = "session"
    SINGLE_MEMBERSHIP = "single_membership"
    LOBBY = "lobby"


class DenialReason:
    HINT_NOT_MEMBER = "hint_not_member"
    MEMBERSHIP_INACTIVE = "membership_inactive"
    ORG_SUSPENDED = "org_suspended"
    ORG_ARCHIVED = "org_archived"
    REQUIRES_2FA = "requires_2fa"


@dataclass
class OrgHint:
    """Untrusted organization hint supplied by the client.

    org_id is kept as the raw header string; it is parsed during resolution
    so a malformed value is denied exactly like a foreign org.
    """
    org_id: Optional[str] = None
    org_slug: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.org_id and not self.org_slug


@dataclass
class OrgContext:
    """Tenant binding for one authenticated request."""
    user: User
    organization_id: UUID
    organization: Org
    membership_role: str
    is_org_admin: bool
    is_lobby: bool
    resolution_method: str
    membership: Optional[Membership] = None


def _resolve_hint(db: Session, hint: OrgHint) -> Optional[UUID]:
    if hint.org_id:
        try:
            return UUID(str(hint.org_id))
        except ValueError:
            return None
    org = directory.get_org_by_slug(db, hint.org_slug)
    return org.id if org else None


def _deny(reason: str, user: User, method: str, org_id: Optional[UUID] = None) -> ForbiddenError:
    logger.info(
        "Org context denied",
        extra={"reason": reason, "user_id": user.id, "org_id": org_id},
    )
    org_context_resolutions_total.labels(method=method, outcome="forbidden").inc()
    return ForbiddenError(reason=reason, organization_id=org_id)


def _lobby_context(db: Session, user: User) -> OrgContext:
    lobby = directory.get_lobby_org(db)
    if lobby is None:
        logger.info("No active membership and no lobby tenant", extra={"user_id": user.id})
        org_context_resolutions_total.labels(method="none", outcome="no_membership").inc()
        raise NoMembershipError(reason="no_membership")

    org_context_resolutions_total.labels(method=ResolutionMethod.LOBBY, outcome="resolved").inc()
    return OrgContext(
        user=user,
        organization_id=lobby.id,
        organization=lobby,
        membership_role=MembershipRole.REVIEWER.value,
        is_org_admin=False,
        is_lobby=True,
        resolution_method=ResolutionMethod.LOBBY,
    )


def resolve_org_context(db: Session, user: User, hint: Optional[OrgHint] = None) -> OrgContext:
    """Resolve the organization context for an authenticated principal.

    Args:
        db: Database session
        user: Authenticated principal
        hint: Optional explicit org hint (id or slug)

    Returns:
        OrgContext: The single tenant this request acts within

    Raises:
        NoMembershipError: No active membership and no lobby tenant configured
        BadRequestError: Several memberships and nothing selects one
        ForbiddenError: Candidate org fails membership, status or 2FA checks
    """
    active_memberships = directory.get_active_memberships(db, user.id)
    if not active_memberships:
        return _lobby_context(db, user)

    target_org_id: Optional[UUID] = None
    method: Optional[str] = None

    if hint is not None and not hint.is_empty():
        method = ResolutionMethod.HINT
        target_org_id = _resolve_hint(db, hint)
        if target_org_id is None:
            # Unknown or malformed hints are indistinguishable from foreign orgs
            raise _deny(DenialReason.HINT_NOT_MEMBER, user, method)
    elif user.active_org_id is not None:
        method = ResolutionMethod.SESSION
        target_org_id = user.active_org_id
    elif len(active_memberships) == 1:
        method = ResolutionMethod.SINGLE_MEMBERSHIP
        target_org_id = active_memberships[0].organization_id
    else:
        logger.info(
            "Org context ambiguous",
            extra={"user_id": user.id, "reason": "multiple_memberships"},
        )
        org_context_resolutions_total.labels(method="none", outcome="bad_request").inc()
        raise BadRequestError(reason="multiple_memberships")

    membership = next(
        (m for m in active_memberships if m.organization_id == target_org_id),
        None,
    )
    organization = directory.get_org(db, target_org_id)

    # Hard checks, in order
    if membership is None:
        if method == ResolutionMethod.HINT and directory.get_membership(db, user.id, target_org_id) is None:
            raise _deny(DenialReason.HINT_NOT_MEMBER, user, method)
        raise _deny(
            DenialReason.MEMBERSHIP_INACTIVE, user, method,
            org_id=organization.id if organization else None,
        )
    if organization is None:
        raise _deny(DenialReason.MEMBERSHIP_INACTIVE, user, method)
    if organization.status == OrgStatus.SUSPENDED:
        raise _deny(DenialReason.ORG_SUSPENDED, user, method, org_id=organization.id)
    if organization.status == OrgStatus.ARCHIVED:
        raise _deny(DenialReason.ORG_ARCHIVED, user, method, org_id=organization.id)
    if organization.require_2fa and not user.totp_enabled:
        raise _deny(DenialReason.REQUIRES_2FA, user, method, org_id=organization.id)

    org_context_resolutions_total.labels(method=method, outcome="resolved").inc()
    return OrgContext(
        user=user,
        organization_id=organization.id,
        organization=organization,
        membership_role=membership.role,
        is_org_admin=has_permission(MembershipRole(membership.role), MembershipRole.ADMIN),
        is_lobby=False,
        resolution_method=method,
        membership=membership,
    )


def check_org_entry(db: Session, user: User, org_id: UUID) -> Membership:
    """Run the membership, status and 2FA checks for switching into org_id.

    Used by workspace selection; raises the same uniform ForbiddenError as
    resolve_org_context.
    """
    membership = directory.get_active_membership(db, user.id, org_id)
    if membership is None:
        raise _deny(DenialReason.MEMBERSHIP_INACTIVE, user, "switch")
    organization = directory.get_org(db, org_id)
    if organization is None or organization.status == OrgStatus.ARCHIVED:
        raise _deny(DenialReason.ORG_ARCHIVED, user, "switch", org_id=org_id)
    if organization.status == OrgStatus.SUSPENDED:
        raise _deny(DenialReason.ORG_SUSPENDED, user, "switch", org_id=org_id)
    if organization.require_2fa and not user.totp_enabled:
        raise _deny(DenialReason.REQUIRES_2FA, user, "switch", org_id=org_id)
    return membership
