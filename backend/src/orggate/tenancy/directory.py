"""Tenant directory lookups.

Read-only access to organizations, memberships and security policies. Every
authorization component goes through these helpers so that "active" means
the same thing everywhere.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import get_settings
from ..models.membership import Membership, MembershipStatus
from ..models.org import Org, OrgStatus
from ..models.security_policy import SecurityPolicy


def get_org(db: Session, org_id: UUID) -> Optional[Org]:
    return db.get(Org, org_id)


def get_org_by_slug(db: Session, slug: str) -> Optional[Org]:
    return db.query(Org).filter(Org.slug == slug).first()


def get_lobby_org(db: Session) -> Optional[Org]:
    """Return the configured lobby tenant, if any and active."""
    slug = get_settings().LOBBY_ORG_SLUG
    if not slug:
        return None
    org = get_org_by_slug(db, slug)
    if org is None or org.status != OrgStatus.ACTIVE:
        return None
    return org


def get_membership(db: Session, user_id: UUID, org_id: UUID) -> Optional[Membership]:
    """Return the membership row for (user, org) regardless of status."""
    return db.query(Membership).filter(
        Membership.user_id == user_id,
        Membership.organization_id == org_id,
    ).first()


def get_active_membership(db: Session, user_id: UUID, org_id: UUID) -> Optional[Membership]:
    return db.query(Membership).filter(
        Membership.user_id == user_id,
        Membership.organization_id == org_id,
        Membership.status == MembershipStatus.ACTIVE,
    ).first()


def get_active_memberships(db: Session, user_id: UUID) -> List[Membership]:
    """All active memberships of a user, oldest first."""
    return db.query(Membership).filter(
        Membership.user_id == user_id,
        Membership.status == MembershipStatus.ACTIVE,
    ).order_by(Membership.created_at.asc()).all()


def get_active_role_in_active_org(db: Session, user_id: UUID, org_id: UUID) -> Optional[str]:
    """Role of the user in org_id if both the membership and the org are active."""
    row = db.query(Membership.role).join(Org, Org.id == Membership.organization_id).filter(
        Membership.user_id == user_id,
        Membership.organization_id == org_id,
        Membership.status == MembershipStatus.ACTIVE,
        Org.status == OrgStatus.ACTIVE,
    ).first()
    return row[0] if row else None


def get_security_policy(db: Session, org_id: UUID) -> Optional[SecurityPolicy]:
    return db.query(SecurityPolicy).filter(SecurityPolicy.organization_id == org_id).first()
