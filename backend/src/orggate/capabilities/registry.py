"""Capability registry service.

Risk tiers:
- low: no approval, enabled for new organizations
- medium: approval by default, disabled until an admin enables it
- high: approval and/or admin role required
- critical: approval, admin role and a second factor required

Checks are pure reads. Usage counters change only through the atomic
increment below and the periodic resets.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, joinedload

from ..audit.service import AuditAction, log_audit_event
from ..auth.roles import MembershipRole, has_permission
from ..errors import NotFoundError
from ..models.capability import Capability, OrgCapability
from ..models.org import Org
from ..models.security_policy import DEFAULT_ALLOWED_CHANNELS, SecurityPolicy
from ..observability.logging_config import get_logger
from ..observability.metrics import capability_usage_increments_total
from ..tenancy import directory
from .catalog import BUILT_IN_CAPABILITIES, RiskLevel
from .policy import is_within_allowed_hours, quota_exhausted, remaining, resolve_requires_approval

logger = get_logger(__name__)


class DenialReasons:
    NOT_FOUND = "Capability not found"
    DISABLED = "Capability is disabled system-wide"
    NOT_ENABLED = "Capability not enabled for your organization"
    DAILY_LIMIT = "Daily usage limit exceeded"
    MONTHLY_LIMIT = "Monthly usage limit exceeded"
    OUTSIDE_HOURS = "This capability is only available during allowed hours"
    REQUIRES_ADMIN = "This capability requires admin privileges"


@dataclass
class CapabilityAccessResult:
    allowed: bool
    requires_approval: bool = False
    requires_2fa: bool = False
    requires_admin: bool = False
    reason: Optional[str] = None
    daily_usage_remaining: Optional[int] = None
    monthly_usage_remaining: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _denied(reason: str, **kwargs) -> CapabilityAccessResult:
    return CapabilityAccessResult(allowed=False, reason=reason, **kwargs)


def get_capability(db: Session, capability_id: str) -> Optional[Capability]:
    return db.query(Capability).filter(Capability.capability_id == capability_id).first()


def get_org_capability(db: Session, org_id: UUID, capability_id: str) -> Optional[OrgCapability]:
    # populate_existing: counters may have moved under a bulk UPDATE
    return db.query(OrgCapability).populate_existing().filter(
        OrgCapability.organization_id == org_id,
        OrgCapability.capability_id == capability_id,
    ).first()


def check_capability_access(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    capability_id: str,
    now: Optional[datetime] = None,
) -> CapabilityAccessResult:
    """Evaluate whether a user of an org may invoke a capability now.

    Pipeline (first failure wins): capability exists and is active, enabled
    for the org, daily then monthly quota, allowed-hours window, approval
    policy, admin requirement. Never changes usage counters.
    """
    capability = get_capability(db, capability_id)
    if capability is None:
        return _denied(DenialReasons.NOT_FOUND)
    if not capability.is_active:
        return _denied(DenialReasons.DISABLED)

    org_capability = get_org_capability(db, org_id, capability_id)
    if org_capability is None or not org_capability.enabled:
        return _denied(DenialReasons.NOT_ENABLED)

    if quota_exhausted(org_capability.daily_limit, org_capability.current_daily_usage):
        return _denied(DenialReasons.DAILY_LIMIT, daily_usage_remaining=0)
    if quota_exhausted(org_capability.monthly_limit, org_capability.current_monthly_usage):
        return _denied(DenialReasons.MONTHLY_LIMIT, monthly_usage_remaining=0)

    policy = directory.get_security_policy(db, org_id)
    if policy is not None and not is_within_allowed_hours(policy.allowed_hours, now):
        return _denied(DenialReasons.OUTSIDE_HOURS)

    requires_approval = resolve_requires_approval(org_capability.approval_policy, capability.requires_approval)

    if capability.requires_admin:
        membership = directory.get_active_membership(db, user_id, org_id)
        if membership is None or not has_permission(MembershipRole(membership.role), MembershipRole.ADMIN):
            return _denied(DenialReasons.REQUIRES_ADMIN, requires_admin=True)

    return CapabilityAccessResult(
        allowed=True,
        requires_approval=requires_approval,
        requires_2fa=capability.requires_2fa,
        requires_admin=capability.requires_admin,
        daily_usage_remaining=remaining(org_capability.daily_limit, org_capability.current_daily_usage),
        monthly_usage_remaining=remaining(org_capability.monthly_limit, org_capability.current_monthly_usage),
    )


def increment_capability_usage(db: Session, org_id: UUID, capability_id: str) -> bool:
    """Atomically count one successful invocation.

    The limit test and the increment are one UPDATE statement, so
    concurrent invocations can never push usage past a limit.

    Returns:
        bool: False when a limit is reached or the org has no row for the capability
    """
    db.flush()
    result = db.execute(
        update(OrgCapability)
        .where(
            OrgCapability.organization_id == org_id,
            OrgCapability.capability_id == capability_id,
            or_(
                OrgCapability.daily_limit.is_(None),
                OrgCapability.current_daily_usage < OrgCapability.daily_limit,
            ),
            or_(
                OrgCapability.monthly_limit.is_(None),
                OrgCapability.current_monthly_usage < OrgCapability.monthly_limit,
            ),
        )
        .values(
            current_daily_usage=OrgCapability.current_daily_usage + 1,
            current_monthly_usage=OrgCapability.current_monthly_usage + 1,
        )
        .execution_options(synchronize_session=False)
    )
    applied = result.rowcount == 1
    capability_usage_increments_total.labels(status="applied" if applied else "limit_reached").inc()
    if not applied:
        logger.info(
            "Usage increment rejected",
            extra={"org_id": org_id, "capability_id": capability_id, "reason": "limit_reached_or_missing"},
        )
    return applied


def reset_daily_usage_counters(db: Session) -> int:
    """Zero every org's daily usage. Idempotent."""
    result = db.execute(
        update(OrgCapability)
        .values(current_daily_usage=0)
        .execution_options(synchronize_session=False)
    )
    logger.info(f"Daily usage counters reset ({result.rowcount} rows)")
    return result.rowcount


def reset_monthly_usage_counters(db: Session) -> int:
    """Zero every org's monthly usage. Idempotent."""
    result = db.execute(
        update(OrgCapability)
        .values(current_monthly_usage=0)
        .execution_options(synchronize_session=False)
    )
    logger.info(f"Monthly usage counters reset ({result.rowcount} rows)")
    return result.rowcount


def seed_capability_catalog(db: Session) -> int:
    """Upsert the built-in catalog.

    New capabilities are inserted; existing ones get their name and
    description refreshed. Risk flags of existing rows are left alone.

    Returns:
        int: Number of capabilities inserted
    """
    existing = {c.capability_id: c for c in db.query(Capability).all()}
    created = 0
    for definition in BUILT_IN_CAPABILITIES:
        capability = existing.get(definition.capability_id)
        if capability is None:
            db.add(Capability(
                capability_id=definition.capability_id,
                name=definition.name,
                description=definition.description,
                category=definition.category,
                risk_level=definition.risk_level,
                requires_approval=definition.requires_approval,
                requires_2fa=definition.requires_2fa,
                requires_admin=definition.requires_admin,
                is_active=True,
                is_built_in=True,
            ))
            created += 1
        else:
            capability.name = definition.name
            capability.description = definition.description
    db.flush()
    return created


def initialize_org_capabilities(db: Session, org_id: UUID) -> List[OrgCapability]:
    """Create an OrgCapability row for every active capability.

    Only low-risk capabilities start enabled; every row inherits the
    capability's approval default. Existing rows are kept as they are.
    """
    existing = {
        row.capability_id
        for row in db.query(OrgCapability).filter(OrgCapability.organization_id == org_id).all()
    }
    created = []
    for capability in db.query(Capability).filter(Capability.is_active.is_(True)).all():
        if capability.capability_id in existing:
            continue
        row = OrgCapability(
            organization_id=org_id,
            capability_id=capability.capability_id,
            enabled=capability.risk_level == RiskLevel.LOW,
            approval_policy="inherit",
        )
        db.add(row)
        created.append(row)
    db.flush()
    return created


def create_default_security_policy(db: Session, org_id: UUID) -> SecurityPolicy:
    """Create the org's security policy with safe defaults (idempotent)."""
    policy = directory.get_security_policy(db, org_id)
    if policy is not None:
        return policy

    policy = SecurityPolicy(
        organization_id=org_id,
        allowed_channels=list(DEFAULT_ALLOWED_CHANNELS),
        allowed_hours=None,
        require_pairing=True,
        export_requires_approval=True,
        browser_automation_allowed=False,
        shell_execution_allowed=False,
        file_upload_allowed=True,
        global_rate_limit_per_minute=60,
        global_rate_limit_per_day=1000,
        retain_conversations_for_days=365,
    )
    db.add(policy)
    db.flush()
    return policy


def provision_organization(
    db: Session,
    name: str,
    slug: str,
    require_2fa: bool = False,
    actor_id: Optional[UUID] = None,
) -> Org:
    """Create an organization with its security policy and capability rows.

    The caller owns the transaction; nothing is committed here.
    """
    org = Org(name=name, slug=slug, require_2fa=require_2fa)
    db.add(org)
    db.flush()

    create_default_security_policy(db, org.id)
    initialize_org_capabilities(db, org.id)

    log_audit_event(
        db=db,
        org_id=org.id,
        action=AuditAction.ORG_PROVISIONED,
        actor_id=actor_id,
        entity_type="org",
        entity_id=org.id,
        metadata={"slug": slug},
    )
    logger.info("Organization provisioned", extra={"org_id": org.id})
    return org


UPDATABLE_FIELDS = ("enabled", "approval_policy", "daily_limit", "monthly_limit")


def update_org_capability(
    db: Session,
    org_id: UUID,
    capability_id: str,
    changes: Dict[str, Any],
    actor_id: UUID,
) -> OrgCapability:
    """Apply an admin change to an org's capability settings.

    Args:
        changes: Subset of enabled / approval_policy / daily_limit /
            monthly_limit. A None limit means unlimited.

    Raises:
        NotFoundError: The org has no row for this capability
        ValueError: Unknown field in changes
    """
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported capability fields: {sorted(unknown)}")

    row = get_org_capability(db, org_id, capability_id)
    if row is None:
        raise NotFoundError(reason="org_capability_missing")

    before = {field: getattr(row, field) for field in changes}
    for field, value in changes.items():
        setattr(row, field, value)

    if changes.get("enabled") and not before.get("enabled"):
        row.enabled_by = actor_id
        row.enabled_at = datetime.now(timezone.utc)

    db.flush()

    log_audit_event(
        db=db,
        org_id=org_id,
        action=AuditAction.CAPABILITY_UPDATED,
        actor_id=actor_id,
        entity_type="org_capability",
        entity_id=capability_id,
        metadata={"before": before, "after": dict(changes)},
    )
    return row


def list_org_capabilities(db: Session, org_id: UUID) -> List[OrgCapability]:
    """All capability rows of an org with their definitions, by capability id."""
    return db.query(OrgCapability).options(
        joinedload(OrgCapability.capability)
    ).filter(
        OrgCapability.organization_id == org_id,
    ).order_by(OrgCapability.capability_id.asc()).all()
