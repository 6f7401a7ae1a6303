"""Workspace binding codes.

A binding code lets a user attach a WhatsApp / email chat to one workspace
without the channel ever displaying organization names. Codes are six
random digits, expire after 5-60 minutes and can be redeemed once, by the
user who generated them, on the channel they were restricted to (if any).
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_audit_event
from ..config import get_settings
from ..errors import ForbiddenError, InternalError
from ..models.binding_code import WorkspaceBindingCode
from ..models.user import User
from ..observability.logging_config import get_logger
from ..observability.metrics import binding_code_events_total
from ..tenancy import directory

logger = get_logger(__name__)

MIN_EXPIRY_MINUTES = 5
MAX_EXPIRY_MINUTES = 60
CODE_LENGTH = 6


def _utcnow(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def new_code() -> str:
    """Six digit, zero-padded code from a CSPRNG."""
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


def _live_code_exists(db: Session, code: str, now: datetime) -> bool:
    return db.query(WorkspaceBindingCode.id).filter(
        WorkspaceBindingCode.code == code,
        WorkspaceBindingCode.used_at.is_(None),
        WorkspaceBindingCode.expires_at > now,
    ).first() is not None


def generate_binding_code(
    db: Session,
    user: User,
    organization_id: UUID,
    channel: Optional[str] = None,
    expires_in_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> WorkspaceBindingCode:
    """Issue a binding code for one of the user's workspaces.

    Args:
        db: Database session
        user: Requesting user
        organization_id: Workspace the code binds to
        channel: Restrict redemption to this channel ("whatsapp" / "email")
        expires_in_minutes: Lifetime, 5-60 (default BINDING_CODE_DEFAULT_MINUTES)
        now: Issue time (defaults to the current UTC time)

    Raises:
        ForbiddenError: User holds no active membership in organization_id
        ValueError: Lifetime outside 5-60 minutes
        InternalError: No unused code found within BINDING_CODE_MAX_ATTEMPTS draws
    """
    settings = get_settings()
    now = _utcnow(now)
    if expires_in_minutes is None:
        expires_in_minutes = settings.BINDING_CODE_DEFAULT_MINUTES
    if not MIN_EXPIRY_MINUTES <= expires_in_minutes <= MAX_EXPIRY_MINUTES:
        raise ValueError(
            f"expires_in_minutes must be between {MIN_EXPIRY_MINUTES} and {MAX_EXPIRY_MINUTES}"
        )

    if directory.get_active_membership(db, user.id, organization_id) is None:
        logger.info(
            "Binding code denied",
            extra={"user_id": user.id, "org_id": organization_id, "reason": "membership_inactive"},
        )
        raise ForbiddenError(reason="membership_inactive")

    code = None
    for _ in range(settings.BINDING_CODE_MAX_ATTEMPTS):
        candidate = new_code()
        if not _live_code_exists(db, candidate, now):
            code = candidate
            break

    if code is None:
        logger.error(
            "Binding code space exhausted",
            extra={"user_id": user.id, "org_id": organization_id, "reason": "code_collision"},
        )
        raise InternalError(reason="code_collision")

    binding = WorkspaceBindingCode(
        code=code,
        user_id=user.id,
        organization_id=organization_id,
        channel=channel,
        expires_at=now + timedelta(minutes=expires_in_minutes),
        created_at=now,
    )
    db.add(binding)
    db.flush()

    log_audit_event(
        db=db,
        org_id=organization_id,
        action=AuditAction.BINDING_CODE_GENERATED,
        actor_id=user.id,
        entity_type="workspace_binding_code",
        entity_id=binding.id,
        metadata={"channel": channel, "expires_in_minutes": expires_in_minutes},
    )
    binding_code_events_total.labels(event="generated").inc()
    return binding


def list_binding_codes(db: Session, user_id: UUID, now: Optional[datetime] = None) -> List[WorkspaceBindingCode]:
    """Live (unused, unexpired) codes of a user, newest first."""
    now = _utcnow(now)
    return db.query(WorkspaceBindingCode).filter(
        WorkspaceBindingCode.user_id == user_id,
        WorkspaceBindingCode.used_at.is_(None),
        WorkspaceBindingCode.expires_at > now,
    ).order_by(WorkspaceBindingCode.created_at.desc()).all()


def _reject(code_reason: str, user_id: UUID, channel: str) -> None:
    binding_code_events_total.labels(event="rejected").inc()
    logger.info(
        "Binding code rejected",
        extra={"user_id": user_id, "channel": channel, "reason": code_reason},
    )


def use_binding_code(
    db: Session,
    code: str,
    user_id: UUID,
    channel: str,
    identifier: str,
    now: Optional[datetime] = None,
) -> Optional[WorkspaceBindingCode]:
    """Redeem a binding code.

    The code must exist, be unused and unexpired, belong to user_id and, if
    restricted, match channel. Consumption is a single conditional UPDATE,
    so a code succeeds exactly once even under concurrent redemption.

    Returns:
        The consumed code, or None on any failure (failures are not told apart)
    """
    now = _utcnow(now)
    binding = db.query(WorkspaceBindingCode).populate_existing().filter(
        WorkspaceBindingCode.code == code,
        WorkspaceBindingCode.used_at.is_(None),
    ).order_by(WorkspaceBindingCode.created_at.desc()).first()

    if binding is None:
        _reject("unknown_or_used", user_id, channel)
        return None
    if binding.expires_at <= now:
        _reject("expired", user_id, channel)
        return None
    if binding.user_id != user_id:
        _reject("other_user", user_id, channel)
        return None
    if binding.channel and binding.channel != channel:
        _reject("channel_mismatch", user_id, channel)
        return None
    if directory.get_active_role_in_active_org(db, user_id, binding.organization_id) is None:
        _reject("membership_inactive", user_id, channel)
        return None

    result = db.execute(
        update(WorkspaceBindingCode)
        .where(
            WorkspaceBindingCode.id == binding.id,
            WorkspaceBindingCode.used_at.is_(None),
        )
        .values(used_at=now, used_by_channel=channel, used_by_identifier=identifier)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        _reject("lost_race", user_id, channel)
        return None

    db.refresh(binding)
    log_audit_event(
        db=db,
        org_id=binding.organization_id,
        action=AuditAction.BINDING_CODE_REDEEMED,
        actor_id=user_id,
        entity_type="workspace_binding_code",
        entity_id=binding.id,
        metadata={"channel": channel},
    )
    binding_code_events_total.labels(event="redeemed").inc()
    return binding


def purge_binding_codes(db: Session, now: Optional[datetime] = None) -> int:
    """Delete codes, used or not, that expired more than BINDING_CODE_RETENTION_HOURS ago."""
    now = _utcnow(now)
    cutoff = now - timedelta(hours=get_settings().BINDING_CODE_RETENTION_HOURS)
    deleted = db.query(WorkspaceBindingCode).filter(
        WorkspaceBindingCode.expires_at < cutoff,
    ).delete(synchronize_session=False)
    if deleted:
        logger.info(f"Purged {deleted} binding codes")
    return deleted
