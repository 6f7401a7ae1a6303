"""Channel workspace resolution.

Resolves which organization an inbound WhatsApp / email message belongs to.

Resolution rules (first match wins):
1. Identifier scoped to a specific org -> that org
2. Per-channel default from the user's workspace preferences
3. Organization already bound to the conversation thread
4. The user's only active membership in an active org
5. Otherwise ambiguous (or unresolved without any active membership)

Rules 1-3 only apply while the org is active and the user still holds an
active membership in it.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.conversation_session import ConversationSession
from ..models.workspace_preferences import UserWorkspacePreferences
from ..observability.logging_config import get_logger
from ..observability.metrics import channel_workspace_resolutions_total
from ..tenancy import directory

logger = get_logger(__name__)


class ResolutionMethod:
    IDENTIFIER_SCOPED = "identifier_scoped"
    CHANNEL_DEFAULT = "channel_default"
    THREAD_BINDING = "thread_binding"
    SINGLE_ORG = "single_org"


@dataclass
class Resolved:
    org_id: UUID
    slug: str
    role: str
    method: str


@dataclass
class Ambiguous:
    """Several candidate orgs. Candidates are for internal use only and must
    never be rendered into a channel response."""
    candidates: List[UUID] = field(default_factory=list)


@dataclass
class Unresolved:
    reason: str


WorkspaceResolution = Union[Resolved, Ambiguous, Unresolved]


def get_thread_session(
    db: Session,
    user_id: UUID,
    channel: str,
    channel_thread_id: str,
) -> Optional[ConversationSession]:
    return db.query(ConversationSession).filter(
        ConversationSession.user_id == user_id,
        ConversationSession.channel == channel,
        ConversationSession.channel_thread_id == channel_thread_id,
    ).order_by(ConversationSession.created_at.desc()).first()


def _resolve_candidate(db: Session, user_id: UUID, org_id: Optional[UUID], method: str) -> Optional[Resolved]:
    if org_id is None:
        return None
    role = directory.get_active_role_in_active_org(db, user_id, org_id)
    if role is None:
        return None
    org = directory.get_org(db, org_id)
    return Resolved(org_id=org_id, slug=org.slug, role=role, method=method)


def _record(channel: str, resolution: WorkspaceResolution) -> WorkspaceResolution:
    if isinstance(resolution, Resolved):
        outcome = resolution.method
    elif isinstance(resolution, Ambiguous):
        outcome = "ambiguous"
    else:
        outcome = "unresolved"
    channel_workspace_resolutions_total.labels(channel=channel, outcome=outcome).inc()
    return resolution


def resolve_workspace_for_channel(
    db: Session,
    user_id: UUID,
    channel: str,
    channel_thread_id: Optional[str] = None,
    identifier_org_id: Optional[UUID] = None,
) -> WorkspaceResolution:
    """Resolve the workspace for an inbound channel message.

    Args:
        db: Database session
        user_id: Sender, already identified by channel identity
        channel: "whatsapp" or "email"
        channel_thread_id: Conversation thread, if the channel has threads
        identifier_org_id: Org the sender's identifier is scoped to, if any

    Returns:
        Resolved, Ambiguous or Unresolved
    """
    resolved = _resolve_candidate(db, user_id, identifier_org_id, ResolutionMethod.IDENTIFIER_SCOPED)
    if resolved:
        return _record(channel, resolved)

    prefs = db.get(UserWorkspacePreferences, user_id)
    if prefs is not None:
        resolved = _resolve_candidate(
            db, user_id, prefs.default_for_channel(channel), ResolutionMethod.CHANNEL_DEFAULT
        )
        if resolved:
            return _record(channel, resolved)

    if channel_thread_id:
        session = get_thread_session(db, user_id, channel, channel_thread_id)
        if session is not None:
            resolved = _resolve_candidate(
                db, user_id, session.organization_id, ResolutionMethod.THREAD_BINDING
            )
            if resolved:
                return _record(channel, resolved)

    memberships = directory.get_active_memberships(db, user_id)
    if not memberships:
        return _record(channel, Unresolved(reason="no_active_memberships"))

    candidates = [m for m in memberships if m.org is not None and m.org.is_active]
    if not candidates:
        return _record(channel, Unresolved(reason="no_active_organizations"))

    if len(candidates) == 1:
        membership = candidates[0]
        return _record(channel, Resolved(
            org_id=membership.organization_id,
            slug=membership.org.slug,
            role=membership.role,
            method=ResolutionMethod.SINGLE_ORG,
        ))

    logger.info(
        "Channel workspace ambiguous",
        extra={"user_id": user_id, "channel": channel, "reason": "multiple_memberships"},
    )
    return _record(channel, Ambiguous(candidates=[m.organization_id for m in candidates]))
