"""Conversation session binding."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.conversation_session import ConversationSession
from ..observability.logging_config import get_logger
from .resolver import get_thread_session

logger = get_logger(__name__)


def bind_session_to_org(session: ConversationSession, org_id: UUID) -> bool:
    """Point a session at org_id, dropping cached pointers if the org changes.

    Returns:
        bool: True when the bound organization changed
    """
    if session.organization_id == org_id:
        return False
    session.organization_id = org_id
    session.clear_pointers()
    return True


def ensure_conversation_session(
    db: Session,
    user_id: UUID,
    org_id: UUID,
    channel: str,
    identifier: Optional[str] = None,
    thread_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ConversationSession:
    """Create or rebind the conversation session for a channel thread.

    Threaded channels look the session up by thread and rebind it (clearing
    its pointers) when it belongs to another org. Threadless channels reuse
    the user's session for this org and channel. Otherwise a new session is
    created.
    """
    now = now or datetime.now(timezone.utc)

    if thread_id:
        session = get_thread_session(db, user_id, channel, thread_id)
        if session is not None and bind_session_to_org(session, org_id):
            logger.info(
                "Conversation session rebound",
                extra={"user_id": user_id, "org_id": org_id, "channel": channel},
            )
    else:
        session = db.query(ConversationSession).filter(
            ConversationSession.user_id == user_id,
            ConversationSession.organization_id == org_id,
            ConversationSession.channel == channel,
            ConversationSession.channel_thread_id.is_(None),
        ).first()

    if session is not None:
        session.last_message_at = now
        db.flush()
        return session

    session = ConversationSession(
        user_id=user_id,
        channel=channel,
        channel_identifier=identifier,
        channel_thread_id=thread_id,
        organization_id=org_id,
        last_message_at=now,
    )
    db.add(session)
    db.flush()
    return session
