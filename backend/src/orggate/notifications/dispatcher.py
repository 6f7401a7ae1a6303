"""Notification dispatch.

Callers hand events to notify_org_admins(); recipients are resolved in the
caller's session and the notification is held in session.info until that
session commits. Only then is delivery queued on the notifications.dispatch
Celery task; a rollback discards it. Dispatch is fire-and-forget: a failure
to enqueue is logged and never propagated.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.event import listens_for
from sqlalchemy.orm import Session, SessionTransaction

from ..models.membership import Membership, MembershipStatus
from ..observability.logging_config import get_logger

logger = get_logger(__name__)

PENDING_NOTIFICATIONS_KEY = "pending_notifications"


class NotificationEvent:
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_DECIDED = "approval_decided"


def get_org_admin_ids(db: Session, org_id: UUID, exclude: Optional[UUID] = None) -> List[UUID]:
    query = db.query(Membership.user_id).filter(
        Membership.organization_id == org_id,
        Membership.role == "admin",
        Membership.status == MembershipStatus.ACTIVE,
    )
    if exclude is not None:
        query = query.filter(Membership.user_id != exclude)
    return [row[0] for row in query.all()]


def enqueue_notification(org_id: str, event: str, recipient_ids: List[str], payload: Dict[str, Any]) -> None:
    """Queue delivery on the Celery worker."""
    from .tasks import dispatch_notification_task

    dispatch_notification_task.delay(
        org_id=org_id,
        event=event,
        recipient_ids=recipient_ids,
        payload=payload,
    )


def notify_org_admins(
    db: Session,
    org_id: UUID,
    event: str,
    payload: Dict[str, Any],
    exclude: Optional[UUID] = None,
) -> bool:
    """Notify every active admin of org_id about an event once db commits.

    Returns:
        bool: True if a notification is pending on the session
    """
    recipients = get_org_admin_ids(db, org_id, exclude=exclude)
    if not recipients:
        logger.info("No admins to notify", extra={"org_id": org_id})
        return False

    db.info.setdefault(PENDING_NOTIFICATIONS_KEY, []).append({
        "org_id": str(org_id),
        "event": event,
        "recipient_ids": [str(r) for r in recipients],
        "payload": payload,
    })
    return True


@listens_for(Session, "after_commit")
def _dispatch_after_commit(session: Session) -> None:
    for notification in session.info.pop(PENDING_NOTIFICATIONS_KEY, []):
        try:
            enqueue_notification(**notification)
        except Exception as e:
            logger.warning(
                f"Notification dispatch failed: {e}",
                extra={"org_id": notification["org_id"]},
            )


@listens_for(Session, "after_transaction_end")
def _discard_uncommitted(session: Session, transaction: SessionTransaction) -> None:
    # Runs after after_commit, so anything left here was never committed
    if transaction.parent is None:
        dropped = session.info.pop(PENDING_NOTIFICATIONS_KEY, [])
        if dropped:
            logger.info(f"Discarded {len(dropped)} notifications of a rolled back transaction")
