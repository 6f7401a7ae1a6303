"""Celery task expiring overdue approval requests."""

import logging
from typing import Any, Dict

from celery import shared_task

from ..database import get_db_session
from .service import expire_stale_approval_requests

logger = logging.getLogger(__name__)


def run_expire_stale() -> Dict[str, Any]:
    with get_db_session() as db:
        expired = expire_stale_approval_requests(db)
    return {"status": "completed", "expired": expired}


@shared_task(name="approvals.expire_stale")
def expire_stale_approvals_task() -> Dict[str, Any]:
    """Sweep pending requests whose 24h deadline has passed.

    Safe to run concurrently with approver responses: each flip is a
    conditional update on status = 'pending'.
    """
    return run_expire_stale()
