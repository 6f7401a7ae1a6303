"""Celery task purging stale workspace binding codes."""

import logging
from typing import Any, Dict

from celery import shared_task

from ..database import get_db_session
from .binding_codes import purge_binding_codes

logger = logging.getLogger(__name__)


def run_binding_code_purge() -> Dict[str, Any]:
    with get_db_session() as db:
        deleted = purge_binding_codes(db)
    return {"status": "completed", "deleted": deleted}


@shared_task(name="workspace.purge_binding_codes")
def purge_binding_codes_task() -> Dict[str, Any]:
    return run_binding_code_purge()
