"""Celery tasks resetting capability usage counters.

Scheduled by Celery Beat (see workers.celery_app). Both resets are
idempotent full-table updates.
"""

import logging
from typing import Any, Dict

from celery import shared_task

from ..database import get_db_session
from .registry import reset_daily_usage_counters, reset_monthly_usage_counters

logger = logging.getLogger(__name__)


def run_daily_usage_reset() -> Dict[str, Any]:
    with get_db_session() as db:
        rows = reset_daily_usage_counters(db)
    return {"status": "completed", "rows": rows}


def run_monthly_usage_reset() -> Dict[str, Any]:
    with get_db_session() as db:
        rows = reset_monthly_usage_counters(db)
    return {"status": "completed", "rows": rows}


@shared_task(name="capabilities.reset_daily_usage")
def reset_daily_usage_task() -> Dict[str, Any]:
    logger.info("Daily usage reset task started")
    return run_daily_usage_reset()


@shared_task(name="capabilities.reset_monthly_usage")
def reset_monthly_usage_task() -> Dict[str, Any]:
    logger.info("Monthly usage reset task started")
    return run_monthly_usage_reset()
