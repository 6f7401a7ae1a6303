"""Celery application and Beat schedule.

Run a worker and the scheduler with:
    celery -A orggate.workers.celery_app worker --loglevel=INFO
    celery -A orggate.workers.celery_app beat --loglevel=INFO
"""

from celery import Celery
from celery.schedules import crontab

from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "orggate",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "orggate.capabilities.tasks",
        "orggate.approvals.tasks",
        "orggate.workspace.tasks",
        "orggate.notifications.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "capabilities-reset-daily-usage": {
        "task": "capabilities.reset_daily_usage",
        "schedule": crontab(hour=0, minute=0),  # 00:00 UTC
        "options": {"expires": 3600},
    },
    "capabilities-reset-monthly-usage": {
        "task": "capabilities.reset_monthly_usage",
        "schedule": crontab(day_of_month=1, hour=0, minute=5),
        "options": {"expires": 3600},
    },
    "approvals-expire-stale": {
        "task": "approvals.expire_stale",
        "schedule": settings.APPROVAL_SWEEP_INTERVAL_SECONDS,
    },
    "workspace-purge-binding-codes": {
        "task": "workspace.purge_binding_codes",
        "schedule": settings.BINDING_CODE_PURGE_INTERVAL_SECONDS,
    },
}
