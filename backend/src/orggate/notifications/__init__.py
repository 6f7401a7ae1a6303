"""Notifications to organization admins, queued once the caller commits."""

from .dispatcher import NotificationEvent, notify_org_admins

__all__ = ["NotificationEvent", "notify_org_admins"]
