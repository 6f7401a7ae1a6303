"""Immutable audit log for security-relevant tenancy events."""

from .service import AuditAction, log_audit_event, log_from_request

__all__ = ["AuditAction", "log_audit_event", "log_from_request"]
