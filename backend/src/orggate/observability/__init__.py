"""Observability: structured logging, request IDs, metrics and health checks."""

from .correlation import get_request_id, set_request_id
from .logging_config import configure_logging, get_logger
from .metrics import (
    approval_transitions_total,
    binding_code_events_total,
    capability_decisions_total,
    capability_usage_increments_total,
    channel_workspace_resolutions_total,
    http_requests_total,
    org_context_resolutions_total,
    rate_limit_rejections_total,
)
from .middleware import RequestIDMiddleware

__all__ = [
    "configure_logging",
    "get_logger",
    "RequestIDMiddleware",
    "get_request_id",
    "set_request_id",
    "org_context_resolutions_total",
    "channel_workspace_resolutions_total",
    "capability_decisions_total",
    "capability_usage_increments_total",
    "approval_transitions_total",
    "binding_code_events_total",
    "rate_limit_rejections_total",
    "http_requests_total",
]
