"""Prometheus metrics for tenant resolution and authorization.

Label values are bounded enums (methods, outcomes, reasons); org and user
ids are never used as labels.
"""

from prometheus_client import Counter

org_context_resolutions_total = Counter(
    "orggate_org_context_resolutions_total",
    "Org context resolution outcomes",
    ["method", "outcome"]  # method: hint|session|single_membership|lobby|switch|none, outcome: resolved|forbidden|no_membership|bad_request
)

channel_workspace_resolutions_total = Counter(
    "orggate_channel_workspace_resolutions_total",
    "Channel workspace resolution outcomes",
    ["channel", "outcome"]  # outcome: identifier_scoped|channel_default|thread_binding|single_org|ambiguous|unresolved
)

capability_decisions_total = Counter(
    "orggate_capability_decisions_total",
    "Capability access decisions",
    ["category", "decision"]  # decision: allowed|pending_approval|denied
)

capability_usage_increments_total = Counter(
    "orggate_capability_usage_increments_total",
    "Capability usage increments",
    ["status"]  # status: applied|limit_reached
)

approval_transitions_total = Counter(
    "orggate_approval_transitions_total",
    "Approval request state transitions",
    ["to_status"]  # pending|approved|rejected|expired
)

binding_code_events_total = Counter(
    "orggate_binding_code_events_total",
    "Workspace binding code lifecycle events",
    ["event"]  # generated|redeemed|rejected
)

rate_limit_rejections_total = Counter(
    "orggate_rate_limit_rejections_total",
    "Invocations rejected by per-org global rate limits",
    ["window"]  # minute|day
)

http_requests_total = Counter(
    "orggate_http_requests_total",
    "HTTP requests handled",
    ["method", "status_class"]  # status_class: 2xx|3xx|4xx|5xx
)
