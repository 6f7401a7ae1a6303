"""Capability invocation gateway.

Entry point for the agent runtime: decides whether a concrete invocation
may run now, must wait for an approver, or is denied. Runs in order:

1. lobby contexts are denied
2. security policy flags (channel allow-list, browser automation, shell
   execution, file upload)
3. per-org global rate limits (Redis, degrades open); only invocations
   that end up allowed or pending approval are counted
4. check_capability_access
5. second factor for capabilities that require one
6. approval hand-off: pending_approval with a new ApprovalRequest, or allowed

Usage is counted separately by record_successful_invocation once the
runtime reports success.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..approvals.schemas import ApprovalRequestInput, BrowserTask, DocumentTask, SkillTask
from ..approvals.service import create_approval_request
from ..observability.logging_config import get_logger
from ..observability.metrics import capability_decisions_total
from ..tenancy import directory
from ..tenancy.context import OrgContext
from .catalog import CapabilityCategory
from .rate_limit import OrgRateLimiter, get_rate_limiter
from .registry import CapabilityAccessResult, check_capability_access, get_capability, increment_capability_usage

logger = get_logger(__name__)

EXPORT_CAPABILITY_ID = "kiisha.data.export"


class InvocationStatus:
    ALLOWED = "allowed"
    PENDING_APPROVAL = "pending_approval"
    DENIED = "denied"


class GatewayReasons:
    LOBBY = "Select a workspace before using this capability"
    CHANNEL_NOT_ALLOWED = "Channel not allowed for your organization"
    BROWSER_DISABLED = "Browser automation is disabled for your organization"
    SHELL_DISABLED = "Shell execution is disabled for your organization"
    UPLOAD_DISABLED = "File upload is disabled for your organization"
    RATE_LIMITED = "Rate limit exceeded"
    REQUIRES_2FA = "This capability requires two-factor authentication"


@dataclass
class InvocationDecision:
    status: str
    reason: Optional[str] = None
    access: Optional[CapabilityAccessResult] = None
    approval_request_id: Optional[str] = None
    expires_at: Optional[datetime] = None


def _deny(reason: str, category: str, access: Optional[CapabilityAccessResult] = None) -> InvocationDecision:
    capability_decisions_total.labels(category=category, decision=InvocationStatus.DENIED).inc()
    return InvocationDecision(status=InvocationStatus.DENIED, reason=reason, access=access)


def authorize_invocation(
    db: Session,
    ctx: OrgContext,
    capability_id: str,
    task_spec,
    summary: str = "",
    channel: Optional[str] = None,
    now: Optional[datetime] = None,
    rate_limiter: Optional[OrgRateLimiter] = None,
) -> InvocationDecision:
    """Authorize one capability invocation for the resolved org context.

    Args:
        db: Database session
        ctx: Resolved org context of the acting user
        capability_id: Capability being invoked
        task_spec: Typed task specification (approvals.schemas.TaskSpec)
        summary: Human readable summary shown to approvers
        channel: Channel the request arrived on, if any
        now: Evaluation time (defaults to the current UTC time)
        rate_limiter: Limiter override (defaults to the shared Redis limiter)

    Returns:
        InvocationDecision: allowed, pending_approval (with request id) or denied
    """
    capability = get_capability(db, capability_id)
    category = capability.category if capability else "unknown"
    log_extra = {"org_id": ctx.organization_id, "user_id": ctx.user.id, "capability_id": capability_id}

    if ctx.is_lobby:
        logger.info("Invocation denied", extra={**log_extra, "reason": "lobby_context"})
        return _deny(GatewayReasons.LOBBY, category)

    limiter = rate_limiter or get_rate_limiter()
    policy = directory.get_security_policy(db, ctx.organization_id)
    limits = (policy.global_rate_limit_per_minute, policy.global_rate_limit_per_day) if policy else (None, None)
    if policy is not None:
        if channel and channel not in (policy.allowed_channels or []):
            return _deny(GatewayReasons.CHANNEL_NOT_ALLOWED, category)
        is_browser = category == CapabilityCategory.BROWSER or isinstance(task_spec, BrowserTask)
        if is_browser and not policy.browser_automation_allowed:
            return _deny(GatewayReasons.BROWSER_DISABLED, category)
        if isinstance(task_spec, SkillTask) and task_spec.uses_shell and not policy.shell_execution_allowed:
            return _deny(GatewayReasons.SHELL_DISABLED, category)
        if isinstance(task_spec, DocumentTask) and task_spec.action == "upload" and not policy.file_upload_allowed:
            return _deny(GatewayReasons.UPLOAD_DISABLED, category)

        limit = limiter.check(ctx.organization_id, *limits)
        if limit.limited:
            logger.info("Invocation rate limited", extra={**log_extra, "reason": f"rate_limit_{limit.window}"})
            return _deny(GatewayReasons.RATE_LIMITED, category)

    access = check_capability_access(db, ctx.organization_id, ctx.user.id, capability_id, now=now)
    if not access.allowed:
        logger.info("Invocation denied", extra={**log_extra, "reason": access.reason})
        return _deny(access.reason, category, access)

    if access.requires_2fa and not ctx.user.totp_enabled:
        logger.info("Invocation denied", extra={**log_extra, "reason": "requires_2fa"})
        return _deny(GatewayReasons.REQUIRES_2FA, category, access)

    requires_approval = access.requires_approval
    if capability_id == EXPORT_CAPABILITY_ID and policy is not None and policy.export_requires_approval:
        requires_approval = True

    limiter.record(ctx.organization_id, *limits)
    if not requires_approval:
        capability_decisions_total.labels(category=category, decision=InvocationStatus.ALLOWED).inc()
        return InvocationDecision(status=InvocationStatus.ALLOWED, access=access)

    request = create_approval_request(
        db,
        ApprovalRequestInput(
            organization_id=ctx.organization_id,
            requested_by=ctx.user.id,
            capability_id=capability_id,
            channel=channel,
            task_spec=task_spec,
            summary=summary,
        ),
        now=now,
    )
    capability_decisions_total.labels(category=category, decision=InvocationStatus.PENDING_APPROVAL).inc()
    return InvocationDecision(
        status=InvocationStatus.PENDING_APPROVAL,
        access=access,
        approval_request_id=request.request_id,
        expires_at=request.expires_at,
    )


def record_successful_invocation(db: Session, ctx: OrgContext, capability_id: str) -> bool:
    """Count a completed invocation against the org's quotas."""
    return increment_capability_usage(db, ctx.organization_id, capability_id)
