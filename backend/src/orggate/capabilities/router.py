"""Capabilities API router.

Endpoints used by the agent runtime (check, invoke, usage) and by org
admins (list, update).
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..tenancy.dependencies import CurrentOrgContext, OrgAdminContext
from .gateway import authorize_invocation, record_successful_invocation
from .registry import check_capability_access, list_org_capabilities, update_org_capability
from .schemas import (
    CapabilityAccessResponse,
    CapabilityCheckRequest,
    CapabilityResponse,
    InvocationDecisionResponse,
    InvokeRequest,
    OrgCapabilityUpdate,
    UsageRequest,
    UsageResponse,
)

router = APIRouter(prefix="/capabilities", tags=["Capabilities"])


def _to_response(row) -> CapabilityResponse:
    capability = row.capability
    return CapabilityResponse(
        capability_id=row.capability_id,
        name=capability.name,
        description=capability.description,
        category=capability.category,
        risk_level=capability.risk_level,
        requires_approval=capability.requires_approval,
        requires_2fa=capability.requires_2fa,
        requires_admin=capability.requires_admin,
        enabled=row.enabled,
        approval_policy=row.approval_policy,
        daily_limit=row.daily_limit,
        monthly_limit=row.monthly_limit,
        current_daily_usage=row.current_daily_usage,
        current_monthly_usage=row.current_monthly_usage,
    )


@router.get("", response_model=List[CapabilityResponse])
def list_capabilities(ctx: CurrentOrgContext, db: Session = Depends(get_db)):
    return [_to_response(row) for row in list_org_capabilities(db, ctx.organization_id)]


@router.post("/check", response_model=CapabilityAccessResponse)
def check_capability(body: CapabilityCheckRequest, ctx: CurrentOrgContext, db: Session = Depends(get_db)):
    """Evaluate access without side effects."""
    result = check_capability_access(db, ctx.organization_id, ctx.user.id, body.capability_id)
    return CapabilityAccessResponse.model_validate(result)


@router.post("/invoke", response_model=InvocationDecisionResponse)
def invoke_capability(body: InvokeRequest, ctx: CurrentOrgContext, db: Session = Depends(get_db)):
    """Authorize an invocation; creates an approval request when one is required."""
    decision = authorize_invocation(
        db,
        ctx,
        body.capability_id,
        body.task_spec,
        summary=body.summary,
        channel=body.channel,
    )
    db.commit()
    return InvocationDecisionResponse.model_validate(decision)


@router.post("/usage", response_model=UsageResponse)
def record_usage(body: UsageRequest, ctx: CurrentOrgContext, db: Session = Depends(get_db)):
    """Count a completed invocation against the org's quotas."""
    recorded = record_successful_invocation(db, ctx, body.capability_id)
    db.commit()
    return UsageResponse(capability_id=body.capability_id, recorded=recorded)


@router.patch("/{capability_id}", response_model=CapabilityResponse)
def update_capability(
    capability_id: str,
    body: OrgCapabilityUpdate,
    ctx: OrgAdminContext,
    db: Session = Depends(get_db),
):
    """Change enablement, approval policy or limits (org admin only)."""
    changes = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field in ("daily_limit", "monthly_limit")
    }
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No changes supplied")

    row = update_org_capability(db, ctx.organization_id, capability_id, changes, actor_id=ctx.user.id)
    db.commit()
    db.refresh(row)
    return _to_response(row)
