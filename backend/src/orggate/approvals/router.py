"""Approvals API router.

Pending approvals are visible to every member of the org; responding is
reserved to org admins. Unknown and foreign request ids are both 404.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..tenancy.dependencies import CurrentOrgContext, OrgAdminContext
from .schemas import (
    ApprovalDetailResponse,
    ApprovalRespondRequest,
    ApprovalRespondResponse,
    ApprovalSummaryResponse,
)
from .service import (
    ApprovalError,
    ApprovalExpiredError,
    get_approval_request,
    get_pending_approvals,
    process_approval_response,
    to_detail,
)

router = APIRouter(prefix="/approvals", tags=["Approvals"])


@router.get("", response_model=List[ApprovalSummaryResponse])
def list_pending_approvals(
    ctx: CurrentOrgContext,
    mine: bool = False,
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Outstanding requests of the current org, newest first."""
    return get_pending_approvals(
        db,
        ctx.organization_id,
        limit=limit,
        for_user=ctx.user.id if mine else None,
    )


@router.get("/{request_id}", response_model=ApprovalDetailResponse)
def get_approval(request_id: str, ctx: CurrentOrgContext, db: Session = Depends(get_db)):
    try:
        request = get_approval_request(db, ctx.organization_id, request_id)
    except ApprovalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return to_detail(request)


@router.post("/{request_id}/respond", response_model=ApprovalRespondResponse)
def respond_to_approval(
    request_id: str,
    body: ApprovalRespondRequest,
    ctx: OrgAdminContext,
    db: Session = Depends(get_db),
):
    """Approve or reject a pending request (org admin only).

    Returns 404 for unknown/foreign ids, 409 when already processed and 410
    once the request has expired (the expiry is persisted).
    """
    try:
        request = process_approval_response(
            db,
            request_id,
            body.action,
            actor_id=ctx.user.id,
            reason=body.reason,
            organization_id=ctx.organization_id,
        )
    except ApprovalExpiredError as e:
        db.commit()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except ApprovalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    db.commit()

    return ApprovalRespondResponse(
        request_id=request.request_id,
        status=request.status,
        approved_by=request.approved_by,
        approved_at=request.approved_at,
    )
