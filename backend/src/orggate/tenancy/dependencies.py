"""FastAPI dependencies for org-scoped endpoints.

Usage:
    @router.get("/capabilities")
    def list_capabilities(ctx: OrgContext = Depends(get_org_context)):
        ...

    @router.patch("/capabilities/{capability_id}")
    def update(ctx: OrgContext = Depends(require_org_admin)):
        ...
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_from_request
from ..auth.dependencies import get_current_user
from ..database import get_db
from ..errors import ForbiddenError
from ..models.user import User
from ..observability.logging_config import get_logger
from .context import OrgContext, resolve_org_context
from .middleware import get_org_hint_from_request

logger = get_logger(__name__)


def get_org_context(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrgContext:
    """Resolve the request's org context.

    Denials against a known tenant are written to that tenant's audit log
    and committed before the error propagates.
    """
    try:
        ctx = resolve_org_context(db, current_user, get_org_hint_from_request(request))
    except ForbiddenError as e:
        if e.organization_id is not None:
            log_from_request(
                db=db,
                request=request,
                org_id=e.organization_id,
                action=AuditAction.ORG_ACCESS_DENIED,
                actor_id=current_user.id,
                entity_type="org",
                entity_id=e.organization_id,
                metadata={"reason": e.reason},
            )
            db.commit()
        raise

    request.state.org_id = ctx.organization_id
    return ctx


def require_org_admin(ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
    """Require the caller to be an admin of the resolved organization."""
    if not ctx.is_org_admin:
        logger.info(
            "Admin role required",
            extra={"org_id": ctx.organization_id, "user_id": ctx.user.id, "reason": "not_org_admin"},
        )
        raise ForbiddenError(reason="not_org_admin")
    return ctx


CurrentOrgContext = Annotated[OrgContext, Depends(get_org_context)]
OrgAdminContext = Annotated[OrgContext, Depends(require_org_admin)]
