"""Resource access check endpoint.

GET /resources/{resource_type}/{resource_id}/access answers 200 for visible
resources and 404 "Resource not found" for everything else.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from .dependencies import CurrentOrgContext
from .resources import assert_resource_access

router = APIRouter(prefix="/resources", tags=["Resources"])


@router.get("/{resource_type}/{resource_id}/access")
def check_resource_access(
    resource_type: str,
    resource_id: str,
    ctx: CurrentOrgContext,
    db: Session = Depends(get_db),
):
    assert_resource_access(db, ctx, resource_type, resource_id)
    return {"resource_type": resource_type, "resource_id": resource_id, "access": True}
