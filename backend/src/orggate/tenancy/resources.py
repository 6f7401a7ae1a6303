"""Resource access verification.

Each protected resource type knows how to find its owning organization.
Access is granted only when that owner equals the context's organization;
a foreign resource and a missing one produce the same NOT_FOUND error.
"""

from enum import Enum
from typing import Callable, Dict, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models.resources import Asset, DataRoom, Document, Project, ViewScope
from ..observability.logging_config import get_logger
from .context import OrgContext

logger = get_logger(__name__)


class ResourceType(str, Enum):
    PROJECT = "project"
    DOCUMENT = "document"
    ASSET = "asset"
    VIEW = "view"
    DATAROOM = "dataroom"


def _project_owner(db: Session, project_id: Optional[UUID]) -> Optional[UUID]:
    if project_id is None:
        return None
    project = db.get(Project, project_id)
    return project.organization_id if project else None


def _document_owner(db: Session, resource_id: UUID) -> Optional[UUID]:
    document = db.get(Document, resource_id)
    if document is None:
        return None
    return _project_owner(db, document.project_id)


def _asset_owner(db: Session, resource_id: UUID) -> Optional[UUID]:
    asset = db.get(Asset, resource_id)
    if asset is None:
        return None
    if asset.organization_id is not None:
        return asset.organization_id
    return _project_owner(db, asset.project_id)


def _direct_owner(model) -> Callable[[Session, UUID], Optional[UUID]]:
    def resolve(db: Session, resource_id: UUID) -> Optional[UUID]:
        record = db.get(model, resource_id)
        return record.organization_id if record else None
    return resolve


# Closed set of resource variants; anything else is denied
OWNER_RESOLVERS: Dict[ResourceType, Callable[[Session, UUID], Optional[UUID]]] = {
    ResourceType.PROJECT: _project_owner,
    ResourceType.DOCUMENT: _document_owner,
    ResourceType.ASSET: _asset_owner,
    ResourceType.VIEW: _direct_owner(ViewScope),
    ResourceType.DATAROOM: _direct_owner(DataRoom),
}


def owning_org_id(
    db: Session,
    resource_type: Union[ResourceType, str],
    resource_id: Union[UUID, str],
) -> Optional[UUID]:
    """Return the organization owning a resource, or None if unknown/missing."""
    try:
        kind = ResourceType(resource_type)
        rid = resource_id if isinstance(resource_id, UUID) else UUID(str(resource_id))
    except ValueError:
        return None
    return OWNER_RESOLVERS[kind](db, rid)


def verify_resource_access(
    db: Session,
    ctx: OrgContext,
    resource_type: Union[ResourceType, str],
    resource_id: Union[UUID, str],
) -> bool:
    """True only if the resource exists and belongs to ctx.organization_id."""
    owner = owning_org_id(db, resource_type, resource_id)
    return owner is not None and owner == ctx.organization_id


def assert_resource_access(
    db: Session,
    ctx: OrgContext,
    resource_type: Union[ResourceType, str],
    resource_id: Union[UUID, str],
) -> None:
    """Raise NotFoundError unless verify_resource_access holds.

    The error is identical for missing and foreign resources.
    """
    if not verify_resource_access(db, ctx, resource_type, resource_id):
        logger.info(
            "Resource access denied",
            extra={"org_id": ctx.organization_id, "user_id": ctx.user.id, "reason": f"{resource_type}_not_visible"},
        )
        raise NotFoundError(reason="not_owned_or_missing")
