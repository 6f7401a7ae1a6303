"""Tenancy: org context resolution and resource access verification.

Every authorized operation carries exactly one resolved organization_id.
Cross-tenant access is reported as "not found", never as "forbidden".
"""

from .context import OrgContext, OrgHint, resolve_org_context
from .resources import ResourceType, assert_resource_access, verify_resource_access

__all__ = [
    "OrgContext",
    "OrgHint",
    "resolve_org_context",
    "ResourceType",
    "verify_resource_access",
    "assert_resource_access",
]
