"""Membership roles and permission hierarchy.

Role Hierarchy (descending permissions):
- admin: manages capabilities, approves requests, full access
- editor: creates and changes tenant data
- reviewer: read access plus commenting (also the fixed lobby role)
- viewer: read-only access
"""

from enum import Enum


class MembershipRole(str, Enum):
    """Roles a user holds within one organization.

    Values are stored as TEXT in membership.role and must match exactly.
    """
    ADMIN = "admin"
    EDITOR = "editor"
    REVIEWER = "reviewer"
    VIEWER = "viewer"


# Role hierarchy: Each role includes permissions of all roles below it
ROLE_HIERARCHY = {
    MembershipRole.ADMIN: {MembershipRole.ADMIN, MembershipRole.EDITOR, MembershipRole.REVIEWER, MembershipRole.VIEWER},
    MembershipRole.EDITOR: {MembershipRole.EDITOR, MembershipRole.REVIEWER, MembershipRole.VIEWER},
    MembershipRole.REVIEWER: {MembershipRole.REVIEWER, MembershipRole.VIEWER},
    MembershipRole.VIEWER: {MembershipRole.VIEWER},
}


def has_permission(user_role: MembershipRole, required_role: MembershipRole) -> bool:
    """Check if a role satisfies a minimum required role.

    Examples:
        >>> has_permission(MembershipRole.ADMIN, MembershipRole.EDITOR)
        True
        >>> has_permission(MembershipRole.VIEWER, MembershipRole.REVIEWER)
        False
    """
    return required_role in ROLE_HIERARCHY.get(user_role, set())
