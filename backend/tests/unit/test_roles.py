"""Unit tests for the membership role hierarchy"""

import pytest

from orggate.auth.roles import MembershipRole, has_permission


class TestHasPermission:
    @pytest.mark.parametrize("role", list(MembershipRole))
    def test_admin_satisfies_every_role(self, role):
        assert has_permission(MembershipRole.ADMIN, role)

    @pytest.mark.parametrize("role", [MembershipRole.EDITOR, MembershipRole.REVIEWER, MembershipRole.VIEWER])
    def test_only_admin_is_admin(self, role):
        assert not has_permission(role, MembershipRole.ADMIN)

    def test_viewer_below_reviewer(self):
        assert has_permission(MembershipRole.REVIEWER, MembershipRole.VIEWER)
        assert not has_permission(MembershipRole.VIEWER, MembershipRole.REVIEWER)
