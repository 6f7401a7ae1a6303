"""Unit tests for org context resolution"""

import uuid

import pytest

from orggate.errors import BadRequestError, ForbiddenError, NoMembershipError
from orggate.tenancy.context import OrgHint, ResolutionMethod, check_org_entry, resolve_org_context


class TestExplicitHint:
    """An explicit org hint wins over every other input"""

    def test_hint_by_id_resolves_member_org(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        beta = make_org("beta")
        user = make_user("ops@acme.test")
        add_membership(user, acme, role="admin")
        add_membership(user, beta, role="viewer")

        ctx = resolve_org_context(db_session, user, OrgHint(org_id=str(beta.id)))

        assert ctx.organization_id == beta.id
        assert ctx.membership_role == "viewer"
        assert ctx.is_org_admin is False
        assert ctx.is_lobby is False
        assert ctx.resolution_method == ResolutionMethod.HINT

    def test_hint_by_slug_resolves_member_org(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        user = make_user("ops@acme.test")
        add_membership(user, acme, role="admin")

        ctx = resolve_org_context(db_session, user, OrgHint(org_slug="acme"))

        assert ctx.organization_id == acme.id
        assert ctx.is_org_admin is True

    def test_hint_overrides_session_selection(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        beta = make_org("beta")
        user = make_user("ops@acme.test")
        add_membership(user, acme)
        add_membership(user, beta)
        user.active_org_id = acme.id
        db_session.commit()

        ctx = resolve_org_context(db_session, user, OrgHint(org_id=str(beta.id)))

        assert ctx.organization_id == beta.id

    def test_foreign_org_hint_denied(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        other = make_org("other")
        user = make_user("ops@acme.test")
        add_membership(user, acme)

        with pytest.raises(ForbiddenError) as exc_info:
            resolve_org_context(db_session, user, OrgHint(org_id=str(other.id)))

        assert exc_info.value.message == "Access denied"
        assert exc_info.value.reason == "hint_not_member"

    def test_unknown_and_malformed_hints_look_like_foreign_orgs(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        user = make_user("ops@acme.test")
        add_membership(user, acme)

        for hint in (OrgHint(org_id=str(uuid.uuid4())), OrgHint(org_id="not-a-uuid"), OrgHint(org_slug="nope")):
            with pytest.raises(ForbiddenError) as exc_info:
                resolve_org_context(db_session, user, hint)
            assert exc_info.value.message == "Access denied"

    def test_inactive_membership_denied(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        beta = make_org("beta")
        user = make_user("ops@acme.test")
        add_membership(user, acme)
        add_membership(user, beta, status="removed")

        with pytest.raises(ForbiddenError) as exc_info:
            resolve_org_context(db_session, user, OrgHint(org_id=str(beta.id)))

        assert exc_info.value.reason == "membership_inactive"
        assert exc_info.value.organization_id == beta.id


class TestImplicitResolution:
    def test_session_selection_used(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        beta = make_org("beta")
        user = make_user("ops@acme.test")
        add_membership(user, acme)
        add_membership(user, beta)
        user.active_org_id = beta.id
        db_session.commit()

        ctx = resolve_org_context(db_session, user)

        assert ctx.organization_id == beta.id
        assert ctx.resolution_method == ResolutionMethod.SESSION

    def test_single_membership_used(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        user = make_user("ops@acme.test")
        add_membership(user, acme, role="editor")

        ctx = resolve_org_context(db_session, user)

        assert ctx.organization_id == acme.id
        assert ctx.membership_role == "editor"
        assert ctx.resolution_method == ResolutionMethod.SINGLE_MEMBERSHIP

    def test_multiple_memberships_without_selection_is_bad_request(
        self, db_session, make_org, make_user, add_membership
    ):
        user = make_user("ops@acme.test")
        add_membership(user, make_org("acme"))
        add_membership(user, make_org("beta"))

        with pytest.raises(BadRequestError) as exc_info:
            resolve_org_context(db_session, user)

        assert exc_info.value.message == "Multiple organizations available. Please select one."

    def test_stale_session_selection_denied(self, db_session, make_org, make_user, add_membership):
        acme = make_org("acme")
        beta = make_org("beta")
        user = make_user("ops@acme.test")
        add_membership(user, acme)
        add_membership(user, beta, status="removed")
        user.active_org_id = beta.id
        db_session.commit()

        with pytest.raises(ForbiddenError):
            resolve_org_context(db_session, user)


class TestOrgChecks:
    """Status and second-factor checks on the selected org"""

    @pytest.mark.parametrize("status,reason", [("suspended", "org_suspended"), ("archived", "org_archived")])
    def test_inactive_org_denied(self, db_session, make_org, make_user, add_membership, status, reason):
        org = make_org("acme", status=status)
        user = make_user("ops@acme.test")
        add_membership(user, org)

        with pytest.raises(ForbiddenError) as exc_info:
            resolve_org_context(db_session, user)

        assert exc_info.value.reason == reason
        assert exc_info.value.message == "Access denied"

    def test_requires_2fa_without_enrollment_denied(self, db_session, make_org, make_user, add_membership):
        org = make_org("acme", require_2fa=True)
        user = make_user("ops@acme.test", totp_enabled=False)
        add_membership(user, org)

        with pytest.raises(ForbiddenError) as exc_info:
            resolve_org_context(db_session, user)

        assert exc_info.value.reason == "requires_2fa"

    def test_requires_2fa_with_enrollment_allowed(self, db_session, make_org, make_user, add_membership):
        org = make_org("acme", require_2fa=True)
        user = make_user("ops@acme.test", totp_enabled=True)
        add_membership(user, org)

        assert resolve_org_context(db_session, user).organization_id == org.id


class TestLobby:
    def test_no_membership_and_no_lobby_raises(self, db_session, make_user, override_settings):
        override_settings(LOBBY_ORG_SLUG="")
        user = make_user("new@acme.test")

        with pytest.raises(NoMembershipError) as exc_info:
            resolve_org_context(db_session, user)

        assert exc_info.value.message == "No organization membership"

    def test_no_membership_falls_back_to_lobby(self, db_session, make_org, make_user, override_settings):
        override_settings(LOBBY_ORG_SLUG="lobby")
        lobby = make_org("lobby")
        user = make_user("new@acme.test")

        ctx = resolve_org_context(db_session, user)

        assert ctx.organization_id == lobby.id
        assert ctx.is_lobby is True
        assert ctx.membership_role == "reviewer"
        assert ctx.is_org_admin is False
        assert ctx.resolution_method == ResolutionMethod.LOBBY

    def test_lobby_ignores_hints(self, db_session, make_org, make_user, override_settings):
        override_settings(LOBBY_ORG_SLUG="lobby")
        lobby = make_org("lobby")
        other = make_org("other")
        user = make_user("new@acme.test")

        ctx = resolve_org_context(db_session, user, OrgHint(org_id=str(other.id)))

        assert ctx.organization_id == lobby.id

    def test_suspended_lobby_is_not_used(self, db_session, make_org, make_user, override_settings):
        override_settings(LOBBY_ORG_SLUG="lobby")
        make_org("lobby", status="suspended")
        user = make_user("new@acme.test")

        with pytest.raises(NoMembershipError):
            resolve_org_context(db_session, user)


class TestCheckOrgEntry:
    def test_active_member_may_enter(self, db_session, make_org, make_user, add_membership):
        org = make_org("acme")
        user = make_user("ops@acme.test")
        membership = add_membership(user, org)

        assert check_org_entry(db_session, user, org.id).id == membership.id

    def test_non_member_denied(self, db_session, make_org, make_user):
        org = make_org("acme")
        user = make_user("ops@acme.test")

        with pytest.raises(ForbiddenError) as exc_info:
            check_org_entry(db_session, user, org.id)

        assert exc_info.value.reason == "membership_inactive"

    def test_suspended_org_denied(self, db_session, make_org, make_user, add_membership):
        org = make_org("acme", status="suspended")
        user = make_user("ops@acme.test")
        add_membership(user, org)

        with pytest.raises(ForbiddenError) as exc_info:
            check_org_entry(db_session, user, org.id)

        assert exc_info.value.reason == "org_suspended"
