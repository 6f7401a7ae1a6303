"""Unit tests for channel workspace commands and inbound message resolution"""

import re
from datetime import datetime, timezone

import pytest

from orggate.models.audit_log import AuditLog
from orggate.models.channel_identity import ChannelIdentity
from orggate.workspace.binding_codes import generate_binding_code
from orggate.workspace.commands import (
    ChannelResponses,
    CommandType,
    handle_workspace_command,
    lookup_channel_identity,
    parse_workspace_command,
    resolve_incoming_message_workspace,
)
from orggate.workspace.resolver import ResolutionMethod, resolve_workspace_for_channel

PHONE = "+2348012345678"
THREAD = PHONE


@pytest.fixture
def orgs(make_org):
    return make_org("acme-solar", name="Acme Solar"), make_org("beta-wind", name="Beta Wind")


@pytest.fixture
def user(make_user):
    return make_user("ops@acme.test")


def add_identity(db_session, user, org, external_id=PHONE, channel="whatsapp", status="verified"):
    identity = ChannelIdentity(
        user_id=user.id,
        organization_id=org.id,
        channel=channel,
        external_id=external_id,
        verification_status=status,
        verified_at=datetime.now(timezone.utc) if status == "verified" else None,
    )
    db_session.add(identity)
    db_session.commit()
    return identity


class TestParseWorkspaceCommand:
    @pytest.mark.parametrize("text", ["bind code 123456", "BIND CODE 123456", "code 123456", "  bind   code 123456  "])
    def test_bind_code(self, text):
        command = parse_workspace_command(text)
        assert command.type == CommandType.BIND_CODE
        assert command.code == "123456"

    @pytest.mark.parametrize("text", ["bind code 12345", "bind code 1234567", "please bind code 123456", "code abcdef"])
    def test_not_bind_code(self, text):
        assert parse_workspace_command(text).type == CommandType.NONE

    def test_status_and_switch(self):
        assert parse_workspace_command("/workspace").type == CommandType.WORKSPACE_STATUS
        assert parse_workspace_command("/WORKSPACE").type == CommandType.WORKSPACE_STATUS
        assert parse_workspace_command("switch workspace").type == CommandType.SWITCH_WORKSPACE
        assert parse_workspace_command("").type == CommandType.NONE
        assert parse_workspace_command(None).type == CommandType.NONE


class TestChannelResponses:
    """Canned replies never reveal organization details"""

    def test_static_texts_carry_no_org_data(self, orgs):
        texts = [
            ChannelResponses.AMBIGUOUS_WORKSPACE,
            ChannelResponses.NO_WORKSPACE,
            ChannelResponses.BINDING_FAILED,
            ChannelResponses.WORKSPACE_NOT_BOUND,
            ChannelResponses.UNKNOWN_SENDER,
            ChannelResponses.binding_success("binding code"),
        ]
        for text in texts:
            for org in orgs:
                assert org.name not in text
                assert org.slug not in text
            assert not re.search(r"\b\d+ (workspaces|organizations)\b", text)


class TestHandleWorkspaceCommand:
    def test_bind_code_binds_thread(self, db_session, orgs, user, add_membership):
        acme, beta = orgs
        add_membership(user, acme)
        add_membership(user, beta)
        binding = generate_binding_code(db_session, user, beta.id, channel="whatsapp")
        db_session.commit()

        result = handle_workspace_command(db_session, user.id, "whatsapp", PHONE, THREAD, f"bind code {binding.code}")

        assert result.handled is True
        assert result.response == ChannelResponses.binding_success("binding code")
        assert result.organization_id == beta.id

        resolution = resolve_workspace_for_channel(db_session, user.id, "whatsapp", THREAD)
        assert resolution.org_id == beta.id
        assert resolution.method == ResolutionMethod.THREAD_BINDING

        audit = db_session.query(AuditLog).filter(AuditLog.action == "WORKSPACE_SWITCHED").one()
        assert audit.metadata_json["switch_method"] == "binding_code"

    def test_invalid_code(self, db_session, orgs, user, add_membership):
        add_membership(user, orgs[0])

        result = handle_workspace_command(db_session, user.id, "whatsapp", PHONE, THREAD, "bind code 000000")

        assert result.handled is True
        assert result.response == ChannelResponses.BINDING_FAILED
        assert result.organization_id is None

    def test_status_when_bound(self, db_session, orgs, user, add_membership):
        add_membership(user, orgs[0], role="editor")

        result = handle_workspace_command(db_session, user.id, "whatsapp", PHONE, THREAD, "/workspace")

        assert result.response == ChannelResponses.workspace_bound("editor")
        assert orgs[0].name not in result.response

    def test_status_when_ambiguous(self, db_session, orgs, user, add_membership):
        add_membership(user, orgs[0])
        add_membership(user, orgs[1])

        result = handle_workspace_command(db_session, user.id, "whatsapp", PHONE, THREAD, "/workspace")

        assert result.response == ChannelResponses.WORKSPACE_NOT_BOUND

    def test_status_follows_identifier_scope(self, db_session, orgs, user, add_membership):
        acme, beta = orgs
        add_membership(user, acme, role="admin")
        add_membership(user, beta, role="viewer")
        add_identity(db_session, user, beta)
        _, scoped_org_id = lookup_channel_identity(db_session, "whatsapp", PHONE)

        status = handle_workspace_command(
            db_session, user.id, "whatsapp", PHONE, THREAD, "/workspace", identifier_org_id=scoped_org_id
        )
        routed = resolve_incoming_message_workspace(db_session, "whatsapp", PHONE, THREAD)

        assert status.response == ChannelResponses.workspace_bound("viewer")
        assert status.organization_id == beta.id
        assert routed.organization_id == status.organization_id

    def test_switch_workspace(self, db_session, orgs, user, add_membership):
        add_membership(user, orgs[0])
        result = handle_workspace_command(db_session, user.id, "whatsapp", PHONE, THREAD, "switch workspace")
        assert result.response == ChannelResponses.AMBIGUOUS_WORKSPACE

    def test_regular_message_not_handled(self, db_session, orgs, user, add_membership):
        add_membership(user, orgs[0])
        result = handle_workspace_command(db_session, user.id, "whatsapp", PHONE, THREAD, "How is inverter 3?")
        assert result.handled is False


class TestChannelIdentityLookup:
    def test_verified_identity_scoped_to_single_org(self, db_session, orgs, user):
        add_identity(db_session, user, orgs[0])
        assert lookup_channel_identity(db_session, "whatsapp", PHONE) == (user.id, orgs[0].id)

    def test_identity_in_several_orgs_is_not_scoped(self, db_session, orgs, user):
        add_identity(db_session, user, orgs[0])
        add_identity(db_session, user, orgs[1])
        assert lookup_channel_identity(db_session, "whatsapp", PHONE) == (user.id, None)

    def test_unverified_identity_ignored(self, db_session, orgs, user):
        add_identity(db_session, user, orgs[0], status="pending")
        assert lookup_channel_identity(db_session, "whatsapp", PHONE) == (None, None)

    def test_identifier_claimed_by_two_users_is_unknown(self, db_session, orgs, user, make_user):
        other = make_user("other@acme.test")
        add_identity(db_session, user, orgs[0])
        add_identity(db_session, other, orgs[1])
        assert lookup_channel_identity(db_session, "whatsapp", PHONE) == (None, None)

    def test_channel_must_match(self, db_session, orgs, user):
        add_identity(db_session, user, orgs[0], external_id="ops@acme.test", channel="email")
        assert lookup_channel_identity(db_session, "whatsapp", "ops@acme.test") == (None, None)


class TestResolveIncomingMessage:
    def test_unknown_sender(self, db_session):
        result = resolve_incoming_message_workspace(db_session, "whatsapp", "+10000000000")
        assert result.resolved is False
        assert result.response == ChannelResponses.UNKNOWN_SENDER

    def test_identifier_scoped(self, db_session, orgs, user, add_membership):
        acme, beta = orgs
        add_membership(user, acme)
        add_membership(user, beta, role="admin")
        add_identity(db_session, user, beta)

        result = resolve_incoming_message_workspace(db_session, "whatsapp", PHONE)

        assert result.resolved is True
        assert result.organization_id == beta.id
        assert result.role == "admin"

    def test_ambiguous_sender(self, db_session, orgs, user, add_membership):
        acme, beta = orgs
        add_membership(user, acme)
        add_membership(user, beta)
        add_identity(db_session, user, acme)
        add_identity(db_session, user, beta)

        result = resolve_incoming_message_workspace(db_session, "whatsapp", PHONE)

        assert result.resolved is False
        assert result.response == ChannelResponses.AMBIGUOUS_WORKSPACE
        for org in orgs:
            assert org.name not in result.response

    def test_sender_without_memberships(self, db_session, orgs, user):
        add_identity(db_session, user, orgs[0])

        result = resolve_incoming_message_workspace(db_session, "whatsapp", PHONE)

        assert result.resolved is False
        assert result.response == ChannelResponses.NO_WORKSPACE
