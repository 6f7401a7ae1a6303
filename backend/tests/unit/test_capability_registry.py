"""Unit tests for the capability registry"""

from datetime import datetime, timezone

import pytest

from orggate.capabilities.catalog import BUILT_IN_CAPABILITIES
from orggate.capabilities.registry import (
    DenialReasons,
    check_capability_access,
    get_org_capability,
    increment_capability_usage,
    initialize_org_capabilities,
    list_org_capabilities,
    reset_daily_usage_counters,
    reset_monthly_usage_counters,
    seed_capability_catalog,
    update_org_capability,
)
from orggate.errors import NotFoundError
from orggate.models.audit_log import AuditLog
from orggate.models.capability import Capability, OrgCapability
from orggate.models.security_policy import SecurityPolicy
from orggate.tenancy import directory

LOW_RISK = "kiisha.project.list"
MEDIUM_RISK = "kiisha.ticket.create"
ADMIN_ONLY = "kiisha.user.invite"


@pytest.fixture
def acme(provision_org):
    return provision_org("acme")


@pytest.fixture
def editor(acme, make_user, add_membership):
    user = make_user("editor@acme.test")
    add_membership(user, acme, role="editor")
    return user


def set_row(db_session, org, capability_id, **values):
    row = get_org_capability(db_session, org.id, capability_id)
    for field, value in values.items():
        setattr(row, field, value)
    db_session.commit()
    return row


class TestSeedAndProvision:
    def test_seed_inserts_catalog_once(self, db_session, catalog):
        assert catalog == len(BUILT_IN_CAPABILITIES)
        assert seed_capability_catalog(db_session) == 0
        assert db_session.query(Capability).count() == len(BUILT_IN_CAPABILITIES)

    def test_seed_keeps_admin_changed_risk_flags(self, db_session, catalog):
        capability = db_session.query(Capability).filter(Capability.capability_id == LOW_RISK).one()
        capability.requires_approval = True
        capability.name = "Renamed"
        db_session.commit()

        seed_capability_catalog(db_session)
        db_session.refresh(capability)

        assert capability.requires_approval is True
        assert capability.name != "Renamed"

    def test_provision_creates_policy_and_rows(self, db_session, acme):
        policy = db_session.query(SecurityPolicy).filter(SecurityPolicy.organization_id == acme.id).one()
        assert policy.browser_automation_allowed is False
        assert policy.export_requires_approval is True
        assert policy.global_rate_limit_per_minute == 60

        rows = list_org_capabilities(db_session, acme.id)
        assert len(rows) == len(BUILT_IN_CAPABILITIES)
        for row in rows:
            assert row.enabled is (row.capability.risk_level == "low")
            assert row.approval_policy == "inherit"

        audit = db_session.query(AuditLog).filter(AuditLog.action == "ORG_PROVISIONED").one()
        assert audit.org_id == acme.id

    def test_initialize_is_idempotent(self, db_session, acme):
        assert initialize_org_capabilities(db_session, acme.id) == []
        assert db_session.query(OrgCapability).filter(
            OrgCapability.organization_id == acme.id
        ).count() == len(BUILT_IN_CAPABILITIES)


class TestCheckCapabilityAccess:
    def test_low_risk_allowed_without_approval(self, db_session, acme, editor):
        result = check_capability_access(db_session, acme.id, editor.id, LOW_RISK)

        assert result.allowed is True
        assert result.requires_approval is False
        assert result.daily_usage_remaining is None

    def test_unknown_capability(self, db_session, acme, editor):
        result = check_capability_access(db_session, acme.id, editor.id, "kiisha.nope")
        assert result.allowed is False
        assert result.reason == DenialReasons.NOT_FOUND

    def test_inactive_capability(self, db_session, acme, editor):
        capability = db_session.query(Capability).filter(Capability.capability_id == LOW_RISK).one()
        capability.is_active = False
        db_session.commit()

        result = check_capability_access(db_session, acme.id, editor.id, LOW_RISK)
        assert result.reason == DenialReasons.DISABLED

    def test_medium_risk_disabled_by_default(self, db_session, acme, editor):
        result = check_capability_access(db_session, acme.id, editor.id, MEDIUM_RISK)
        assert result.allowed is False
        assert result.reason == DenialReasons.NOT_ENABLED

    def test_enabled_medium_risk_requires_approval(self, db_session, acme, editor):
        set_row(db_session, acme, MEDIUM_RISK, enabled=True)

        result = check_capability_access(db_session, acme.id, editor.id, MEDIUM_RISK)
        assert result.allowed is True
        assert result.requires_approval is True

    def test_org_policy_overrides_capability_default(self, db_session, acme, editor):
        set_row(db_session, acme, MEDIUM_RISK, enabled=True, approval_policy="never")
        set_row(db_session, acme, LOW_RISK, approval_policy="always")

        assert check_capability_access(db_session, acme.id, editor.id, MEDIUM_RISK).requires_approval is False
        assert check_capability_access(db_session, acme.id, editor.id, LOW_RISK).requires_approval is True

    def test_daily_limit_checked_before_monthly(self, db_session, acme, editor):
        set_row(
            db_session, acme, LOW_RISK,
            daily_limit=5, current_daily_usage=5, monthly_limit=5, current_monthly_usage=5,
        )

        result = check_capability_access(db_session, acme.id, editor.id, LOW_RISK)
        assert result.reason == DenialReasons.DAILY_LIMIT
        assert result.daily_usage_remaining == 0

    def test_monthly_limit(self, db_session, acme, editor):
        set_row(db_session, acme, LOW_RISK, monthly_limit=100, current_monthly_usage=100)

        result = check_capability_access(db_session, acme.id, editor.id, LOW_RISK)
        assert result.reason == DenialReasons.MONTHLY_LIMIT
        assert result.monthly_usage_remaining == 0

    def test_remaining_quota_reported(self, db_session, acme, editor):
        set_row(db_session, acme, LOW_RISK, daily_limit=10, current_daily_usage=4, monthly_limit=100)

        result = check_capability_access(db_session, acme.id, editor.id, LOW_RISK)
        assert result.daily_usage_remaining == 6
        assert result.monthly_usage_remaining == 100

    def test_outside_allowed_hours(self, db_session, acme, editor):
        policy = directory.get_security_policy(db_session, acme.id)
        policy.allowed_hours = {"start": "09:00", "end": "17:00", "timezone": "UTC"}
        db_session.commit()

        night = datetime(2026, 1, 5, 2, 0, tzinfo=timezone.utc)
        noon = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

        assert check_capability_access(db_session, acme.id, editor.id, LOW_RISK, now=night).reason == (
            DenialReasons.OUTSIDE_HOURS
        )
        assert check_capability_access(db_session, acme.id, editor.id, LOW_RISK, now=noon).allowed is True

    def test_admin_only_capability(self, db_session, acme, editor, make_user, add_membership):
        set_row(db_session, acme, ADMIN_ONLY, enabled=True)
        admin = make_user("admin@acme.test")
        add_membership(admin, acme, role="admin")

        denied = check_capability_access(db_session, acme.id, editor.id, ADMIN_ONLY)
        assert denied.reason == DenialReasons.REQUIRES_ADMIN
        assert denied.requires_admin is True

        allowed = check_capability_access(db_session, acme.id, admin.id, ADMIN_ONLY)
        assert allowed.allowed is True
        assert allowed.requires_approval is True

    def test_check_never_changes_usage(self, db_session, acme, editor):
        for _ in range(3):
            check_capability_access(db_session, acme.id, editor.id, LOW_RISK)

        row = get_org_capability(db_session, acme.id, LOW_RISK)
        assert row.current_daily_usage == 0
        assert row.current_monthly_usage == 0


class TestUsageCounters:
    def test_increment_counts_both_windows(self, db_session, acme):
        assert increment_capability_usage(db_session, acme.id, LOW_RISK) is True
        assert increment_capability_usage(db_session, acme.id, LOW_RISK) is True

        row = get_org_capability(db_session, acme.id, LOW_RISK)
        assert row.current_daily_usage == 2
        assert row.current_monthly_usage == 2

    def test_increment_stops_at_limit(self, db_session, acme):
        set_row(db_session, acme, LOW_RISK, daily_limit=2)

        results = [increment_capability_usage(db_session, acme.id, LOW_RISK) for _ in range(4)]

        assert results == [True, True, False, False]
        assert get_org_capability(db_session, acme.id, LOW_RISK).current_daily_usage == 2

    def test_increment_without_row_fails(self, db_session, acme):
        assert increment_capability_usage(db_session, acme.id, "kiisha.nope") is False

    def test_resets(self, db_session, acme, provision_org):
        beta = provision_org("beta")
        for org in (acme, beta):
            increment_capability_usage(db_session, org.id, LOW_RISK)
        db_session.commit()

        assert reset_daily_usage_counters(db_session) == 2 * len(BUILT_IN_CAPABILITIES)
        row = get_org_capability(db_session, beta.id, LOW_RISK)
        assert row.current_daily_usage == 0
        assert row.current_monthly_usage == 1

        reset_monthly_usage_counters(db_session)
        assert get_org_capability(db_session, beta.id, LOW_RISK).current_monthly_usage == 0

        # Idempotent
        reset_daily_usage_counters(db_session)
        assert get_org_capability(db_session, acme.id, LOW_RISK).current_daily_usage == 0


class TestUpdateOrgCapability:
    def test_enable_records_actor_and_audit(self, db_session, acme, editor):
        row = update_org_capability(db_session, acme.id, MEDIUM_RISK, {"enabled": True}, actor_id=editor.id)
        db_session.commit()

        assert row.enabled is True
        assert row.enabled_by == editor.id
        assert row.enabled_at is not None
        audit = db_session.query(AuditLog).filter(AuditLog.action == "CAPABILITY_UPDATED").one()
        assert audit.entity_id == MEDIUM_RISK
        assert audit.metadata_json["before"] == {"enabled": False}

    def test_null_limit_means_unlimited(self, db_session, acme, editor):
        update_org_capability(db_session, acme.id, LOW_RISK, {"daily_limit": 5}, actor_id=editor.id)
        row = update_org_capability(db_session, acme.id, LOW_RISK, {"daily_limit": None}, actor_id=editor.id)
        assert row.daily_limit is None

    def test_unknown_field_rejected(self, db_session, acme, editor):
        with pytest.raises(ValueError):
            update_org_capability(db_session, acme.id, LOW_RISK, {"current_daily_usage": 0}, actor_id=editor.id)

    def test_missing_row(self, db_session, acme, editor):
        with pytest.raises(NotFoundError):
            update_org_capability(db_session, acme.id, "kiisha.nope", {"enabled": True}, actor_id=editor.id)
