"""Unit tests for the approval workflow service"""

from datetime import datetime, timedelta, timezone

import pytest

from orggate.approvals.schemas import ApprovalRequestInput, AuditTrail, AuditTrailEntry, BrowserTask, OperationTask, PaymentTask
from orggate.approvals.service import (
    ApprovalAlreadyProcessedError,
    ApprovalExpiredError,
    ApprovalNotFoundError,
    create_approval_request,
    expire_stale_approval_requests,
    get_approval_request,
    get_pending_approvals,
    load_audit_trail,
    process_approval_response,
    to_detail,
)
from orggate.approvals.status import (
    ApprovalStatus,
    StateTransitionError,
    can_transition,
    is_terminal,
    validate_transition,
)
from orggate.models.audit_log import AuditLog

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def acme(provision_org):
    return provision_org("acme")


@pytest.fixture
def requester(acme, make_user, add_membership):
    user = make_user("editor@acme.test")
    add_membership(user, acme, role="editor")
    return user


@pytest.fixture
def admin(acme, make_user, add_membership):
    user = make_user("admin@acme.test")
    add_membership(user, acme, role="admin")
    return user


@pytest.fixture
def create(db_session, acme, requester):
    def factory(capability_id="kiisha.ticket.create", task_spec=None, now=T0, org=None, user=None):
        request = create_approval_request(
            db_session,
            ApprovalRequestInput(
                organization_id=(org or acme).id,
                requested_by=(user or requester).id,
                capability_id=capability_id,
                task_spec=task_spec or OperationTask(operation="create_ticket"),
                summary="Create a ticket",
            ),
            now=now,
        )
        db_session.commit()
        return request
    return factory


class TestStatusMachine:
    def test_pending_transitions(self):
        for target in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.EXPIRED):
            assert can_transition(ApprovalStatus.PENDING, target)

    def test_terminal_states(self):
        for status in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.EXPIRED):
            assert is_terminal(status)
            with pytest.raises(StateTransitionError):
                validate_transition(status, ApprovalStatus.PENDING)


class TestAuditTrail:
    def test_append_returns_new_trail(self):
        trail = AuditTrail()
        extended = trail.append(AuditTrailEntry(action="created", timestamp=T0))

        assert len(trail) == 0
        assert len(extended) == 1
        assert extended[0].action == "created"


class TestCreateApprovalRequest:
    def test_creates_pending_request(self, db_session, create, requester, acme, admin, sent_notifications):
        request = create()

        assert request.status == "pending"
        assert request.expires_at == T0 + timedelta(hours=24)
        assert request.request_id
        trail = load_audit_trail(request)
        assert [entry.action for entry in trail] == ["created"]
        assert trail[0].actor_id == str(requester.id)

        assert sent_notifications[0]["event"] == "approval_requested"
        assert sent_notifications[0]["recipient_ids"] == [str(admin.id)]
        assert db_session.query(AuditLog).filter(AuditLog.action == "APPROVAL_REQUESTED").count() == 1

    def test_no_notification_when_request_rolled_back(self, db_session, acme, requester, admin, sent_notifications):
        create_approval_request(
            db_session,
            ApprovalRequestInput(
                organization_id=acme.id,
                requested_by=requester.id,
                capability_id="kiisha.ticket.create",
                task_spec=OperationTask(operation="create_ticket"),
                summary="Create a ticket",
            ),
            now=T0,
        )
        db_session.rollback()

        assert sent_notifications == []

    def test_risk_inherits_capability_level(self, create):
        request = create(capability_id="browser.data_scrape", task_spec=BrowserTask(action="scrape", url="https://x.test"))
        risk = request.risk_assessment

        assert risk["level"] == "high"
        assert "High-risk capability" in risk["factors"]
        assert "Browser automation involved" in risk["factors"]

    def test_payment_risk(self, create):
        task = PaymentTask(amount="1200.50", currency="NGN", payee="Vendor Ltd")
        request = create(capability_id="kiisha.payment.initiate", task_spec=task)

        assert request.risk_assessment["level"] == "critical"
        assert "Financial transaction" in request.risk_assessment["factors"]
        assert request.risk_assessment["potential_impact"] == "May result in financial charges"
        assert request.task_spec["amount"] == "1200.50"

    def test_unknown_capability_is_medium_risk(self, create):
        assert create(capability_id="custom.skill").risk_assessment["level"] == "medium"


class TestProcessApprovalResponse:
    def test_approve(self, db_session, create, admin, sent_notifications):
        request = create()

        resolved = process_approval_response(
            db_session, request.request_id, "approve", admin.id, now=T0 + timedelta(hours=1)
        )

        assert resolved.status == "approved"
        assert resolved.approved_by == admin.id
        assert resolved.approved_at == T0 + timedelta(hours=1)
        assert [entry.action for entry in load_audit_trail(resolved)] == ["created", "approved"]
        assert db_session.query(AuditLog).filter(AuditLog.action == "APPROVAL_APPROVED").count() == 1

    def test_reject_records_reason(self, db_session, create, admin):
        request = create()

        resolved = process_approval_response(
            db_session, request.request_id, "reject", admin.id, reason="Not this week", now=T0
        )

        assert resolved.status == "rejected"
        assert resolved.rejection_reason == "Not this week"
        assert load_audit_trail(resolved)[-1].details == "Not this week"

    def test_resolved_exactly_once(self, db_session, create, admin):
        request = create()
        process_approval_response(db_session, request.request_id, "approve", admin.id, now=T0)

        with pytest.raises(ApprovalAlreadyProcessedError) as exc_info:
            process_approval_response(db_session, request.request_id, "reject", admin.id, now=T0)

        assert exc_info.value.status_code == 409
        db_session.refresh(request)
        assert request.status == "approved"

    def test_expired_request_flipped_on_response(self, db_session, create, admin):
        request = create()

        with pytest.raises(ApprovalExpiredError) as exc_info:
            process_approval_response(db_session, request.request_id, "approve", admin.id, now=T0 + timedelta(hours=25))

        assert exc_info.value.status_code == 410
        db_session.refresh(request)
        assert request.status == "expired"
        assert request.approved_by is None

    def test_deadline_is_exclusive(self, db_session, create, admin):
        request = create()
        with pytest.raises(ApprovalExpiredError):
            process_approval_response(db_session, request.request_id, "approve", admin.id, now=request.expires_at)

    def test_unknown_request(self, db_session, admin):
        with pytest.raises(ApprovalNotFoundError):
            process_approval_response(db_session, "missing", "approve", admin.id)

    def test_other_tenant_cannot_respond(self, db_session, create, admin, provision_org):
        request = create()
        beta = provision_org("beta")

        with pytest.raises(ApprovalNotFoundError):
            process_approval_response(
                db_session, request.request_id, "approve", admin.id, organization_id=beta.id, now=T0
            )


class TestQueries:
    def test_pending_list_newest_first_and_unexpired(self, db_session, create, acme):
        older = create(now=T0 - timedelta(hours=30))
        middle = create(now=T0 - timedelta(hours=2))
        newest = create(now=T0 - timedelta(hours=1))

        pending = get_pending_approvals(db_session, acme.id, now=T0)

        assert [p.request_id for p in pending] == [newest.request_id, middle.request_id]
        assert older.request_id not in {p.request_id for p in pending}
        assert pending[0].risk_level == "medium"

    def test_pending_list_limit_and_requester_filter(self, db_session, create, acme, admin):
        for _ in range(3):
            create()
        mine = create(user=admin)

        assert len(get_pending_approvals(db_session, acme.id, limit=2, now=T0)) == 2
        assert [p.request_id for p in get_pending_approvals(db_session, acme.id, for_user=admin.id, now=T0)] == [
            mine.request_id
        ]

    def test_pending_list_is_tenant_scoped(self, db_session, create, provision_org):
        create()
        beta = provision_org("beta")
        assert get_pending_approvals(db_session, beta.id, now=T0) == []

    def test_detail(self, db_session, create, acme):
        request = create()

        detail = to_detail(get_approval_request(db_session, acme.id, request.request_id))

        assert detail.status == "pending"
        assert detail.task_spec["task_type"] == "operation"
        assert detail.audit_trail[0].action == "created"

    def test_detail_other_tenant(self, db_session, create, provision_org):
        request = create()
        beta = provision_org("beta")
        with pytest.raises(ApprovalNotFoundError):
            get_approval_request(db_session, beta.id, request.request_id)


class TestExpireStale:
    def test_sweep_expires_only_overdue(self, db_session, create):
        overdue = create(now=T0 - timedelta(hours=48))
        fresh = create(now=T0)

        assert expire_stale_approval_requests(db_session, now=T0 + timedelta(hours=1)) == 1

        db_session.refresh(overdue)
        db_session.refresh(fresh)
        assert overdue.status == "expired"
        assert fresh.status == "pending"
        assert [entry.action for entry in load_audit_trail(overdue)] == ["created", "expired"]

    def test_sweep_is_idempotent(self, db_session, create):
        create(now=T0 - timedelta(hours=48))

        assert expire_stale_approval_requests(db_session, now=T0) == 1
        assert expire_stale_approval_requests(db_session, now=T0) == 0

    def test_resolved_requests_never_expire(self, db_session, create, admin):
        request = create(now=T0)
        process_approval_response(db_session, request.request_id, "approve", admin.id, now=T0)

        assert expire_stale_approval_requests(db_session, now=T0 + timedelta(days=3)) == 0
        db_session.refresh(request)
        assert request.status == "approved"
