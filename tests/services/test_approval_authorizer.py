"""Tests for ApprovalAuthorizer over the SQL member directory."""

from uuid import uuid4

import pytest

from approvals_kernel.domain.approval import MEMBER_NOT_FOUND, ApprovalStep, EntityType
from approvals_kernel.selectors.member_selector import MemberSelector
from approvals_kernel.services.authorization import ApprovalAuthorizer


@pytest.fixture
def authorizer(session, deterministic_clock):
    return ApprovalAuthorizer(MemberSelector(session), deterministic_clock)


@pytest.fixture
def step_for(tenant_id):
    def _step(role, requester_id=None):
        return ApprovalStep(
            step_id=uuid4(),
            tenant_id=tenant_id,
            entity_type=EntityType.LEAVE_REQUEST,
            entity_id="lr-1",
            level_order=1,
            required_role=role,
            requester_id=requester_id,
        )

    return _step


class TestCanMemberApprove:

    def test_reporting_manager(self, authorizer, make_member, step_for):
        manager = make_member("Manager")
        requester = make_member("Requester", reporting_to_id=manager.id)
        decision = authorizer.can_member_approve(manager.id, step_for("MANAGER"), requester.id)
        assert decision.allowed

    def test_manager_needs_requester(self, authorizer, make_member, step_for):
        manager = make_member("Manager")
        decision = authorizer.can_member_approve(manager.id, step_for("MANAGER"))
        assert not decision.allowed

    def test_hr_access(self, authorizer, make_member, step_for):
        hr = make_member("HR", has_hr_access=True)
        requester = make_member("Requester")
        assert authorizer.can_member_approve(hr.id, step_for("HR_MANAGER"), requester.id).allowed

    def test_role_change_takes_effect_immediately(self, authorizer, session, make_member, step_for):
        member = make_member("Member")
        step = step_for("OPERATIONS_MANAGER")
        assert not authorizer.can_member_approve(member.id, step).allowed

        member.has_operations_access = True
        session.commit()
        assert authorizer.can_member_approve(member.id, step).allowed

    def test_deleted_delegator_grants_nothing(self, authorizer, session, make_member,
                                              make_delegation, step_for):
        hr = make_member("HR", has_hr_access=True)
        stand_in = make_member("Stand In")
        make_delegation(hr, stand_in)
        step = step_for("HR_MANAGER")
        assert authorizer.can_member_approve(stand_in.id, step).via_delegation

        hr.is_deleted = True
        session.commit()
        assert not authorizer.can_member_approve(stand_in.id, step).allowed

    def test_delegation_is_directional(self, authorizer, make_member, make_delegation, step_for):
        hr = make_member("HR", has_hr_access=True)
        stand_in = make_member("Stand In")
        make_delegation(stand_in, hr)
        assert not authorizer.can_member_approve(stand_in.id, step_for("HR_MANAGER")).allowed


class TestTenantBoundary:

    def test_admin_of_another_tenant_is_refused(self, authorizer, make_member, step_for):
        outsider = make_member("Outside Admin", is_admin=True, tenant_id=uuid4())
        decision = authorizer.can_member_approve(outsider.id, step_for("MANAGER"))
        assert not decision.allowed
        assert decision.reason == MEMBER_NOT_FOUND

    def test_outside_tenant_refusal_is_logged(self, authorizer, make_member, step_for,
                                              captured_logs):
        outsider = make_member("Outside Admin", is_admin=True, tenant_id=uuid4())
        authorizer.can_member_approve(outsider.id, step_for("DIRECTOR"))
        refused = [r for r in captured_logs() if r["message"] == "approval_member_outside_tenant"]
        assert refused[0]["member_id"] == str(outsider.id)

    def test_delegator_from_another_tenant_grants_nothing(self, authorizer, make_member,
                                                          make_delegation, step_for):
        outside_admin = make_member("Outside Admin", is_admin=True, tenant_id=uuid4())
        stand_in = make_member("Stand In")
        make_delegation(outside_admin, stand_in)
        assert not authorizer.can_member_approve(stand_in.id, step_for("DIRECTOR")).allowed


class TestPersistedRequester:

    def test_step_requester_decides_the_manager(self, authorizer, make_member, step_for):
        manager = make_member("Manager")
        impostor = make_member("Impostor")
        requester = make_member("Requester", reporting_to_id=manager.id)
        decoy = make_member("Decoy", reporting_to_id=impostor.id)
        step = step_for("MANAGER", requester_id=requester.id)

        assert not authorizer.can_member_approve(impostor.id, step, decoy.id).allowed
        assert authorizer.can_member_approve(manager.id, step, decoy.id).allowed

    def test_supplied_requester_used_when_step_has_none(self, authorizer, make_member, step_for):
        manager = make_member("Manager")
        requester = make_member("Requester", reporting_to_id=manager.id)
        assert authorizer.can_member_approve(manager.id, step_for("MANAGER"), requester.id).allowed
