"""
Tests for the role predicate and authorization decision
(``approvals_kernel.domain.roles``).
"""

from uuid import uuid4

import pytest

from approvals_kernel.domain.approval import MEMBER_NOT_FOUND
from approvals_kernel.domain.roles import (
    ApprovalRole,
    MemberAuthority,
    authorize_member,
    member_satisfies_role,
)

TENANT = uuid4()


def _member(**attrs) -> MemberAuthority:
    return MemberAuthority(member_id=uuid4(), tenant_id=TENANT, **attrs)


class TestMemberSatisfiesRole:

    def test_manager_is_requesters_reporting_manager(self):
        manager = _member(name="Manager")
        requester = _member(reporting_manager_id=manager.member_id)
        assert member_satisfies_role(manager, ApprovalRole.MANAGER, requester)

    def test_other_manager_does_not_satisfy(self):
        manager = _member()
        someone_else = _member()
        requester = _member(reporting_manager_id=manager.member_id)
        assert not member_satisfies_role(someone_else, "MANAGER", requester)

    def test_manager_without_requester(self):
        assert not member_satisfies_role(_member(), "MANAGER", None)
        assert member_satisfies_role(_member(approval_role="MANAGER"), "MANAGER", None)

    @pytest.mark.parametrize(
        "role, flag",
        [
            ("HR_MANAGER", "has_hr_access"),
            ("FINANCE_MANAGER", "has_finance_access"),
            ("OPERATIONS_MANAGER", "has_operations_access"),
        ],
    )
    def test_department_roles_follow_access_flags(self, role, flag):
        assert member_satisfies_role(_member(**{flag: True}), role)
        assert not member_satisfies_role(_member(), role)

    @pytest.mark.parametrize("role", ["DIRECTOR", "ADMIN"])
    def test_director_and_admin_need_admin(self, role):
        assert member_satisfies_role(_member(is_admin=True), role)
        assert not member_satisfies_role(_member(has_finance_access=True), role)

    def test_free_form_role_matches_approval_role(self):
        member = _member(approval_role="FINANCE_ADMIN")
        assert member_satisfies_role(member, "FINANCE_ADMIN")
        assert not member_satisfies_role(_member(has_finance_access=True), "FINANCE_ADMIN")

    def test_deleted_member_satisfies_nothing(self):
        member = _member(approval_role="MANAGER", is_deleted=True)
        assert not member_satisfies_role(member, "MANAGER")


class TestAuthorizeMember:

    def test_missing_member(self):
        decision = authorize_member(None, "MANAGER")
        assert not decision.allowed
        assert decision.reason == MEMBER_NOT_FOUND

    def test_deleted_member(self):
        decision = authorize_member(_member(is_admin=True, is_deleted=True), "MANAGER")
        assert decision.reason == MEMBER_NOT_FOUND

    def test_admin_overrides_every_role(self):
        decision = authorize_member(_member(is_admin=True), "HR_MANAGER")
        assert decision.allowed
        assert not decision.via_delegation

    def test_role_holder_allowed(self):
        decision = authorize_member(_member(has_hr_access=True), "HR_MANAGER")
        assert decision.allowed

    def test_delegated_authority(self):
        delegator = _member(has_finance_access=True)
        delegatee = _member()
        decision = authorize_member(delegatee, "FINANCE_MANAGER", delegators=[delegator])
        assert decision.allowed
        assert decision.via_delegation
        assert decision.delegator_id == delegator.member_id

    def test_delegator_without_role_does_not_help(self):
        decision = authorize_member(_member(), "FINANCE_MANAGER", delegators=[_member()])
        assert not decision.allowed
        assert decision.reason == "Not authorized: requires FINANCE_MANAGER approval"

    def test_delegated_manager_is_relative_to_requester(self):
        manager = _member()
        requester = _member(reporting_manager_id=manager.member_id)
        decision = authorize_member(_member(), "MANAGER", requester, delegators=[manager])
        assert decision.allowed
        assert decision.delegator_id == manager.member_id
