"""
Approval roles and the role predicate (``approvals_kernel.domain.roles``).

Responsibility
--------------
Decides, from a member's attributes alone, whether the member satisfies
the role a step requires.  Both authorization (who may act) and
role-routed notification (who is told) use the same predicate, so the
two can never disagree.

Architecture position
---------------------
**Kernel domain layer** -- pure.  No I/O.

Role predicate
--------------
===================  ==============================================
Required role        Satisfied by
===================  ==============================================
MANAGER              the requester's direct reporting manager
HR_MANAGER           a member with HR access
FINANCE_MANAGER      a member with finance access
OPERATIONS_MANAGER   a member with operations access
DIRECTOR / ADMIN     a tenant admin
(any role)           a member whose ``approval_role`` equals it
===================  ==============================================

Tenant admins additionally override every role during authorization;
that override lives in the authorizer, not in this predicate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from approvals_kernel.domain.approval import MEMBER_NOT_FOUND, not_authorized


class ApprovalRole(str, Enum):
    """Built-in approval roles.  Tenants may also use free-form role strings."""

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR_MANAGER = "HR_MANAGER"
    FINANCE_MANAGER = "FINANCE_MANAGER"
    OPERATIONS_MANAGER = "OPERATIONS_MANAGER"
    DIRECTOR = "DIRECTOR"
    ADMIN = "ADMIN"


class AudiencePolicy(str, Enum):
    """How the approver audience of a step is computed.

    ADMIN_PROXY notifies the tenant admins (falling back to owners) for
    every required role: admins can act on any step, so they always form
    a valid audience.  ROLE_ROUTED notifies exactly the members for whom
    the role predicate holds.
    """

    ADMIN_PROXY = "ADMIN_PROXY"
    ROLE_ROUTED = "ROLE_ROUTED"


@dataclass(frozen=True)
class MemberAuthority:
    """The attributes of a team member that bear on approval authority."""

    member_id: UUID
    tenant_id: UUID
    name: str = ""
    email: str | None = None
    is_admin: bool = False
    is_owner: bool = False
    approval_role: str | None = None
    has_hr_access: bool = False
    has_finance_access: bool = False
    has_operations_access: bool = False
    reporting_manager_id: UUID | None = None
    is_deleted: bool = False

    @property
    def can_approve(self) -> bool:
        return not self.is_deleted


def _role_value(role: ApprovalRole | str) -> str:
    return role.value if isinstance(role, ApprovalRole) else str(role)


def member_satisfies_role(
    member: MemberAuthority,
    required_role: ApprovalRole | str,
    requester: MemberAuthority | None = None,
) -> bool:
    """Whether ``member`` holds ``required_role`` for a request by ``requester``.

    MANAGER is relative to the requester; without a requester only the
    explicit ``approval_role`` can satisfy it.
    """
    if not member.can_approve:
        return False

    role = _role_value(required_role)
    if member.approval_role is not None and member.approval_role == role:
        return True

    if role == ApprovalRole.MANAGER.value:
        return (
            requester is not None
            and requester.reporting_manager_id is not None
            and requester.reporting_manager_id == member.member_id
        )
    if role == ApprovalRole.HR_MANAGER.value:
        return member.has_hr_access
    if role == ApprovalRole.FINANCE_MANAGER.value:
        return member.has_finance_access
    if role == ApprovalRole.OPERATIONS_MANAGER.value:
        return member.has_operations_access
    if role in (ApprovalRole.DIRECTOR.value, ApprovalRole.ADMIN.value):
        return member.is_admin
    return False


@dataclass(frozen=True)
class AuthorizationDecision:
    """Whether a member may act on a step, and on whose authority."""

    allowed: bool
    reason: str | None = None
    via_delegation: bool = False
    delegator_id: UUID | None = None


def authorize_member(
    member: MemberAuthority | None,
    required_role: ApprovalRole | str,
    requester: MemberAuthority | None = None,
    delegators: tuple[MemberAuthority, ...] | list[MemberAuthority] = (),
) -> AuthorizationDecision:
    """Decide whether ``member`` may act on a step requiring ``required_role``.

    Checked in order: existence, admin override, the role predicate, then
    each active delegator's role.
    """
    if member is None or not member.can_approve:
        return AuthorizationDecision(allowed=False, reason=MEMBER_NOT_FOUND)

    if member.is_admin:
        return AuthorizationDecision(allowed=True)

    if member_satisfies_role(member, required_role, requester):
        return AuthorizationDecision(allowed=True)

    for delegator in delegators:
        if member_satisfies_role(delegator, required_role, requester):
            return AuthorizationDecision(
                allowed=True,
                via_delegation=True,
                delegator_id=delegator.member_id,
            )

    return AuthorizationDecision(
        allowed=False,
        reason=not_authorized(_role_value(required_role)),
    )


class MemberDirectory(Protocol):
    """Pluggable lookup of team members and their approval authority.

    Every call reads current state: authority is never cached across
    approval actions.
    """

    def get_authority(self, member_id: UUID) -> MemberAuthority | None:
        """Return the member, or None when no such member exists."""
        ...

    def active_delegators(self, delegatee_id: UUID, as_of: datetime) -> list[MemberAuthority]:
        """Members who have delegated their authority to ``delegatee_id`` at ``as_of``."""
        ...

    def list_admins(self, tenant_id: UUID) -> list[MemberAuthority]:
        """Non-deleted admins of the tenant."""
        ...

    def list_owners(self, tenant_id: UUID) -> list[MemberAuthority]:
        """Non-deleted owners of the tenant."""
        ...

    def list_active_members(self, tenant_id: UUID) -> list[MemberAuthority]:
        """All non-deleted members of the tenant."""
        ...
