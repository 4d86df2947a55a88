"""
approvals_kernel.services.authorization -- May this member act on this step?

Responsibility:
    Gathers the facts the role predicate needs (the acting member, the
    requester, any active delegations) from a ``MemberDirectory`` and
    returns an ``AuthorizationDecision``.

Architecture position:
    Kernel > Services.  Read-only.

Invariants enforced:
    - Authority is evaluated fresh on every call: a member demoted or
      deleted between two actions loses authority for the second one.
    - A member acts only on steps of their own tenant; tenant admins may
      act on any of those steps.
    - The requester whose manager is consulted is the one persisted on
      the step, not whoever the caller names.
"""

from __future__ import annotations

from uuid import UUID

from approvals_kernel.domain.approval import MEMBER_NOT_FOUND, ApprovalStep
from approvals_kernel.domain.clock import Clock, SystemClock
from approvals_kernel.domain.roles import (
    AuthorizationDecision,
    MemberAuthority,
    MemberDirectory,
    authorize_member,
)
from approvals_kernel.logging_config import get_logger

logger = get_logger("services.authorization")


class ApprovalAuthorizer:
    """Decides whether a member may act on an approval step."""

    def __init__(self, directory: MemberDirectory, clock: Clock | None = None) -> None:
        self._directory = directory
        self._clock = clock or SystemClock()

    def get_member(self, member_id: UUID) -> MemberAuthority | None:
        return self._directory.get_authority(member_id)

    def can_member_approve(
        self,
        member_id: UUID,
        step: ApprovalStep,
        requester_id: UUID | None = None,
    ) -> AuthorizationDecision:
        member = self._directory.get_authority(member_id)
        if member is not None and member.tenant_id != step.tenant_id:
            logger.warning(
                "approval_member_outside_tenant",
                extra={
                    "member_id": str(member_id),
                    "member_tenant_id": str(member.tenant_id),
                    "step_tenant_id": str(step.tenant_id),
                },
            )
            return AuthorizationDecision(allowed=False, reason=MEMBER_NOT_FOUND)

        requester_id = step.requester_id or requester_id
        requester = (
            self._directory.get_authority(requester_id)
            if requester_id is not None
            else None
        )

        decision = authorize_member(member, step.required_role, requester)
        if decision.allowed or member is None or not member.can_approve:
            return decision

        delegators = [
            d for d in self._directory.active_delegators(member_id, self._clock.now())
            if d.tenant_id == step.tenant_id
        ]
        if not delegators:
            return decision

        delegated = authorize_member(member, step.required_role, requester, delegators)
        if delegated.via_delegation:
            logger.info(
                "approval_authorized_via_delegation",
                extra={
                    "member_id": str(member_id),
                    "delegator_id": str(delegated.delegator_id),
                    "required_role": step.required_role,
                    "level_order": step.level_order,
                },
            )
        return delegated
