"""
Module: approvals_kernel.selectors.member_selector
Responsibility: Read-only lookup of team members and delegations.  This is
    the SQL implementation of the ``MemberDirectory`` collaborator used by
    the authorizer and the notification dispatcher.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import aliased

from approvals_kernel.domain.roles import MemberAuthority
from approvals_kernel.models.team_member import (
    ApproverDelegationModel,
    TeamMemberModel,
)
from approvals_kernel.selectors.base import BaseSelector


class MemberSelector(BaseSelector[TeamMemberModel]):
    """SQL-backed ``MemberDirectory``.

    Deleted members are returned by ``get_authority`` (flagged
    ``is_deleted``) so the authorizer can tell "missing" from "removed",
    and are excluded from every list.
    """

    def get_authority(self, member_id: UUID) -> MemberAuthority | None:
        model = self.session.get(TeamMemberModel, member_id)
        if model is None:
            return None
        return model.to_authority()

    def active_delegators(self, delegatee_id: UUID, as_of: datetime) -> list[MemberAuthority]:
        delegator = aliased(TeamMemberModel)
        rows = self.session.execute(
            select(delegator)
            .join(
                ApproverDelegationModel,
                ApproverDelegationModel.delegator_id == delegator.id,
            )
            .where(
                ApproverDelegationModel.delegatee_id == delegatee_id,
                ApproverDelegationModel.is_active.is_(True),
                ApproverDelegationModel.start_at <= as_of,
                ApproverDelegationModel.end_at >= as_of,
                delegator.is_deleted.is_(False),
            )
            .order_by(delegator.name)
        ).scalars().all()
        return [row.to_authority() for row in rows]

    def list_admins(self, tenant_id: UUID) -> list[MemberAuthority]:
        return self._list(tenant_id, TeamMemberModel.is_admin.is_(True))

    def list_owners(self, tenant_id: UUID) -> list[MemberAuthority]:
        return self._list(tenant_id, TeamMemberModel.is_owner.is_(True))

    def list_active_members(self, tenant_id: UUID) -> list[MemberAuthority]:
        return self._list(tenant_id)

    def _list(self, tenant_id: UUID, *criteria) -> list[MemberAuthority]:
        rows = self.session.execute(
            select(TeamMemberModel)
            .where(
                TeamMemberModel.tenant_id == tenant_id,
                TeamMemberModel.is_deleted.is_(False),
                *criteria,
            )
            .order_by(TeamMemberModel.name)
        ).scalars().all()
        return [row.to_authority() for row in rows]
