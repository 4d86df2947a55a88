"""
Module: approvals_kernel.selectors.approval_selector
Responsibility: Read-only queries over approval chains: existence, the
    current step, progress summaries and a member's approval inbox.
Architecture position: Kernel > Selectors.

Notes:
    A chain is the set of steps sharing (entity_type, entity_id).  The
    current step is the PENDING step with the lowest level_order; it is
    recomputed from the rows on every call and never stored.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from approvals_kernel.domain.approval import (
    ApprovalStep,
    ChainStatus,
    ChainSummary,
    EntityType,
    StepStatus,
    summarize_chain,
)
from approvals_kernel.domain.roles import (
    MemberAuthority,
    MemberDirectory,
    authorize_member,
)
from approvals_kernel.models.approval_step import ApprovalStepModel
from approvals_kernel.selectors.base import BaseSelector


def _entity_filter(entity_type: EntityType | str, entity_id: str):
    return (
        ApprovalStepModel.entity_type == EntityType(entity_type).value,
        ApprovalStepModel.entity_id == entity_id,
    )


class ApprovalSelector(BaseSelector[ApprovalStepModel]):
    """Read-only access to approval chains."""

    def count_steps(self, entity_type: EntityType | str, entity_id: str) -> int:
        return self.session.execute(
            select(func.count(ApprovalStepModel.id)).where(
                *_entity_filter(entity_type, entity_id)
            )
        ).scalar_one()

    def chain_tenant_id(self, entity_type: EntityType | str, entity_id: str) -> UUID | None:
        """Tenant owning the entity's chain, or None when it has no steps."""
        return self.session.execute(
            select(ApprovalStepModel.tenant_id)
            .where(*_entity_filter(entity_type, entity_id))
            .limit(1)
        ).scalars().first()

    def has_chain(self, entity_type: EntityType | str, entity_id: str) -> bool:
        return self.count_steps(entity_type, entity_id) > 0

    def count_pending(self, entity_type: EntityType | str, entity_id: str) -> int:
        return self.session.execute(
            select(func.count(ApprovalStepModel.id)).where(
                *_entity_filter(entity_type, entity_id),
                ApprovalStepModel.status == StepStatus.PENDING.value,
            )
        ).scalar_one()

    def get_chain(
        self, entity_type: EntityType | str, entity_id: str
    ) -> tuple[ApprovalStep, ...]:
        """All steps of the chain in ascending level order."""
        rows = self.session.execute(
            select(ApprovalStepModel)
            .where(*_entity_filter(entity_type, entity_id))
            .order_by(ApprovalStepModel.level_order)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return tuple(row.to_dto() for row in rows)

    def current_pending_step(
        self, entity_type: EntityType | str, entity_id: str
    ) -> ApprovalStep | None:
        row = self.session.execute(
            select(ApprovalStepModel)
            .where(
                *_entity_filter(entity_type, entity_id),
                ApprovalStepModel.status == StepStatus.PENDING.value,
            )
            .order_by(ApprovalStepModel.level_order)
            .limit(1)
            .execution_options(populate_existing=True)
        ).scalars().first()
        return row.to_dto() if row is not None else None

    def chain_summary(self, entity_type: EntityType | str, entity_id: str) -> ChainSummary:
        return summarize_chain(self.get_chain(entity_type, entity_id))

    def is_fully_approved(self, entity_type: EntityType | str, entity_id: str) -> bool:
        return self.chain_summary(entity_type, entity_id).status is ChainStatus.APPROVED

    def was_rejected(self, entity_type: EntityType | str, entity_id: str) -> bool:
        return self.session.execute(
            select(func.count(ApprovalStepModel.id)).where(
                *_entity_filter(entity_type, entity_id),
                ApprovalStepModel.status == StepStatus.REJECTED.value,
            )
        ).scalar_one() > 0

    def pending_for_member(
        self,
        tenant_id: UUID,
        member_id: UUID,
        directory: MemberDirectory,
        as_of: datetime,
    ) -> list[ApprovalStep]:
        """Current steps, across the tenant's chains, that the member may act on.

        Only the current step of each chain is considered: a member is never
        offered a level that is not yet reachable.
        """
        member = directory.get_authority(member_id)
        if member is None or not member.can_approve or member.tenant_id != tenant_id:
            return []

        rows = self.session.execute(
            select(ApprovalStepModel)
            .where(
                ApprovalStepModel.tenant_id == tenant_id,
                ApprovalStepModel.status == StepStatus.PENDING.value,
            )
            .order_by(
                ApprovalStepModel.entity_type,
                ApprovalStepModel.entity_id,
                ApprovalStepModel.level_order,
            )
            .execution_options(populate_existing=True)
        ).scalars().all()

        current: dict[tuple[str, str], ApprovalStep] = {}
        for row in rows:
            key = (row.entity_type, row.entity_id)
            if key not in current:
                current[key] = row.to_dto()

        delegators = [
            d for d in directory.active_delegators(member_id, as_of)
            if d.tenant_id == tenant_id
        ]
        requesters: dict[UUID, MemberAuthority | None] = {}
        result: list[ApprovalStep] = []
        for step in current.values():
            if step.requester_id is not None and step.requester_id not in requesters:
                requesters[step.requester_id] = directory.get_authority(step.requester_id)
            requester = requesters.get(step.requester_id) if step.requester_id else None
            decision = authorize_member(member, step.required_role, requester, delegators)
            if decision.allowed:
                result.append(step)

        return result
