"""
approvals_kernel.services.chain_initializer -- Create and discard chains.

Responsibility:
    Persists one PENDING step per applicable level of a resolved policy,
    and deletes a chain when its owning entity goes away.

Architecture position:
    Kernel > Services.  Flushes, never commits.

Invariants enforced:
    - Steps store the required role and level order, never a concrete
      approver: who may act is decided at action time.
    - Idempotent initialization: an entity that already has steps gets its
      existing chain back and no new rows.
    - Uniqueness of (entity_type, entity_id, level_order) is backed by
      uq_approval_steps_entity_level.

Failure modes:
    - IntegrityError when two submissions of the same entity race past the
      existence check.  The loser's transaction must be rolled back; a retry
      then returns the winner's chain.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete

from approvals_kernel.domain.approval import (
    ApprovalPolicy,
    ApprovalStep,
    EntityType,
    StepStatus,
)
from approvals_kernel.domain.clock import Clock, SystemClock
from approvals_kernel.logging_config import get_logger
from approvals_kernel.models.approval_step import ApprovalStepModel
from approvals_kernel.selectors.approval_selector import ApprovalSelector
from approvals_kernel.services.base import BaseService

logger = get_logger("services.chain_initializer")


class ChainInitializer(BaseService[ApprovalStepModel]):
    """Materializes approval chains for entities."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._selector = ApprovalSelector(session)

    def initialize_approval_chain(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        policy: ApprovalPolicy,
        tenant_id: UUID,
        requester_id: UUID,
    ) -> tuple[ApprovalStep, ...]:
        """Create the chain for an entity, or return the one it already has."""
        entity_type = EntityType(entity_type)

        existing = self._selector.get_chain(entity_type, entity_id)
        if existing:
            logger.info(
                "approval_chain_already_initialized",
                extra={
                    "entity_type": entity_type.value,
                    "entity_id": entity_id,
                    "step_count": len(existing),
                },
            )
            return existing

        now = self._clock.now()
        models = [
            ApprovalStepModel(
                tenant_id=tenant_id,
                entity_type=entity_type.value,
                entity_id=entity_id,
                level_order=level.level_order,
                required_role=level.required_role,
                status=StepStatus.PENDING.value,
                created_by_id=requester_id,
                created_at=now,
                updated_at=now,
            )
            for level in sorted(policy.levels, key=lambda lvl: lvl.level_order)
        ]
        self.session.add_all(models)
        self.session.flush()

        logger.info(
            "approval_chain_initialized",
            extra={
                "entity_type": entity_type.value,
                "entity_id": entity_id,
                "policy_name": policy.name,
                "step_count": len(models),
                "roles": [m.required_role for m in models],
            },
        )
        return tuple(m.to_dto() for m in models)

    def discard_chain(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        tenant_id: UUID,
    ) -> int:
        """Delete every step of the chain.  Returns the number of rows removed."""
        entity_type = EntityType(entity_type)
        result = self.session.execute(
            delete(ApprovalStepModel)
            .where(
                ApprovalStepModel.tenant_id == tenant_id,
                ApprovalStepModel.entity_type == entity_type.value,
                ApprovalStepModel.entity_id == entity_id,
            )
            .execution_options(synchronize_session="fetch")
        )
        logger.info(
            "approval_chain_discarded",
            extra={
                "entity_type": entity_type.value,
                "entity_id": entity_id,
                "deleted_steps": result.rowcount,
            },
        )
        return result.rowcount
