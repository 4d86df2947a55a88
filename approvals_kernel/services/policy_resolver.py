"""
approvals_kernel.services.policy_resolver -- Which policy, which levels.

Responsibility:
    Finds the approval policy that governs an entity and narrows it to the
    levels whose thresholds the entity's amount exceeds.

Architecture position:
    Kernel > Services.  Read-only: issues SELECTs and never flushes.

Invariants enforced:
    - Deterministic ranking: priority DESC, then created_at ASC, then name.
    - A policy whose levels are not numbered 1..n is never resolved; the
      InvalidPolicyLevelsError propagates to the caller.

Failure modes:
    - InvalidPolicyLevelsError when a stored policy has gapped levels.
"""

from __future__ import annotations

from sqlalchemy import select

from approvals_kernel.domain.approval import (
    ApprovalPolicy,
    EntityType,
    PolicyContext,
    select_policy,
)
from approvals_kernel.logging_config import get_logger
from approvals_kernel.models.approval_policy import ApprovalPolicyModel
from approvals_kernel.services.base import BaseService

logger = get_logger("services.policy_resolver")


class PolicyResolver(BaseService[ApprovalPolicyModel]):
    """Resolves the applicable approval policy for an entity."""

    def find_applicable_policy(
        self,
        entity_type: EntityType | str,
        context: PolicyContext,
    ) -> ApprovalPolicy | None:
        """Return the governing policy narrowed to its applicable levels.

        Returns None when the tenant is missing, no active policy matches,
        or the matching policy has no level that applies to the amount.
        """
        entity_type = EntityType(entity_type)
        if not context.tenant_id:
            logger.debug(
                "policy_resolution_skipped_no_tenant",
                extra={"entity_type": entity_type.value},
            )
            return None

        rows = self.session.execute(
            select(ApprovalPolicyModel)
            .where(
                ApprovalPolicyModel.tenant_id == context.tenant_id,
                ApprovalPolicyModel.entity_type == entity_type.value,
                ApprovalPolicyModel.is_active.is_(True),
            )
            .order_by(
                ApprovalPolicyModel.priority.desc(),
                ApprovalPolicyModel.created_at.asc(),
                ApprovalPolicyModel.name.asc(),
            )
        ).scalars().all()

        policy = select_policy([row.to_dto() for row in rows], context)

        if policy is None:
            logger.info(
                "policy_not_found",
                extra={
                    "entity_type": entity_type.value,
                    "tenant_id": str(context.tenant_id),
                    "candidates": len(rows),
                    "amount": context.amount,
                    "days": context.days,
                },
            )
            return None

        logger.info(
            "policy_resolved",
            extra={
                "entity_type": entity_type.value,
                "policy_name": policy.name,
                "policy_id": str(policy.policy_id),
                "level_count": len(policy.levels),
                "amount": context.amount,
            },
        )
        return policy
