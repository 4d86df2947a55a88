"""
approvals_kernel.services.step_processor -- Advance a chain by one decision.

Responsibility:
    Applies an approver's APPROVE or REJECT to the current step of an
    entity's chain, cascades a rejection to the remaining levels, and
    reports whether the chain is now complete.

Architecture position:
    Kernel > Services.  Flushes (via bulk UPDATE statements), never commits.
    Notification dispatch is NOT done here: the caller dispatches after its
    transaction commits.

Invariants enforced:
    - Claim-and-act: the step transition is a single conditional UPDATE
      ``WHERE id = :step AND status = 'PENDING'``.  Of any number of
      concurrent actors, exactly one sees rowcount == 1; the rest get
      "Step already processed" and change nothing.  No lock is taken.
    - Sequential processing: only the lowest PENDING level can be acted on.
    - Tenant isolation: a command naming another tenant than the chain's
      owner changes nothing and reports no chain for that tenant.
    - Rejection cascade: a rejection moves every later PENDING level to
      SKIPPED in one conditional UPDATE, so the chain completes at once.
    - Idempotent completion: acting on a complete chain is a no-op that
      reports ``is_chain_complete=True``.

Failure modes:
    - Soft outcomes (no chain, foreign tenant, unauthorized, lost race,
      wrong level) are returned on ProcessApprovalResult, never raised.
    - Database errors propagate unchanged.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import update

from approvals_kernel.domain.approval import (
    ONLY_ADMINS_CAN_BYPASS,
    STEP_ALREADY_PROCESSED,
    ApprovalAction,
    ApprovalCommand,
    ApprovalStep,
    EntityType,
    ProcessApprovalResult,
    StepStatus,
    chain_outcome,
    no_pending_step_at_level,
    summarize_chain,
)
from approvals_kernel.domain.clock import Clock, SystemClock
from approvals_kernel.logging_config import LogContext, get_logger
from approvals_kernel.models.approval_step import ApprovalStepModel
from approvals_kernel.selectors.approval_selector import ApprovalSelector
from approvals_kernel.services.authorization import ApprovalAuthorizer
from approvals_kernel.services.base import BaseService

logger = get_logger("services.step_processor")

BYPASS_NOTE = "Approved by admin (bypass)"


class StepProcessor(BaseService[ApprovalStepModel]):
    """Processes approval decisions against persisted chains."""

    def __init__(
        self,
        session,
        authorizer: ApprovalAuthorizer,
        clock: Clock | None = None,
        selector: ApprovalSelector | None = None,
    ) -> None:
        super().__init__(session)
        self._authorizer = authorizer
        self._clock = clock or SystemClock()
        self._selector = selector or ApprovalSelector(session)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(self, command: ApprovalCommand) -> ProcessApprovalResult:
        """Apply one approval decision.  See module docstring for guarantees."""
        entity_type = EntityType(command.entity_type)
        entity_id = command.entity_id

        with LogContext.bind(
            tenant_id=command.tenant_id,
            actor_id=command.approver_id,
            entity_type=entity_type.value,
            entity_id=entity_id,
        ):
            if not command.tenant_id:
                logger.debug("approval_skipped_no_tenant")
                return ProcessApprovalResult.no_chain()

            owner = self._selector.chain_tenant_id(entity_type, entity_id)
            if owner is None:
                logger.debug("approval_chain_absent")
                return ProcessApprovalResult.no_chain()
            if owner != command.tenant_id:
                logger.warning(
                    "approval_chain_tenant_mismatch",
                    extra={"owner_tenant_id": str(owner)},
                )
                return ProcessApprovalResult.foreign_tenant()

            step = self._selector.current_pending_step(entity_type, entity_id)
            if step is None:
                logger.info("approval_chain_already_complete")
                return self._complete_result(entity_type, entity_id)

            if command.level_order is not None and command.level_order != step.level_order:
                logger.info(
                    "approval_level_mismatch",
                    extra={
                        "requested_level": command.level_order,
                        "current_level": step.level_order,
                    },
                )
                return ProcessApprovalResult(
                    chain_exists=True,
                    is_chain_complete=False,
                    step_processed=False,
                    error=no_pending_step_at_level(command.level_order),
                    step=step,
                )

            decision = self._authorizer.can_member_approve(
                command.approver_id, step, command.requester_id,
            )
            if not decision.allowed:
                logger.info(
                    "approval_unauthorized",
                    extra={
                        "level_order": step.level_order,
                        "required_role": step.required_role,
                        "reason": decision.reason,
                    },
                )
                return ProcessApprovalResult(
                    chain_exists=True,
                    is_chain_complete=False,
                    step_processed=False,
                    error=decision.reason,
                    step=step,
                )

            now = self._clock.now()
            claimed = self._claim(
                step,
                command.action.step_status,
                command.approver_id,
                now,
                command.notes,
            )
            if not claimed:
                logger.warning(
                    "approval_claim_lost",
                    extra={
                        "step_id": str(step.step_id),
                        "level_order": step.level_order,
                        "action": command.action.value,
                    },
                )
                return ProcessApprovalResult(
                    chain_exists=True,
                    is_chain_complete=False,
                    step_processed=False,
                    error=STEP_ALREADY_PROCESSED,
                )

            logger.info(
                "approval_step_claimed",
                extra={
                    "step_id": str(step.step_id),
                    "level_order": step.level_order,
                    "action": command.action.value,
                    "via_delegation": decision.via_delegation,
                },
            )

            if command.action is ApprovalAction.REJECT:
                skipped = self._skip_remaining(step, now)
                logger.info(
                    "approval_chain_rejected",
                    extra={
                        "level_order": step.level_order,
                        "skipped_steps": skipped,
                    },
                )

            return self._processed_result(entity_type, entity_id, step.step_id)

    def bypass_chain(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        admin_id: UUID,
        tenant_id: UUID | None,
        notes: str | None = None,
    ) -> ProcessApprovalResult:
        """Approve every remaining PENDING step on an admin's authority."""
        entity_type = EntityType(entity_type)

        with LogContext.bind(
            tenant_id=tenant_id,
            actor_id=admin_id,
            entity_type=entity_type.value,
            entity_id=entity_id,
        ):
            owner = self._selector.chain_tenant_id(entity_type, entity_id) if tenant_id else None
            if owner is None:
                return ProcessApprovalResult.no_chain()
            if owner != tenant_id:
                logger.warning(
                    "approval_chain_tenant_mismatch",
                    extra={"owner_tenant_id": str(owner)},
                )
                return ProcessApprovalResult.foreign_tenant()

            if self._selector.count_pending(entity_type, entity_id) == 0:
                return self._complete_result(entity_type, entity_id)

            member = self._authorizer.get_member(admin_id)
            if (
                member is None
                or member.tenant_id != tenant_id
                or not member.can_approve
                or not member.is_admin
            ):
                logger.info("approval_bypass_unauthorized")
                return ProcessApprovalResult(
                    chain_exists=True,
                    is_chain_complete=False,
                    step_processed=False,
                    error=ONLY_ADMINS_CAN_BYPASS,
                )

            now = self._clock.now()
            result = self.session.execute(
                update(ApprovalStepModel)
                .where(
                    ApprovalStepModel.entity_type == entity_type.value,
                    ApprovalStepModel.entity_id == entity_id,
                    ApprovalStepModel.status == StepStatus.PENDING.value,
                )
                .values(
                    status=StepStatus.APPROVED.value,
                    approver_id=admin_id,
                    action_at=now,
                    notes=notes or BYPASS_NOTE,
                    updated_by_id=admin_id,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.warning("approval_bypass_claim_lost")
                return ProcessApprovalResult(
                    chain_exists=True,
                    is_chain_complete=False,
                    step_processed=False,
                    error=STEP_ALREADY_PROCESSED,
                )

            logger.info(
                "approval_chain_bypassed",
                extra={"approved_steps": result.rowcount},
            )
            return self._processed_result(entity_type, entity_id, step_id=None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _claim(
        self,
        step: ApprovalStep,
        new_status: StepStatus,
        approver_id: UUID,
        acted_at: datetime,
        notes: str | None,
    ) -> bool:
        """Conditionally move the step out of PENDING.  True if this call won."""
        result = self.session.execute(
            update(ApprovalStepModel)
            .where(
                ApprovalStepModel.id == step.step_id,
                ApprovalStepModel.status == StepStatus.PENDING.value,
            )
            .values(
                status=new_status.value,
                approver_id=approver_id,
                action_at=acted_at,
                notes=notes,
                updated_by_id=approver_id,
                updated_at=acted_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _skip_remaining(self, step: ApprovalStep, acted_at: datetime) -> int:
        result = self.session.execute(
            update(ApprovalStepModel)
            .where(
                ApprovalStepModel.entity_type == step.entity_type.value,
                ApprovalStepModel.entity_id == step.entity_id,
                ApprovalStepModel.status == StepStatus.PENDING.value,
                ApprovalStepModel.level_order > step.level_order,
            )
            .values(
                status=StepStatus.SKIPPED.value,
                updated_at=acted_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _complete_result(
        self, entity_type: EntityType, entity_id: str
    ) -> ProcessApprovalResult:
        chain = self._selector.get_chain(entity_type, entity_id)
        return ProcessApprovalResult(
            chain_exists=True,
            is_chain_complete=True,
            step_processed=False,
            outcome=chain_outcome(chain),
            chain=chain,
            summary=summarize_chain(chain),
        )

    def _processed_result(
        self,
        entity_type: EntityType,
        entity_id: str,
        step_id: UUID | None,
    ) -> ProcessApprovalResult:
        chain = self._selector.get_chain(entity_type, entity_id)
        pending = [s for s in chain if s.status is StepStatus.PENDING]
        is_complete = not pending
        processed = next((s for s in chain if s.step_id == step_id), None)
        return ProcessApprovalResult(
            chain_exists=True,
            is_chain_complete=is_complete,
            step_processed=True,
            step=processed,
            next_step=pending[0] if pending else None,
            outcome=chain_outcome(chain) if is_complete else None,
            chain=chain,
            summary=summarize_chain(chain),
        )
