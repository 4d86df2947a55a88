"""
approvals_kernel.services.entity_approval -- One call per user action.

Responsibility:
    The entry point request handlers use.  Wraps policy resolution, chain
    initialization and step processing in a transaction of their own,
    lets the entity adapter record the final decision in that same
    transaction, and dispatches notifications once it has committed.

Architecture position:
    Kernel > Services.  Owns transaction boundaries (the only kernel
    service that does), through ``session_scope``.

Invariants enforced:
    - Atomic completion: the step that completes a chain and the entity
      status written by the adapter commit together or not at all.
    - Post-commit notification: nothing is dispatched for a transition
      that rolled back, and a dispatch failure never undoes a transition.

Failure modes:
    - EntityAdapterNotFoundError for an entity type with no adapter.
    - EntityNotFoundError from the adapter when the entity is missing.
    - InvalidPolicyLevelsError for a corrupt stored policy.
    - IntegrityError when two submissions of one entity race; retrying
      returns the chain the winner created.
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from approvals_kernel.db.engine import session_scope
from approvals_kernel.domain.approval import (
    ApprovalAction,
    ApprovalCommand,
    ChainOutcome,
    EntityType,
    NotificationContext,
    ProcessApprovalResult,
    SubmissionResult,
    chain_outcome,
)
from approvals_kernel.domain.clock import Clock, SystemClock
from approvals_kernel.logging_config import LogContext, get_logger
from approvals_kernel.selectors.approval_selector import ApprovalSelector
from approvals_kernel.selectors.member_selector import MemberSelector
from approvals_kernel.services.adapters import AdapterRegistry, EntityAdapter
from approvals_kernel.services.authorization import ApprovalAuthorizer
from approvals_kernel.services.chain_initializer import ChainInitializer
from approvals_kernel.services.notification_dispatcher import (
    ApprovalNotice,
    NotificationDispatcher,
)
from approvals_kernel.services.policy_resolver import PolicyResolver
from approvals_kernel.services.step_processor import StepProcessor

logger = get_logger("services.entity_approval")


class EntityApprovalService:
    """Submit entities for approval and act on their chains."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: NotificationDispatcher,
        adapters: AdapterRegistry,
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._adapters = adapters
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_for_approval(
        self,
        entity_type: EntityType | str,
        entity_id: str,
    ) -> SubmissionResult:
        """Create the entity's chain and notify its first approvers.

        A chain still in progress or already approved is returned as it is,
        without notifying anyone again.  A rejected chain is discarded and
        replaced, so a corrected entity starts over at level 1.

        When no policy applies, no chain is created and every tenant admin
        is notified instead; the caller continues with its flat approval.
        """
        entity_type = EntityType(entity_type)
        adapter = self._adapters.get(entity_type)

        with LogContext.bind(entity_type=entity_type.value, entity_id=entity_id):
            with session_scope(self._session_factory) as session:
                submission = adapter.get_submission(session, entity_id)
                context = adapter.get_notification_context(session, entity_id)
                initializer = ChainInitializer(session, self._clock)

                existing = ApprovalSelector(session).get_chain(entity_type, entity_id)
                if existing and chain_outcome(existing) is ChainOutcome.REJECTED:
                    initializer.discard_chain(entity_type, entity_id, existing[0].tenant_id)
                    logger.info("approval_chain_restarted", extra={"previous_steps": len(existing)})
                    existing = ()

                if existing:
                    logger.info("approval_submission_repeated")
                    return SubmissionResult(
                        entity_type=entity_type,
                        entity_id=entity_id,
                        chain_exists=True,
                        steps=existing,
                    )

                policy = PolicyResolver(session).find_applicable_policy(
                    entity_type, submission.policy_context(),
                )
                steps = ()
                if policy is not None:
                    steps = initializer.initialize_approval_chain(
                        entity_type,
                        entity_id,
                        policy,
                        submission.tenant_id,
                        submission.requester_id,
                    )

            notice = ApprovalNotice(
                tenant_id=submission.tenant_id,
                entity_type=entity_type,
                entity_id=entity_id,
                requester_id=submission.requester_id,
                context=context,
            )

            if steps:
                self._dispatch(self._dispatcher.notify_next_level, steps, notice)
            else:
                logger.info("approval_submission_without_policy")
                self._dispatch(self._dispatcher.notify_admins_fallback, notice)

            return SubmissionResult(
                entity_type=entity_type,
                entity_id=entity_id,
                chain_exists=bool(steps),
                steps=tuple(steps),
                policy_name=policy.name if policy is not None else None,
            )

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def process_entity_approval(self, command: ApprovalCommand) -> ProcessApprovalResult:
        """Apply an approver's decision and finalize the entity when the chain completes."""
        entity_type = EntityType(command.entity_type)
        adapter = self._adapters.get(entity_type)

        with session_scope(self._session_factory) as session:
            result = self._processor(session).process(command)
            context = self._finalize(session, adapter, command.entity_id, command.approver_id, result, command.notes)

        if result.step_processed and context is not None:
            notice = ApprovalNotice(
                tenant_id=command.tenant_id,
                entity_type=entity_type,
                entity_id=command.entity_id,
                requester_id=command.requester_id,
                context=context,
            )
            if result.is_chain_complete:
                reason = command.notes if result.outcome is ChainOutcome.REJECTED else None
                self._dispatch(self._dispatcher.notify_completion, result.outcome, notice, reason)
            elif command.action is ApprovalAction.APPROVE:
                self._dispatch(self._dispatcher.notify_next_level, result.chain, notice)

        return result

    def admin_bypass(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        admin_id: UUID,
        requester_id: UUID,
        tenant_id: UUID | None,
        notes: str | None = None,
    ) -> ProcessApprovalResult:
        """Approve every remaining level on an admin's authority."""
        entity_type = EntityType(entity_type)
        adapter = self._adapters.get(entity_type)

        with session_scope(self._session_factory) as session:
            result = self._processor(session).bypass_chain(
                entity_type, entity_id, admin_id, tenant_id, notes,
            )
            context = self._finalize(session, adapter, entity_id, admin_id, result, notes)

        if result.step_processed and context is not None:
            notice = ApprovalNotice(
                tenant_id=tenant_id,
                entity_type=entity_type,
                entity_id=entity_id,
                requester_id=requester_id,
                context=context,
            )
            self._dispatch(self._dispatcher.notify_completion, ChainOutcome.APPROVED, notice, None)

        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _processor(self, session: Session) -> StepProcessor:
        authorizer = ApprovalAuthorizer(MemberSelector(session), self._clock)
        return StepProcessor(session, authorizer, self._clock)

    def _finalize(
        self,
        session: Session,
        adapter: EntityAdapter,
        entity_id: str,
        actor_id: UUID,
        result: ProcessApprovalResult,
        notes: str | None,
    ) -> NotificationContext | None:
        """Run the adapter callback for a completed chain; return the notice wording."""
        if not result.step_processed:
            return None

        if result.is_chain_complete:
            acted_at = self._clock.now()
            if result.outcome is ChainOutcome.APPROVED:
                adapter.on_chain_approved(session, entity_id, actor_id, acted_at)
            else:
                adapter.on_chain_rejected(session, entity_id, actor_id, acted_at, notes)
            logger.info(
                "approval_entity_finalized",
                extra={
                    "entity_type": adapter.entity_type.value,
                    "entity_id": entity_id,
                    "outcome": result.outcome.value if result.outcome else None,
                },
            )

        return adapter.get_notification_context(session, entity_id)

    @staticmethod
    def _dispatch(fn, *args) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("approval_notification_failed", extra={"channel": "dispatch"})
