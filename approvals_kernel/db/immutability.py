"""
ORM-Level Immutability Enforcement for approval steps.

===============================================================================
WHAT IS PROTECTED
===============================================================================

An approval step is mutated exactly once: PENDING -> APPROVED / REJECTED by
an actor, or PENDING -> SKIPPED by a rejection cascade.  After that the row
is a historical record of who decided what and when.

Entity            | When Immutable                        | Enforced by
------------------|---------------------------------------|------------------------------
ApprovalStepModel | status in APPROVED/REJECTED/SKIPPED   | before_update listener (this file)
ApprovalStepModel | status in APPROVED/REJECTED/SKIPPED   | WHERE status = 'PENDING' on every
                  |                                       | bulk UPDATE (step_processor.py)

The bulk conditional UPDATE statements issued by the step processor bypass
the ORM unit of work, so they never fire these listeners.  They can only
touch PENDING rows by construction.  The listener catches everything else:
application code that loads a step and assigns to it.

Deletion is NOT blocked.  Steps are deleted with their owning entity
(ChainInitializer.discard_chain), whatever their state.

===============================================================================
USAGE
===============================================================================

Called once at startup (and by the test harness):

    from approvals_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    from approvals_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from approvals_kernel.exceptions import StepImmutableError
from approvals_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_TERMINAL_STATUSES = frozenset({"APPROVED", "REJECTED", "SKIPPED"})


def _check_approval_step_immutability(mapper, connection, target):
    """
    Prevent any update to a step whose persisted status is terminal.

    The persisted status is read from attribute history so that the single
    legal transition out of PENDING is still allowed through the ORM.
    """
    from approvals_kernel.models.approval_step import ApprovalStepModel

    if not isinstance(target, ApprovalStepModel):
        return

    history = inspect(target).attrs.status.history
    if history.deleted:
        persisted_status = history.deleted[0]
    else:
        persisted_status = target.status

    if persisted_status not in _TERMINAL_STATUSES:
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "model": "ApprovalStep",
            "step_id": str(target.id),
            "status": persisted_status,
            "operation": "UPDATE",
        },
    )
    raise StepImmutableError(step_id=str(target.id), status=persisted_status)


def register_immutability_listeners():
    """
    Register the approval step immutability listener.

    Call this after the models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    from approvals_kernel.models.approval_step import ApprovalStepModel

    if not event.contains(
        ApprovalStepModel, "before_update", _check_approval_step_immutability
    ):
        event.listen(
            ApprovalStepModel, "before_update", _check_approval_step_immutability
        )


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the immutability listener.

    WARNING: Only use this in tests that intentionally violate immutability.
    """
    from approvals_kernel.models.approval_step import ApprovalStepModel

    _safe_remove_listener(
        ApprovalStepModel, "before_update", _check_approval_step_immutability
    )
