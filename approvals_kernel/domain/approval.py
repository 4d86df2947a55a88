"""
Approval chain domain types (``approvals_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the multi-level approval engine.  Defines the
step lifecycle, policy and level data, the command and result records
of the step processor, and the pure functions that decide which levels
of a policy apply and how a chain is summarized.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.  May
import only from ``approvals_kernel.exceptions``.

Invariants enforced
-------------------
* Step lifecycle: ``STEP_TRANSITIONS`` defines the only valid status
  transitions.  Terminal states have no outgoing edges.
* Level ordering: ``validate_levels`` rejects any level set whose orders
  are not exactly ``1..n``.
* Threshold gating: a level with a threshold applies only when the
  amount is known and strictly greater than the threshold.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Sequence
from uuid import UUID

from approvals_kernel.exceptions import InvalidPolicyLevelsError


# =========================================================================
# Entity types
# =========================================================================


class EntityType(str, Enum):
    """Business entities that can be routed through an approval chain."""

    LEAVE_REQUEST = "LEAVE_REQUEST"
    PURCHASE_REQUEST = "PURCHASE_REQUEST"
    ASSET_REQUEST = "ASSET_REQUEST"
    PAYROLL_RUN = "PAYROLL_RUN"


# =========================================================================
# Step lifecycle
# =========================================================================


class StepStatus(str, Enum):
    """Approval step lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SKIPPED = "SKIPPED"


STEP_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.PENDING: frozenset({
        StepStatus.APPROVED,
        StepStatus.REJECTED,
        StepStatus.SKIPPED,
    }),
    StepStatus.APPROVED: frozenset(),
    StepStatus.REJECTED: frozenset(),
    StepStatus.SKIPPED: frozenset(),
}

TERMINAL_STEP_STATUSES: frozenset[StepStatus] = frozenset({
    StepStatus.APPROVED,
    StepStatus.REJECTED,
    StepStatus.SKIPPED,
})


class ApprovalAction(str, Enum):
    """Actions an approver can take on the current step."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"

    @property
    def step_status(self) -> StepStatus:
        if self is ApprovalAction.APPROVE:
            return StepStatus.APPROVED
        return StepStatus.REJECTED


class ChainOutcome(str, Enum):
    """Final outcome of a completed chain."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ChainStatus(str, Enum):
    """Derived status of a chain as reported by ``summarize_chain``."""

    NOT_STARTED = "NOT_STARTED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Soft-outcome error strings carried on ProcessApprovalResult.error
STEP_ALREADY_PROCESSED = "Step already processed"
MEMBER_NOT_FOUND = "Member not found"
ONLY_ADMINS_CAN_BYPASS = "Only admins can bypass approvals"
CHAIN_NOT_IN_TENANT = "Approval chain not found for tenant"


def no_pending_step_at_level(level_order: int) -> str:
    return f"No pending step at level {level_order}"


def not_authorized(required_role: str) -> str:
    return f"Not authorized: requires {required_role} approval"


# =========================================================================
# Policy and level types
# =========================================================================


@dataclass(frozen=True)
class ApprovalLevel:
    """One level of an approval policy.

    ``threshold`` gates the level on the entity amount: the level applies
    only when the amount is strictly greater than the threshold.  A level
    without a threshold always applies.
    """

    level_order: int
    required_role: str
    threshold: Decimal | None = None

    def applies_to(self, amount: Decimal | None) -> bool:
        if self.threshold is None:
            return True
        if amount is None:
            return False
        return amount > self.threshold


@dataclass(frozen=True)
class ApprovalPolicy:
    """A tenant's approval policy for one entity type.

    Policies are ranked by ``priority`` (higher wins), then by creation
    time (older wins).  The optional ``min_*``/``max_*`` ranges restrict
    the policy to entities whose amount or duration falls inside them.
    """

    policy_id: UUID
    tenant_id: UUID
    name: str
    entity_type: EntityType
    levels: tuple[ApprovalLevel, ...] = ()
    is_active: bool = True
    priority: int = 0
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    min_days: Decimal | None = None
    max_days: Decimal | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PolicyContext:
    """Inputs a policy is matched against.

    ``tenant_id`` is mandatory in practice: a falsy tenant never resolves
    a policy.
    """

    tenant_id: UUID | None
    amount: Decimal | None = None
    days: Decimal | None = None


def validate_levels(policy_name: str, levels: Sequence[ApprovalLevel]) -> None:
    """Raise InvalidPolicyLevelsError unless level orders are exactly 1..n."""
    orders = tuple(sorted(level.level_order for level in levels))
    if orders != tuple(range(1, len(orders) + 1)):
        raise InvalidPolicyLevelsError(policy_name, orders)


def _within(value: Decimal | None, low: Decimal | None, high: Decimal | None) -> bool:
    if value is None:
        return True
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def policy_matches(policy: ApprovalPolicy, context: PolicyContext) -> bool:
    """Whether the policy-wide ranges accept the context.

    A bound is only checked when the context supplies the value it bounds.
    """
    if not policy.is_active:
        return False
    return _within(context.amount, policy.min_amount, policy.max_amount) and _within(
        context.days, policy.min_days, policy.max_days
    )


def filter_applicable_levels(
    levels: Sequence[ApprovalLevel],
    amount: Decimal | None,
) -> tuple[ApprovalLevel, ...]:
    """Levels whose threshold is satisfied, in ascending level order."""
    ordered = sorted(levels, key=lambda level: level.level_order)
    return tuple(level for level in ordered if level.applies_to(amount))


def select_policy(
    policies: Sequence[ApprovalPolicy],
    context: PolicyContext,
) -> ApprovalPolicy | None:
    """Pick the first matching policy and narrow it to its applicable levels.

    ``policies`` must already be in ranking order.  Returns None when no
    policy matches or the matching policy has no applicable level.
    """
    for policy in policies:
        if not policy_matches(policy, context):
            continue
        applicable = filter_applicable_levels(policy.levels, context.amount)
        if not applicable:
            return None
        return replace(policy, levels=applicable)
    return None


# =========================================================================
# Steps and chains
# =========================================================================


@dataclass(frozen=True)
class ApprovalStep:
    """Immutable snapshot of one persisted approval step."""

    step_id: UUID
    tenant_id: UUID
    entity_type: EntityType
    entity_id: str
    level_order: int
    required_role: str
    status: StepStatus = StepStatus.PENDING
    requester_id: UUID | None = None
    approver_id: UUID | None = None
    action_at: datetime | None = None
    notes: str | None = None
    created_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is StepStatus.PENDING


@dataclass(frozen=True)
class ChainSummary:
    """Progress of a chain: how many steps are done and where it stands."""

    total_steps: int
    completed_steps: int
    current_level: int | None
    status: ChainStatus


def summarize_chain(steps: Sequence[ApprovalStep]) -> ChainSummary:
    """Derive a ChainSummary from the steps of one chain."""
    if not steps:
        return ChainSummary(
            total_steps=0,
            completed_steps=0,
            current_level=None,
            status=ChainStatus.NOT_STARTED,
        )

    ordered = sorted(steps, key=lambda s: s.level_order)
    pending = [s for s in ordered if s.status is StepStatus.PENDING]
    completed = len(ordered) - len(pending)

    if any(s.status is StepStatus.REJECTED for s in ordered):
        status = ChainStatus.REJECTED
    elif pending:
        status = ChainStatus.PENDING
    else:
        status = ChainStatus.APPROVED

    return ChainSummary(
        total_steps=len(ordered),
        completed_steps=completed,
        current_level=pending[0].level_order if pending else None,
        status=status,
    )


def chain_outcome(steps: Sequence[ApprovalStep]) -> ChainOutcome | None:
    """APPROVED or REJECTED for a complete chain, None while any step is pending."""
    if not steps or any(s.status is StepStatus.PENDING for s in steps):
        return None
    if any(s.status is StepStatus.REJECTED for s in steps):
        return ChainOutcome.REJECTED
    return ChainOutcome.APPROVED


# =========================================================================
# Step processor command and result
# =========================================================================


@dataclass(frozen=True)
class ApprovalCommand:
    """An actor's decision on an entity's current approval step.

    ``level_order`` optionally pins the level the actor believes is
    current; a mismatch is reported instead of acting on another level.
    """

    entity_type: EntityType
    entity_id: str
    approver_id: UUID
    requester_id: UUID
    tenant_id: UUID | None
    action: ApprovalAction
    notes: str | None = None
    level_order: int | None = None


@dataclass(frozen=True)
class ProcessApprovalResult:
    """Outcome of one approval action.

    ``chain_exists=False`` tells the caller to fall back to its flat,
    chainless approval path.  ``error`` carries domain-expected refusals
    (not authorized, lost race, wrong level); it is never raised.
    """

    chain_exists: bool
    is_chain_complete: bool
    step_processed: bool
    error: str | None = None
    step: ApprovalStep | None = None
    next_step: ApprovalStep | None = None
    outcome: ChainOutcome | None = None
    chain: tuple[ApprovalStep, ...] = ()
    summary: ChainSummary | None = None

    @classmethod
    def no_chain(cls) -> ProcessApprovalResult:
        return cls(chain_exists=False, is_chain_complete=True, step_processed=False)

    @classmethod
    def foreign_tenant(cls) -> ProcessApprovalResult:
        """The chain exists but belongs to another tenant; nothing may proceed."""
        return cls(
            chain_exists=False,
            is_chain_complete=False,
            step_processed=False,
            error=CHAIN_NOT_IN_TENANT,
        )


# =========================================================================
# Entity-facing records
# =========================================================================


@dataclass(frozen=True)
class NotificationContext:
    """Human-readable facts about an entity used to word notifications."""

    requester_name: str
    reference_number: str
    entity_description: str


@dataclass(frozen=True)
class EntitySubmission:
    """What the engine needs to know about an entity when it is submitted."""

    requester_id: UUID
    tenant_id: UUID
    amount: Decimal | None = None
    days: Decimal | None = None

    def policy_context(self) -> PolicyContext:
        return PolicyContext(
            tenant_id=self.tenant_id,
            amount=self.amount,
            days=self.days,
        )


@dataclass(frozen=True)
class SubmissionResult:
    """Result of submitting an entity for approval.

    ``chain_exists=False`` means no policy applied; the admins of the
    tenant were notified instead and the caller continues with its flat
    approval path.
    """

    entity_type: EntityType
    entity_id: str
    chain_exists: bool
    steps: tuple[ApprovalStep, ...] = ()
    policy_name: str | None = None
