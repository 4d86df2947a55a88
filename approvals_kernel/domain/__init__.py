"""
Pure domain layer.

Value objects and decision functions for approval chains, with NO
dependencies on the ORM, the database, or I/O.  Time enters only
through an injected Clock.
"""

from approvals_kernel.domain.approval import (
    ApprovalAction,
    ApprovalCommand,
    ApprovalLevel,
    ApprovalPolicy,
    ApprovalStep,
    ChainOutcome,
    ChainStatus,
    ChainSummary,
    EntitySubmission,
    EntityType,
    NotificationContext,
    PolicyContext,
    ProcessApprovalResult,
    StepStatus,
    SubmissionResult,
    filter_applicable_levels,
    select_policy,
    summarize_chain,
    validate_levels,
)
from approvals_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approvals_kernel.domain.roles import (
    ApprovalRole,
    AudiencePolicy,
    MemberAuthority,
    member_satisfies_role,
)

__all__ = [
    "ApprovalAction",
    "ApprovalCommand",
    "ApprovalLevel",
    "ApprovalPolicy",
    "ApprovalRole",
    "ApprovalStep",
    "AudiencePolicy",
    "ChainOutcome",
    "ChainStatus",
    "ChainSummary",
    "Clock",
    "DeterministicClock",
    "EntitySubmission",
    "EntityType",
    "MemberAuthority",
    "NotificationContext",
    "PolicyContext",
    "ProcessApprovalResult",
    "StepStatus",
    "SubmissionResult",
    "SystemClock",
    "filter_applicable_levels",
    "member_satisfies_role",
    "select_policy",
    "summarize_chain",
    "validate_levels",
]
