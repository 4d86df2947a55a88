"""ORM models for the approvals kernel."""

from approvals_kernel.models.approval_policy import (
    ApprovalLevelModel,
    ApprovalPolicyModel,
)
from approvals_kernel.models.approval_step import ApprovalStepModel
from approvals_kernel.models.notification import NotificationModel
from approvals_kernel.models.team_member import (
    ApproverDelegationModel,
    TeamMemberModel,
)

__all__ = [
    "ApprovalLevelModel",
    "ApprovalPolicyModel",
    "ApprovalStepModel",
    "ApproverDelegationModel",
    "NotificationModel",
    "TeamMemberModel",
]
