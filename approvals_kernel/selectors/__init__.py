"""Read-only selectors for the approvals kernel."""

from approvals_kernel.selectors.approval_selector import ApprovalSelector
from approvals_kernel.selectors.base import BaseSelector
from approvals_kernel.selectors.member_selector import MemberSelector

__all__ = [
    "ApprovalSelector",
    "BaseSelector",
    "MemberSelector",
]
