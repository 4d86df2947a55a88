"""
Leave Module (``approvals_modules.leave``).

Leave requests routed through approval chains by duration.
"""

from approvals_modules.leave.adapter import LeaveRequestAdapter
from approvals_modules.leave.orm import LeaveRequestModel, LeaveStatus

__all__ = ["LeaveRequestAdapter", "LeaveRequestModel", "LeaveStatus"]
