"""Approval adapter for leave requests.

Leave policies are matched on duration (``total_days``); leave has no
amount, so thresholded levels never apply to it.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from approvals_kernel.domain.approval import EntityType
from approvals_modules.base import StatusEntityAdapter
from approvals_modules.leave.orm import LeaveRequestModel, LeaveStatus


def _format_days(days: Decimal) -> str:
    text = format(days.normalize(), "f")
    unit = "day" if days == 1 else "days"
    return f"{text} {unit}"


class LeaveRequestAdapter(StatusEntityAdapter):
    entity_type = EntityType.LEAVE_REQUEST
    model = LeaveRequestModel
    approved_status = LeaveStatus.APPROVED.value
    rejected_status = LeaveStatus.REJECTED.value

    def _requester_id(self, entity: LeaveRequestModel) -> UUID:
        return entity.member_id

    def _days(self, entity: LeaveRequestModel) -> Decimal | None:
        return entity.total_days

    def _reference(self, entity: LeaveRequestModel) -> str:
        return entity.request_number

    def _description(self, entity: LeaveRequestModel) -> str:
        return (
            f"{entity.leave_type}, {_format_days(entity.total_days)} "
            f"from {entity.start_date.isoformat()} to {entity.end_date.isoformat()}"
        )

    def _record_approval(self, entity: LeaveRequestModel, approver_id: UUID, acted_at: datetime) -> None:
        entity.approved_by_id = approver_id
        entity.approved_at = acted_at

    def _record_rejection(
        self,
        entity: LeaveRequestModel,
        approver_id: UUID,
        acted_at: datetime,
        reason: str | None,
    ) -> None:
        entity.rejection_reason = reason
