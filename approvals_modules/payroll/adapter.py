"""Approval adapter for payroll runs.

Payroll policies are matched and gated on the run's gross total.  A
rejection sends the run back to DRAFT rather than a terminal status.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from approvals_kernel.domain.approval import EntityType
from approvals_modules.base import StatusEntityAdapter
from approvals_modules.payroll.orm import PayrollRunModel, PayrollRunStatus
from approvals_modules.procurement.adapter import format_money


class PayrollRunAdapter(StatusEntityAdapter):
    entity_type = EntityType.PAYROLL_RUN
    model = PayrollRunModel
    approved_status = PayrollRunStatus.APPROVED.value
    rejected_status = PayrollRunStatus.DRAFT.value

    def _requester_id(self, entity: PayrollRunModel) -> UUID:
        return entity.submitted_by_id

    def _amount(self, entity: PayrollRunModel) -> Decimal | None:
        return entity.total_gross

    def _reference(self, entity: PayrollRunModel) -> str:
        return entity.run_number

    def _description(self, entity: PayrollRunModel) -> str:
        return (
            f"{entity.period_start.isoformat()} to {entity.period_end.isoformat()}, "
            f"{entity.employee_count} employees, "
            f"{format_money(entity.total_gross, entity.currency)} gross"
        )

    def _record_approval(
        self, entity: PayrollRunModel, approver_id: UUID, acted_at: datetime,
    ) -> None:
        entity.approved_by_id = approver_id
        entity.approved_at = acted_at
        entity.rejection_reason = None

    def _record_rejection(
        self,
        entity: PayrollRunModel,
        approver_id: UUID,
        acted_at: datetime,
        reason: str | None,
    ) -> None:
        entity.rejection_reason = reason
