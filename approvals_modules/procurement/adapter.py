"""Approval adapter for purchase requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from approvals_kernel.domain.approval import EntityType
from approvals_modules.base import StatusEntityAdapter
from approvals_modules.procurement.orm import PurchaseRequestModel, PurchaseRequestStatus


def format_money(amount: Decimal, currency: str) -> str:
    return f"{currency} {amount.quantize(Decimal('0.01')):,}"


class PurchaseRequestAdapter(StatusEntityAdapter):
    entity_type = EntityType.PURCHASE_REQUEST
    model = PurchaseRequestModel
    approved_status = PurchaseRequestStatus.APPROVED.value
    rejected_status = PurchaseRequestStatus.REJECTED.value

    def _requester_id(self, entity: PurchaseRequestModel) -> UUID:
        return entity.requester_id

    def _amount(self, entity: PurchaseRequestModel) -> Decimal | None:
        return entity.total_amount

    def _reference(self, entity: PurchaseRequestModel) -> str:
        return entity.reference_number

    def _description(self, entity: PurchaseRequestModel) -> str:
        return f"{entity.title} ({format_money(entity.total_amount, entity.currency)})"

    def _record_approval(
        self, entity: PurchaseRequestModel, approver_id: UUID, acted_at: datetime,
    ) -> None:
        entity.approved_by_id = approver_id
        entity.approved_at = acted_at

    def _record_rejection(
        self,
        entity: PurchaseRequestModel,
        approver_id: UUID,
        acted_at: datetime,
        reason: str | None,
    ) -> None:
        entity.rejected_by_id = approver_id
        entity.rejected_at = acted_at
        entity.rejection_reason = reason
