"""Approval adapter for asset requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from approvals_kernel.domain.approval import EntityType
from approvals_modules.assets.orm import AssetRequestModel, AssetRequestStatus
from approvals_modules.base import StatusEntityAdapter


class AssetRequestAdapter(StatusEntityAdapter):
    entity_type = EntityType.ASSET_REQUEST
    model = AssetRequestModel
    approved_status = AssetRequestStatus.APPROVED.value
    rejected_status = AssetRequestStatus.REJECTED.value

    def _requester_id(self, entity: AssetRequestModel) -> UUID:
        return entity.requester_id

    def _amount(self, entity: AssetRequestModel) -> Decimal | None:
        return entity.estimated_value

    def _reference(self, entity: AssetRequestModel) -> str:
        return entity.request_number

    def _description(self, entity: AssetRequestModel) -> str:
        if entity.category:
            return f"{entity.asset_name} ({entity.category})"
        return entity.asset_name

    def _record_approval(
        self, entity: AssetRequestModel, approver_id: UUID, acted_at: datetime,
    ) -> None:
        entity.reviewed_by_id = approver_id
        entity.reviewed_at = acted_at

    def _record_rejection(
        self,
        entity: AssetRequestModel,
        approver_id: UUID,
        acted_at: datetime,
        reason: str | None,
    ) -> None:
        entity.reviewed_by_id = approver_id
        entity.reviewed_at = acted_at
        entity.admin_notes = reason
