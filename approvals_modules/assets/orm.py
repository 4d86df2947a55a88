"""
Asset Request ORM Persistence Model (``approvals_modules.assets.orm``).

Responsibility:
    Persists requests for company assets (laptops, phones, equipment).
    ``estimated_value`` drives policy matching and thresholds.

Architecture position:
    **Modules layer** -- inherits ``TrackedBase`` from the kernel DB base.

Invariants enforced:
    - A request waits in PENDING_ADMIN_APPROVAL until its chain completes.
    - ``estimated_value`` is Decimal (Numeric(38,9)), nullable when unknown.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from approvals_kernel.db.base import TrackedBase


class AssetRequestStatus(str, Enum):
    PENDING_ADMIN_APPROVAL = "PENDING_ADMIN_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AssetRequestModel(TrackedBase):
    """A member's request to be issued an asset."""

    __tablename__ = "asset_requests"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    request_number: Mapped[str] = mapped_column(String(50), nullable=False)
    requester_id: Mapped[UUID] = mapped_column(ForeignKey("team_members.id"), nullable=False)
    asset_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    estimated_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=AssetRequestStatus.PENDING_ADMIN_APPROVAL.value,
    )
    reviewed_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "request_number", name="uq_asset_request_number"),
        Index("idx_asset_request_requester", "requester_id"),
        Index("idx_asset_request_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<AssetRequest {self.request_number} {self.asset_name} status={self.status}>"
