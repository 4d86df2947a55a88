"""
Procurement ORM Persistence Model (``approvals_modules.procurement.orm``).

Responsibility:
    Persists purchase requests raised by team members.  Policies are
    matched and thresholds gated on ``total_amount``.

Architecture position:
    **Modules layer** -- inherits ``TrackedBase`` from the kernel DB base.

Invariants enforced:
    - ``total_amount`` is Decimal (Numeric(38,9)) -- NEVER float.
    - ``status`` stores a ``PurchaseRequestStatus`` value.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from approvals_kernel.db.base import TrackedBase


class PurchaseRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PurchaseRequestModel(TrackedBase):
    """A request to buy goods or services on the tenant's account."""

    __tablename__ = "purchase_requests"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    reference_number: Mapped[str] = mapped_column(String(50), nullable=False)
    requester_id: Mapped[UUID] = mapped_column(ForeignKey("team_members.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PurchaseRequestStatus.PENDING.value,
    )
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "reference_number", name="uq_purchase_request_reference"),
        Index("idx_purchase_request_requester", "requester_id"),
        Index("idx_purchase_request_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<PurchaseRequest {self.reference_number} {self.total_amount} status={self.status}>"
