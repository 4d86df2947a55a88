"""
Leave ORM Persistence Model (``approvals_modules.leave.orm``).

Responsibility:
    Persists leave requests.  Only the columns the approval flow reads or
    writes are modelled: requester, duration, status and the decision.

Architecture position:
    **Modules layer** -- inherits ``TrackedBase`` from the kernel DB base.
    ``created_by_id`` is the member who filed the request.

Invariants enforced:
    - ``total_days`` is Decimal so half days survive (Numeric(38,9)).
    - ``status`` stores a ``LeaveStatus`` value.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from approvals_kernel.db.base import TrackedBase


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveRequestModel(TrackedBase):
    """A member's request for time off."""

    __tablename__ = "leave_requests"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    request_number: Mapped[str] = mapped_column(String(50), nullable=False)
    member_id: Mapped[UUID] = mapped_column(ForeignKey("team_members.id"), nullable=False)
    leave_type: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=LeaveStatus.PENDING.value,
    )
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "request_number", name="uq_leave_request_number"),
        Index("idx_leave_request_member", "member_id"),
        Index("idx_leave_request_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<LeaveRequest {self.request_number} {self.total_days}d status={self.status}>"
