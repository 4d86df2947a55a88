"""
Payroll Run ORM Persistence Model (``approvals_modules.payroll.orm``).

Responsibility:
    Persists payroll runs.  A run is prepared in DRAFT, submitted into
    PENDING_APPROVAL, and released for processing once its chain approves.

Architecture position:
    **Modules layer** -- inherits ``TrackedBase`` from the kernel DB base.

Invariants enforced:
    - All monetary fields use Decimal (Numeric(38,9)) -- NEVER float.
    - A rejected run returns to DRAFT so it can be corrected and resubmitted.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from approvals_kernel.db.base import TrackedBase


class PayrollRunStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    PROCESSED = "PROCESSED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PayrollRunModel(TrackedBase):
    """One pay period's payroll for a tenant."""

    __tablename__ = "payroll_runs"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    run_number: Mapped[str] = mapped_column(String(50), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gross: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PayrollRunStatus.DRAFT.value,
    )
    submitted_by_id: Mapped[UUID] = mapped_column(ForeignKey("team_members.id"), nullable=False)
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "run_number", name="uq_payroll_run_number"),
        Index("idx_payroll_run_status", "tenant_id", "status"),
        Index("idx_payroll_run_period", "tenant_id", "period_start", "period_end"),
    )

    def __repr__(self) -> str:
        return f"<PayrollRun {self.run_number} {self.period_start}..{self.period_end} status={self.status}>"
