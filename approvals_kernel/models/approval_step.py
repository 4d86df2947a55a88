"""
Module: approvals_kernel.models.approval_step
Responsibility: ORM persistence for approval steps, one row per level of
    an entity's chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One step per (entity_type, entity_id, level_order):
      uq_approval_steps_entity_level.  This is also what turns a concurrent
      double-submit into an IntegrityError instead of a duplicate chain.
    - Valid status values: ck_approval_steps_valid_status.
    - Terminal steps are immutable through the ORM (db/immutability.py).

Failure modes:
    - IntegrityError on duplicate (entity_type, entity_id, level_order).
    - StepImmutableError on an ORM update of an APPROVED, REJECTED or
      SKIPPED step.

Notes:
    entity_id is a plain string reference with no foreign key: the same
    table serves every entity type.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from approvals_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from approvals_kernel.domain.approval import ApprovalStep


class ApprovalStepModel(TrackedBase):
    """Persistent approval step.

    Contract:
        Created PENDING.  Mutated exactly once, by a conditional UPDATE
        that only matches while the row is still PENDING.

    Guarantees:
        - approver_id, action_at and notes are NULL until the step is acted on.
        - created_by_id is the requester who submitted the entity.
    """

    __tablename__ = "approval_steps"

    __table_args__ = (
        UniqueConstraint(
            "entity_type", "entity_id", "level_order",
            name="uq_approval_steps_entity_level",
        ),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'SKIPPED')",
            name="ck_approval_steps_valid_status",
        ),
        Index(
            "ix_approval_steps_entity_status",
            "entity_type", "entity_id", "status", "level_order",
        ),
        Index(
            "ix_approval_steps_tenant_status",
            "tenant_id", "status",
        ),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    level_order: Mapped[int] = mapped_column(Integer, nullable=False)
    required_role: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    action_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalStep {self.entity_type}/{self.entity_id} "
            f"level={self.level_order} status={self.status}>"
        )

    def to_dto(self) -> ApprovalStep:
        """Convert ORM model to frozen domain DTO."""
        from approvals_kernel.domain.approval import (
            ApprovalStep as ApprovalStepDTO,
            EntityType,
            StepStatus,
        )

        return ApprovalStepDTO(
            step_id=self.id,
            tenant_id=self.tenant_id,
            entity_type=EntityType(self.entity_type),
            entity_id=self.entity_id,
            level_order=self.level_order,
            required_role=self.required_role,
            status=StepStatus(self.status),
            requester_id=self.created_by_id,
            approver_id=self.approver_id,
            action_at=self.action_at,
            notes=self.notes,
            created_at=self.created_at,
        )
