"""
Module: approvals_kernel.models.approval_policy
Responsibility: ORM persistence for tenant approval policies and their
    ordered levels.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One level per (policy, level_order): uq_approval_levels_order.
    - Level contiguity (1..n) is checked by domain.validate_levels when a
      policy is converted to its DTO; the database cannot express it.

Failure modes:
    - IntegrityError on duplicate level_order within a policy.
    - InvalidPolicyLevelsError from to_dto() when levels have gaps.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approvals_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from approvals_kernel.domain.approval import ApprovalPolicy


class ApprovalPolicyModel(TrackedBase):
    """Persistent approval policy for one tenant and entity type.

    Contract:
        Resolution order is priority DESC, created_at ASC.  Inactive
        policies are never resolved.
    """

    __tablename__ = "approval_policies"

    __table_args__ = (
        Index(
            "ix_approval_policies_resolution",
            "tenant_id", "entity_type", "is_active", "priority",
        ),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Policy-wide match ranges
    min_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    max_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    min_days: Mapped[Decimal | None] = mapped_column(nullable=True)
    max_days: Mapped[Decimal | None] = mapped_column(nullable=True)

    levels: Mapped[list["ApprovalLevelModel"]] = relationship(
        "ApprovalLevelModel",
        back_populates="policy",
        order_by="ApprovalLevelModel.level_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalPolicy {self.name} {self.entity_type} "
            f"priority={self.priority} active={self.is_active}>"
        )

    def to_dto(self) -> ApprovalPolicy:
        """Convert ORM model to frozen domain DTO, validating level order."""
        from approvals_kernel.domain.approval import (
            ApprovalPolicy as ApprovalPolicyDTO,
            EntityType,
            validate_levels,
        )

        levels = tuple(level.to_dto() for level in self.levels)
        validate_levels(self.name, levels)

        return ApprovalPolicyDTO(
            policy_id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            entity_type=EntityType(self.entity_type),
            levels=levels,
            is_active=self.is_active,
            priority=self.priority,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            min_days=self.min_days,
            max_days=self.max_days,
            created_at=self.created_at,
        )


class ApprovalLevelModel(Base):
    """One ordered level of an approval policy."""

    __tablename__ = "approval_levels"

    __table_args__ = (
        UniqueConstraint(
            "policy_id", "level_order",
            name="uq_approval_levels_order",
        ),
    )

    policy_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("approval_policies.id", ondelete="CASCADE"),
        nullable=False,
    )
    level_order: Mapped[int] = mapped_column(Integer, nullable=False)
    required_role: Mapped[str] = mapped_column(String(50), nullable=False)
    threshold: Mapped[Decimal | None] = mapped_column(nullable=True)

    policy: Mapped["ApprovalPolicyModel"] = relationship(
        "ApprovalPolicyModel",
        back_populates="levels",
    )

    def __repr__(self) -> str:
        return f"<ApprovalLevel {self.level_order} role={self.required_role}>"

    def to_dto(self):
        from approvals_kernel.domain.approval import ApprovalLevel

        return ApprovalLevel(
            level_order=self.level_order,
            required_role=self.required_role,
            threshold=self.threshold,
        )
