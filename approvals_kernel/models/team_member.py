"""
Module: approvals_kernel.models.team_member
Responsibility: ORM persistence for tenant team members and approver
    delegations, the data source of approval authority.
Architecture position: Kernel > Models.  May import from db/base.py only.

Notes:
    Only the attributes that bear on approval authority and notification
    delivery are modelled here.  Profile, payroll and HR fields belong to
    other systems.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from approvals_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from approvals_kernel.domain.roles import MemberAuthority


class TeamMemberModel(Base):
    """A member of a tenant's team."""

    __tablename__ = "team_members"

    __table_args__ = (
        Index("ix_team_members_tenant", "tenant_id", "is_deleted"),
        Index("ix_team_members_reporting_to", "reporting_to_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approval_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    has_hr_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_finance_access: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    has_operations_access: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    reporting_to_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("team_members.id"),
        nullable=True,
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<TeamMember {self.name} admin={self.is_admin} role={self.approval_role}>"

    def to_authority(self) -> MemberAuthority:
        """Convert ORM model to the frozen authority DTO."""
        from approvals_kernel.domain.roles import MemberAuthority

        return MemberAuthority(
            member_id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            email=self.email,
            is_admin=self.is_admin,
            is_owner=self.is_owner,
            approval_role=self.approval_role,
            has_hr_access=self.has_hr_access,
            has_finance_access=self.has_finance_access,
            has_operations_access=self.has_operations_access,
            reporting_manager_id=self.reporting_to_id,
            is_deleted=self.is_deleted,
        )


class ApproverDelegationModel(TrackedBase):
    """A time-boxed hand-over of one member's approval authority to another.

    Contract:
        Active when ``is_active`` and ``start_at <= now <= end_at``.  The
        delegatee may act on any step whose role the delegator satisfies.
    """

    __tablename__ = "approver_delegations"

    __table_args__ = (
        Index(
            "ix_approver_delegations_delegatee",
            "delegatee_id", "is_active", "start_at", "end_at",
        ),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    delegator_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("team_members.id"),
        nullable=False,
    )
    delegatee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("team_members.id"),
        nullable=False,
    )
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return (
            f"<ApproverDelegation {self.delegator_id} -> {self.delegatee_id} "
            f"active={self.is_active}>"
        )
