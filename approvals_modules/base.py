"""
Shared adapter plumbing (``approvals_modules.base``).

Responsibility
--------------
``StatusEntityAdapter`` implements the kernel's ``EntityAdapter`` contract
for entities that carry their own status column.  A concrete module only
declares its ORM class and how to read the amount, duration and wording
from a row; loading, the missing-entity error and the final status write
are done here once.

Architecture position
---------------------
**Modules layer** -- may import from ``approvals_kernel``.  The kernel
never imports from here.

Failure modes
-------------
* ``EntityNotFoundError`` when the id does not parse or no row exists.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID

from sqlalchemy.orm import Session

from approvals_kernel.domain.approval import (
    EntitySubmission,
    EntityType,
    NotificationContext,
)
from approvals_kernel.exceptions import EntityNotFoundError
from approvals_kernel.logging_config import get_logger
from approvals_kernel.models.team_member import TeamMemberModel
from approvals_kernel.services.adapters import AdapterRegistry, EntityAdapter

logger = get_logger("modules.adapter")

UNKNOWN_REQUESTER = "A team member"

__all__ = [
    "AdapterRegistry",
    "EntityAdapter",
    "StatusEntityAdapter",
    "UNKNOWN_REQUESTER",
]


class StatusEntityAdapter:
    """Base adapter for an entity row with ``tenant_id`` and ``status`` columns.

    Subclasses set ``entity_type``, ``model``, ``approved_status`` and
    ``rejected_status``, and implement the ``_requester_id``,
    ``_reference`` and ``_description`` hooks.  ``_amount`` and ``_days``
    default to None.
    """

    entity_type: ClassVar[EntityType]
    model: ClassVar[type]
    approved_status: ClassVar[str]
    rejected_status: ClassVar[str]

    # ------------------------------------------------------------------
    # EntityAdapter
    # ------------------------------------------------------------------

    def get_submission(self, session: Session, entity_id: str) -> EntitySubmission:
        entity = self._load(session, entity_id)
        return EntitySubmission(
            requester_id=self._requester_id(entity),
            tenant_id=entity.tenant_id,
            amount=self._amount(entity),
            days=self._days(entity),
        )

    def get_notification_context(self, session: Session, entity_id: str) -> NotificationContext:
        entity = self._load(session, entity_id)
        requester = session.get(TeamMemberModel, self._requester_id(entity))
        return NotificationContext(
            requester_name=requester.name if requester is not None else UNKNOWN_REQUESTER,
            reference_number=self._reference(entity),
            entity_description=self._description(entity),
        )

    def on_chain_approved(
        self,
        session: Session,
        entity_id: str,
        approver_id: UUID,
        acted_at: datetime,
    ) -> None:
        entity = self._load(session, entity_id)
        previous = entity.status
        entity.status = self.approved_status
        entity.updated_by_id = approver_id
        self._record_approval(entity, approver_id, acted_at)
        session.flush()
        self._log_transition(entity_id, previous, entity.status)

    def on_chain_rejected(
        self,
        session: Session,
        entity_id: str,
        approver_id: UUID,
        acted_at: datetime,
        reason: str | None,
    ) -> None:
        entity = self._load(session, entity_id)
        previous = entity.status
        entity.status = self.rejected_status
        entity.updated_by_id = approver_id
        self._record_rejection(entity, approver_id, acted_at, reason)
        session.flush()
        self._log_transition(entity_id, previous, entity.status)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _requester_id(self, entity) -> UUID:
        raise NotImplementedError

    def _reference(self, entity) -> str:
        raise NotImplementedError

    def _description(self, entity) -> str:
        raise NotImplementedError

    def _amount(self, entity) -> Decimal | None:
        return None

    def _days(self, entity) -> Decimal | None:
        return None

    def _record_approval(self, entity, approver_id: UUID, acted_at: datetime) -> None:
        pass

    def _record_rejection(
        self, entity, approver_id: UUID, acted_at: datetime, reason: str | None,
    ) -> None:
        pass

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, session: Session, entity_id: str):
        try:
            key = UUID(str(entity_id))
        except ValueError:
            raise EntityNotFoundError(self.entity_type.value, str(entity_id)) from None
        entity = session.get(self.model, key)
        if entity is None:
            raise EntityNotFoundError(self.entity_type.value, str(entity_id))
        return entity

    def _log_transition(self, entity_id: str, previous: str, current: str) -> None:
        logger.info(
            "entity_status_changed",
            extra={
                "entity_type": self.entity_type.value,
                "entity_id": entity_id,
                "from_status": previous,
                "to_status": current,
            },
        )
