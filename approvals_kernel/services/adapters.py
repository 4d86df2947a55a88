"""
approvals_kernel.services.adapters -- The seam between the engine and entities.

Contract:
    The engine never reads or writes entity tables.  Everything it needs
    from a leave request, purchase request, asset request or payroll run
    goes through an ``EntityAdapter`` registered for that entity type:

    - ``get_submission``          amount, duration, requester and tenant
    - ``get_notification_context``  wording for notifications
    - ``on_chain_approved`` / ``on_chain_rejected``  final status update,
      run inside the same transaction as the step that completed the chain

    Concrete adapters live in ``approvals_modules``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from approvals_kernel.domain.approval import (
    EntitySubmission,
    EntityType,
    NotificationContext,
)
from approvals_kernel.exceptions import EntityAdapterNotFoundError


class EntityAdapter(Protocol):
    entity_type: EntityType

    def get_submission(self, session: Session, entity_id: str) -> EntitySubmission:
        """Raise EntityNotFoundError when the entity does not exist."""
        ...

    def get_notification_context(self, session: Session, entity_id: str) -> NotificationContext:
        ...

    def on_chain_approved(
        self,
        session: Session,
        entity_id: str,
        approver_id: UUID,
        acted_at: datetime,
    ) -> None:
        ...

    def on_chain_rejected(
        self,
        session: Session,
        entity_id: str,
        approver_id: UUID,
        acted_at: datetime,
        reason: str | None,
    ) -> None:
        ...


class AdapterRegistry:
    """Maps each entity type to its adapter."""

    def __init__(self, adapters: Iterable[EntityAdapter] = ()) -> None:
        self._adapters: dict[EntityType, EntityAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: EntityAdapter) -> None:
        self._adapters[EntityType(adapter.entity_type)] = adapter

    def get(self, entity_type: EntityType | str) -> EntityAdapter:
        try:
            return self._adapters[EntityType(entity_type)]
        except (KeyError, ValueError):
            raise EntityAdapterNotFoundError(str(getattr(entity_type, "value", entity_type))) from None

    def __contains__(self, entity_type: object) -> bool:
        try:
            return EntityType(entity_type) in self._adapters
        except ValueError:
            return False

    @property
    def entity_types(self) -> tuple[EntityType, ...]:
        return tuple(self._adapters)
