"""
Config -> Kernel Bridges.

Functions that convert ``ApprovalConfigSet`` artifacts into kernel inputs:
domain policies, persisted tenant policies, and the notification
dispatcher.  These live in approvals_config (the producer) because the
kernel must NEVER import approvals_config.

Usage:
    from approvals_config import get_approval_config
    from approvals_config.bridges import build_dispatcher, seed_policies

    config = get_approval_config()
    seed_policies(session, tenant_id, config.policies, actor_id)
    dispatcher = build_dispatcher(config.settings, session_factory)
"""

from __future__ import annotations

from typing import Callable, Sequence
from uuid import UUID, uuid5

from sqlalchemy import select
from sqlalchemy.orm import Session

from approvals_config.schema import ApprovalPolicyDef, EngineSettingsDef
from approvals_kernel.domain.approval import (
    ApprovalLevel,
    ApprovalPolicy,
    EntityType,
    validate_levels,
)
from approvals_kernel.domain.clock import Clock, SystemClock
from approvals_kernel.domain.roles import AudiencePolicy
from approvals_kernel.logging_config import get_logger
from approvals_kernel.models.approval_policy import (
    ApprovalLevelModel,
    ApprovalPolicyModel,
)
from approvals_kernel.services.channels import (
    BackgroundRunner,
    EmailSender,
    InAppNotifier,
    MessagingNotifier,
    NotificationRunner,
)
from approvals_kernel.services.notification_dispatcher import (
    DispatcherSettings,
    NotificationDispatcher,
)

logger = get_logger("config.bridges")

# Fixed namespace for deterministic policy UUIDs of unseeded templates.
_POLICY_UUID_NAMESPACE = UUID("5f0c6c3e-6a77-4d3e-9a43-1d2b8f4e7c10")


def policy_def_to_domain(defn: ApprovalPolicyDef, tenant_id: UUID) -> ApprovalPolicy:
    """Build the domain policy a template describes for one tenant.

    Raises InvalidPolicyLevelsError when the levels are not numbered 1..n.
    """
    levels = tuple(
        ApprovalLevel(
            level_order=level.level_order,
            required_role=level.required_role,
            threshold=level.threshold,
        )
        for level in sorted(defn.levels, key=lambda lvl: lvl.level_order)
    )
    validate_levels(defn.name, levels)
    return ApprovalPolicy(
        policy_id=uuid5(_POLICY_UUID_NAMESPACE, f"{tenant_id}:{defn.entity_type}:{defn.name}"),
        tenant_id=tenant_id,
        name=defn.name,
        entity_type=EntityType(defn.entity_type),
        levels=levels,
        is_active=defn.is_active,
        priority=defn.priority,
        min_amount=defn.min_amount,
        max_amount=defn.max_amount,
        min_days=defn.min_days,
        max_days=defn.max_days,
    )


def seed_policies(
    session: Session,
    tenant_id: UUID,
    defs: Sequence[ApprovalPolicyDef],
    actor_id: UUID,
    clock: Clock | None = None,
) -> list[ApprovalPolicy]:
    """Persist policy templates for a tenant.  Flushes, never commits.

    Templates already present for the tenant (same entity type and name)
    are left untouched, so seeding twice is harmless.  Returns the
    policies created by this call.
    """
    clock = clock or SystemClock()
    created: list[ApprovalPolicy] = []

    for defn in defs:
        domain = policy_def_to_domain(defn, tenant_id)
        exists = session.execute(
            select(ApprovalPolicyModel.id).where(
                ApprovalPolicyModel.tenant_id == tenant_id,
                ApprovalPolicyModel.entity_type == domain.entity_type.value,
                ApprovalPolicyModel.name == domain.name,
            )
        ).first()
        if exists is not None:
            continue

        now = clock.now()
        model = ApprovalPolicyModel(
            tenant_id=tenant_id,
            name=domain.name,
            entity_type=domain.entity_type.value,
            is_active=domain.is_active,
            priority=domain.priority,
            min_amount=domain.min_amount,
            max_amount=domain.max_amount,
            min_days=domain.min_days,
            max_days=domain.max_days,
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
            levels=[
                ApprovalLevelModel(
                    level_order=level.level_order,
                    required_role=level.required_role,
                    threshold=level.threshold,
                )
                for level in domain.levels
            ],
        )
        session.add(model)
        session.flush()
        created.append(model.to_dto())

    logger.info(
        "approval_policies_seeded",
        extra={
            "tenant_id": str(tenant_id),
            "created_count": len(created),
            "skipped_count": len(defs) - len(created),
        },
    )
    return created


def dispatcher_settings(settings: EngineSettingsDef) -> DispatcherSettings:
    return DispatcherSettings(
        audience_policy=AudiencePolicy(settings.audience_policy),
        link_base_path=settings.link_base_path,
        organization_name=settings.organization_name,
    )


def build_notification_runner(settings: EngineSettingsDef) -> BackgroundRunner:
    return BackgroundRunner(
        max_workers=settings.notification_workers,
        default_timeout=settings.notification_timeout_seconds,
    )


def build_dispatcher(
    settings: EngineSettingsDef,
    session_factory: Callable[[], Session],
    in_app: InAppNotifier | None = None,
    email: EmailSender | None = None,
    messaging: MessagingNotifier | None = None,
    runner: NotificationRunner | None = None,
) -> NotificationDispatcher:
    """Wire a NotificationDispatcher from engine settings.

    Without an explicit ``runner`` a BackgroundRunner sized by the
    settings is used.
    """
    return NotificationDispatcher(
        session_factory=session_factory,
        in_app=in_app,
        email=email,
        messaging=messaging,
        runner=runner or build_notification_runner(settings),
        settings=dispatcher_settings(settings),
    )
