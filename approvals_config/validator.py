"""
Configuration Validator (``approvals_config.validator``).

Responsibility
--------------
Validates an ``ApprovalConfigSet`` before any policy from it is seeded
into a tenant.

Invariants enforced
-------------------
* Entity types must be ones the engine routes.
* Policy names are unique per entity type.
* Levels are numbered 1..n without gaps or duplicates.
* Thresholds are non-negative; ranges are not inverted.
* Settings are within their legal ranges.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> configuration
  MUST NOT be used.
* Validation warnings (``ConfigValidationResult.warnings``)  -> usable,
  but should be reviewed (e.g. a role string no built-in role matches).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from approvals_config.schema import ApprovalConfigSet, ApprovalPolicyDef, EngineSettingsDef
from approvals_kernel.domain.approval import EntityType
from approvals_kernel.domain.roles import ApprovalRole, AudiencePolicy

_ENTITY_TYPES = frozenset(e.value for e in EntityType)
_BUILTIN_ROLES = frozenset(r.value for r in ApprovalRole)
_AUDIENCE_POLICIES = frozenset(p.value for p in AudiencePolicy)


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: ApprovalConfigSet) -> ConfigValidationResult:
    """Validate a configuration set.  A set with errors MUST NOT be seeded."""
    result = ConfigValidationResult()

    _validate_settings(config.settings, result)
    _validate_policy_uniqueness(config, result)
    for policy in config.policies:
        _validate_policy(policy, result)

    return result


def _validate_settings(settings: EngineSettingsDef, result: ConfigValidationResult) -> None:
    if settings.audience_policy not in _AUDIENCE_POLICIES:
        result.add_error(
            f"settings.audience_policy {settings.audience_policy!r} is not one of "
            f"{sorted(_AUDIENCE_POLICIES)}"
        )
    if settings.notification_timeout_seconds <= 0:
        result.add_error("settings.notification_timeout_seconds must be positive")
    if settings.notification_workers < 1:
        result.add_error("settings.notification_workers must be at least 1")
    if not settings.link_base_path.startswith("/"):
        result.add_error("settings.link_base_path must start with '/'")


def _validate_policy_uniqueness(config: ApprovalConfigSet, result: ConfigValidationResult) -> None:
    seen: set[tuple[str, str]] = set()
    for policy in config.policies:
        key = (policy.entity_type, policy.name)
        if key in seen:
            result.add_error(
                f"Duplicate policy {policy.name!r} for entity type {policy.entity_type}"
            )
        seen.add(key)


def _validate_policy(policy: ApprovalPolicyDef, result: ConfigValidationResult) -> None:
    label = f"Policy {policy.name!r}"

    if policy.entity_type not in _ENTITY_TYPES:
        result.add_error(f"{label}: unknown entity type {policy.entity_type!r}")

    if not policy.levels:
        result.add_error(f"{label}: must define at least one level")
        return

    orders = sorted(level.level_order for level in policy.levels)
    if orders != list(range(1, len(orders) + 1)):
        result.add_error(
            f"{label}: levels must be numbered contiguously from 1, got {orders}"
        )

    for level in policy.levels:
        if level.threshold is not None and level.threshold < Decimal("0"):
            result.add_error(
                f"{label}: level {level.level_order} has a negative threshold"
            )
        if not level.required_role:
            result.add_error(f"{label}: level {level.level_order} has no required role")
        elif level.required_role not in _BUILTIN_ROLES:
            result.add_warning(
                f"{label}: level {level.level_order} role {level.required_role!r} "
                "is not a built-in role and is matched by approval_role only"
            )

    if (
        policy.min_amount is not None
        and policy.max_amount is not None
        and policy.min_amount > policy.max_amount
    ):
        result.add_error(f"{label}: min_amount exceeds max_amount")
    if (
        policy.min_days is not None
        and policy.max_days is not None
        and policy.min_days > policy.max_days
    ):
        result.add_error(f"{label}: min_days exceeds max_days")
