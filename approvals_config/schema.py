"""
ApprovalConfigSet schema.

Defines the human-authored, reviewable source artifact for approval
configuration: the policy templates a tenant is seeded with and the
engine settings.  YAML files are parsed into these types by the loader,
checked by the validator, and turned into kernel inputs by the bridges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Policy definitions (declarative data, no executable logic)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalLevelDef:
    """One level of a policy template."""

    level_order: int
    required_role: str
    threshold: Decimal | None = None


@dataclass(frozen=True)
class ApprovalPolicyDef:
    """A policy template for one entity type."""

    name: str
    entity_type: str
    levels: tuple[ApprovalLevelDef, ...] = ()
    priority: int = 0
    is_active: bool = True
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    min_days: Decimal | None = None
    max_days: Decimal | None = None
    description: str = ""


# ---------------------------------------------------------------------------
# Engine settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineSettingsDef:
    """Runtime knobs of the approval engine."""

    audience_policy: str = "ADMIN_PROXY"
    notification_timeout_seconds: float = 10.0
    notification_workers: int = 4
    link_base_path: str = "/admin"
    organization_name: str = "Approvals"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalConfigSet:
    """The complete approval configuration loaded from one YAML file."""

    config_id: str
    version: int
    settings: EngineSettingsDef = field(default_factory=EngineSettingsDef)
    policies: tuple[ApprovalPolicyDef, ...] = ()
    checksum: str = ""
