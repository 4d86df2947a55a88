"""
Configuration Loader (``approvals_config.loader``).

Responsibility
--------------
Loads approval configuration YAML and parses it into typed
``approvals_config.schema`` dataclass instances.  Runtime callers use
``approvals_config.get_approval_config()`` instead of this module.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Amounts and thresholds are parsed to ``Decimal`` through ``str`` so a
  YAML float never leaks binary rounding into a threshold.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Non-numeric amount  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from approvals_config.schema import (
    ApprovalConfigSet,
    ApprovalLevelDef,
    ApprovalPolicyDef,
    EngineSettingsDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any) -> Decimal | None:
    """Parse an optional amount; None and empty strings stay None."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot parse amount from {value!r}") from None


def parse_level(data: dict[str, Any]) -> ApprovalLevelDef:
    """Parse an ApprovalLevelDef from a dict."""
    return ApprovalLevelDef(
        level_order=int(data["level_order"]),
        required_role=str(data["required_role"]),
        threshold=parse_decimal(data.get("threshold")),
    )


def parse_policy(data: dict[str, Any]) -> ApprovalPolicyDef:
    """
    Parse an ``ApprovalPolicyDef`` from a dict.

    Required keys: ``name``, ``entity_type``, ``levels``.
    """
    return ApprovalPolicyDef(
        name=data["name"],
        entity_type=str(data["entity_type"]),
        levels=tuple(parse_level(level) for level in data["levels"]),
        priority=int(data.get("priority", 0)),
        is_active=bool(data.get("is_active", True)),
        min_amount=parse_decimal(data.get("min_amount")),
        max_amount=parse_decimal(data.get("max_amount")),
        min_days=parse_decimal(data.get("min_days")),
        max_days=parse_decimal(data.get("max_days")),
        description=data.get("description", ""),
    )


def parse_settings(data: dict[str, Any] | None) -> EngineSettingsDef:
    """Parse engine settings; absent keys keep their defaults."""
    if not data:
        return EngineSettingsDef()
    defaults = EngineSettingsDef()
    return EngineSettingsDef(
        audience_policy=str(data.get("audience_policy", defaults.audience_policy)),
        notification_timeout_seconds=float(
            data.get("notification_timeout_seconds", defaults.notification_timeout_seconds)
        ),
        notification_workers=int(data.get("notification_workers", defaults.notification_workers)),
        link_base_path=str(data.get("link_base_path", defaults.link_base_path)),
        organization_name=str(data.get("organization_name", defaults.organization_name)),
    )


def load_config_set(path: Path) -> ApprovalConfigSet:
    """Load and parse a complete configuration file."""
    data = load_yaml_file(path)
    return ApprovalConfigSet(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        settings=parse_settings(data.get("settings")),
        policies=tuple(parse_policy(p) for p in data.get("policies", [])),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
