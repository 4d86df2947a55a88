"""
approvals_config -- single public entrypoint for approval configuration.

Responsibility:
    Provides the ONLY way to obtain approval configuration at runtime
    through ``get_approval_config()``.  Returns a validated
    ``ApprovalConfigSet``.

Architecture position:
    Configuration -- YAML-driven policy templates and engine settings.
    This package sits above ``approvals_kernel``.  The kernel MUST NEVER
    import from ``approvals_config``; bridges in this package translate
    configuration into kernel-compatible inputs.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- validation failures.

Audit relevance:
    Every successful ``get_approval_config()`` call emits an
    ``APPROVALS_CONFIG_TRACE`` log entry containing the config_id,
    version, checksum, and policy count.
"""

from __future__ import annotations

from pathlib import Path

from approvals_config.loader import load_config_set
from approvals_config.schema import ApprovalConfigSet
from approvals_config.validator import validate_configuration
from approvals_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_approval_config(config_path: Path | None = None) -> ApprovalConfigSet:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration file.  Defaults to
            approvals_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config_set(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("approvals_config_warning", extra={"warning": warning})

    _logger.info(
        "APPROVALS_CONFIG_TRACE",
        extra={
            "trace_type": "APPROVALS_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "policy_count": len(config.policies),
            "audience_policy": config.settings.audience_policy,
        },
    )
    return config


__all__ = ["ApprovalConfigSet", "get_approval_config"]
