"""
construction_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain engine settings at runtime through
    ``get_active_config()``.  Settings come from YAML sets under
    ``construction_config/sets/``.

Architecture position:
    Configuration -- sits above ``construction_kernel``.  The kernel MUST
    NEVER import from ``construction_config``; ``bridges`` translates
    settings into kernel constructor arguments.

Failure modes:
    - ``FileNotFoundError`` -- the requested set does not exist.
    - ``ValueError`` -- validation failures.

Every successful ``get_active_config()`` call emits a
``CONSTRUCTION_CONFIG_TRACE`` log entry with the set name, version and
checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from construction_config.loader import load_settings
from construction_config.schema import EngineSettings, ScheduleSettings, TemplateSettings
from construction_config.validator import validate_settings

_logger = logging.getLogger("construction_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    set_name: str = "default",
    config_dir: Path | None = None,
) -> EngineSettings:
    """
    Load, validate and return the named configuration set.

    Args:
        set_name: File stem of a YAML set (``sets/<set_name>.yaml``).
        config_dir: Override path to the configuration sets directory.

    Raises:
        FileNotFoundError: If the set does not exist.
        ValueError: If validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = Path(sets_dir) / f"{set_name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    settings = load_settings(path)

    validation = validate_settings(settings)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_warning", extra={"config_set": set_name, "detail": warning})

    _logger.info(
        "CONSTRUCTION_CONFIG_TRACE",
        extra={
            "trace_type": "CONSTRUCTION_CONFIG_TRACE",
            "config_set": settings.name,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "alert_horizon_days": settings.schedule.alert_horizon_days,
            "sequencing": settings.templates.sequencing,
        },
    )
    return settings


__all__ = [
    "EngineSettings",
    "ScheduleSettings",
    "TemplateSettings",
    "get_active_config",
]
