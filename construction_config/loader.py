"""
Configuration Loader (``construction_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen dataclasses
of ``construction_config.schema``.  Runtime callers go through
``construction_config.get_active_config()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong value types  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from construction_config.schema import EngineSettings, ScheduleSettings, TemplateSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def parse_schedule(data: dict[str, Any]) -> ScheduleSettings:
    defaults = ScheduleSettings()
    return ScheduleSettings(
        alert_horizon_days=parse_int(data, "alert_horizon_days", defaults.alert_horizon_days),
        starting_soon_horizon_days=parse_int(
            data, "starting_soon_horizon_days", defaults.starting_soon_horizon_days
        ),
        poll_interval_seconds=parse_int(
            data, "poll_interval_seconds", defaults.poll_interval_seconds
        ),
    )


def parse_templates(data: dict[str, Any]) -> TemplateSettings:
    sequencing = data.get("sequencing", TemplateSettings().sequencing)
    if not isinstance(sequencing, str):
        raise ValueError(f"sequencing must be a string, got {sequencing!r}")
    return TemplateSettings(sequencing=sequencing.lower())


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse an ``EngineSettings`` from the raw YAML dict.

    Raises:
        KeyError: if ``name`` or ``version`` is missing.
    """
    return EngineSettings(
        name=data["name"],
        version=data["version"],
        description=data.get("description", ""),
        schedule=parse_schedule(data.get("schedule") or {}),
        templates=parse_templates(data.get("templates") or {}),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> EngineSettings:
    return parse_settings(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a configuration dict."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
