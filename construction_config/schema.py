"""
Configuration Schema (``construction_config.schema``).

Frozen dataclasses describing one engine configuration set.  Instances are
produced by ``construction_config.loader`` and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ScheduleSettings:
    """
    Schedule-risk scanning settings.

    ``alert_horizon_days`` drives UI alerts; ``starting_soon_horizon_days``
    drives the broader "starting soon" list.
    """

    alert_horizon_days: int = 2
    starting_soon_horizon_days: int = 7
    poll_interval_seconds: int = 60


@dataclass(frozen=True)
class TemplateSettings:
    # "anchored" | "sequential"
    sequencing: str = "anchored"


@dataclass(frozen=True)
class EngineSettings:
    name: str
    version: int
    description: str = ""
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)
    templates: TemplateSettings = field(default_factory=TemplateSettings)
    checksum: str = ""
