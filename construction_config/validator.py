"""
Configuration Validator (``construction_config.validator``).

Checks a parsed ``EngineSettings`` for values the engine would reject at
runtime.  Errors block activation; warnings do not.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from construction_config.schema import EngineSettings

VALID_SEQUENCING = ("anchored", "sequential")


@dataclass
class ConfigValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_settings(settings: EngineSettings) -> ConfigValidationResult:
    result = ConfigValidationResult()
    schedule = settings.schedule

    if not settings.name or not settings.name.strip():
        result.add_error("name must not be empty")
    if not isinstance(settings.version, int) or settings.version < 1:
        result.add_error(f"version must be a positive integer, got {settings.version!r}")

    if schedule.alert_horizon_days < 0:
        result.add_error("schedule.alert_horizon_days must be >= 0")
    if schedule.starting_soon_horizon_days < 0:
        result.add_error("schedule.starting_soon_horizon_days must be >= 0")
    if schedule.poll_interval_seconds < 1:
        result.add_error("schedule.poll_interval_seconds must be >= 1")
    if schedule.starting_soon_horizon_days < schedule.alert_horizon_days:
        result.add_warning(
            "schedule.starting_soon_horizon_days is shorter than alert_horizon_days"
        )

    if settings.templates.sequencing not in VALID_SEQUENCING:
        result.add_error(
            f"templates.sequencing must be one of {', '.join(VALID_SEQUENCING)}, "
            f"got {settings.templates.sequencing!r}"
        )

    return result
