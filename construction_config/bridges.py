"""
Config -> Kernel Bridges.

Build kernel services from ``EngineSettings``.  These live in
construction_config because the kernel must NEVER import it.

Usage:
    settings = get_active_config()
    scanner = build_scanner(session, settings, clock)
    templates = build_template_service(session, settings, clock)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from construction_config.schema import EngineSettings
from construction_kernel.domain.clock import Clock
from construction_kernel.domain.dtos import TemplateSequencing
from construction_kernel.selectors.schedule_selector import ScheduleRiskScanner
from construction_kernel.services.template_service import TemplateService


def build_scanner(
    session: Session,
    settings: EngineSettings,
    clock: Clock | None = None,
    starting_soon: bool = False,
) -> ScheduleRiskScanner:
    """Scanner using the alert horizon, or the starting-soon horizon."""
    schedule = settings.schedule
    horizon = (
        schedule.starting_soon_horizon_days if starting_soon else schedule.alert_horizon_days
    )
    return ScheduleRiskScanner(session, clock=clock, horizon_days=horizon)


def build_template_service(
    session: Session,
    settings: EngineSettings,
    clock: Clock | None = None,
) -> TemplateService:
    return TemplateService(
        session,
        clock=clock,
        default_sequencing=TemplateSequencing(settings.templates.sequencing),
    )
