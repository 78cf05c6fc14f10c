"""Selectors for the construction kernel (read side)."""

from construction_kernel.selectors.hierarchy_selector import (
    CategoryNode,
    HierarchySelector,
    PaymentDue,
    ProjectTree,
    TeamWorkload,
    UnitNode,
)
from construction_kernel.selectors.schedule_selector import ScheduleRiskScanner
from construction_kernel.selectors.team_directory import TeamDirectory

__all__ = [
    "CategoryNode",
    "HierarchySelector",
    "PaymentDue",
    "ProjectTree",
    "ScheduleRiskScanner",
    "TeamDirectory",
    "TeamWorkload",
    "UnitNode",
]
