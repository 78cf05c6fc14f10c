"""
ORM models for the construction kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from construction_kernel.models.category import Category
from construction_kernel.models.payment import Payment
from construction_kernel.models.project import Project
from construction_kernel.models.team import Team
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.models.template import (
    Template,
    TemplateCategory,
    TemplateTeamAssignment,
)
from construction_kernel.models.unit import Unit

__all__ = [
    "Category",
    "Payment",
    "Project",
    "Team",
    "TeamAssignment",
    "Template",
    "TemplateCategory",
    "TemplateTeamAssignment",
    "Unit",
]
