"""
Module: construction_kernel.selectors.hierarchy_selector
Responsibility: Dashboard read queries over the hierarchy -- the full tree
    of a project, assignment status counts, DELAYED counts per project, team
    workload, and assignments awaiting payment.
Architecture position: Kernel > Selectors.  Read-only.

All queries are flat joins filtered by company or project; none of them
recomputes progress.  Stored aggregates are returned as persisted.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import case, func, select

from construction_kernel.domain.dtos import (
    AssignmentStatus,
    CategoryInfo,
    ProjectInfo,
    TeamAssignmentInfo,
    UnitInfo,
)
from construction_kernel.domain.status import parse_status
from construction_kernel.exceptions import InvalidStatusError, ProjectNotFoundError
from construction_kernel.logging_config import get_logger
from construction_kernel.models.category import Category
from construction_kernel.models.project import Project
from construction_kernel.models.team import Team
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.models.unit import Unit
from construction_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.hierarchy")


@dataclass(frozen=True)
class CategoryNode:
    category: CategoryInfo
    assignments: tuple[TeamAssignmentInfo, ...]


@dataclass(frozen=True)
class UnitNode:
    unit: UnitInfo
    categories: tuple[CategoryNode, ...]


@dataclass(frozen=True)
class ProjectTree:
    project: ProjectInfo
    units: tuple[UnitNode, ...]

    @property
    def assignment_count(self) -> int:
        return sum(len(c.assignments) for u in self.units for c in u.categories)


@dataclass(frozen=True)
class TeamWorkload:
    team_id: UUID
    team_name: str | None
    total: int
    in_progress: int


@dataclass(frozen=True)
class PaymentDue:
    """A DONE assignment whose work was received but not yet paid."""

    assignment: TeamAssignmentInfo
    project_id: UUID
    unit_id: UUID
    category_name: str


class HierarchySelector(BaseSelector[Project]):
    def project_tree(self, project_id: UUID) -> ProjectTree:
        """
        Load a project with its units, categories and assignments.

        Units are in creation order, categories by ``order`` then creation
        order, assignments in creation order.

        Raises:
            ProjectNotFoundError: project_id does not resolve.
        """
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        units = self.session.scalars(
            select(Unit).where(Unit.project_id == project_id).order_by(Unit.position, Unit.id)
        ).all()
        unit_ids = [u.id for u in units]

        categories = self.session.scalars(
            select(Category)
            .where(Category.unit_id.in_(unit_ids))
            .order_by(Category.order, Category.position, Category.id)
        ).all() if unit_ids else []
        category_ids = [c.id for c in categories]

        assignments = self.session.scalars(
            select(TeamAssignment)
            .where(TeamAssignment.category_id.in_(category_ids))
            .order_by(TeamAssignment.position, TeamAssignment.id)
        ).all() if category_ids else []

        by_category: dict[UUID, list[TeamAssignmentInfo]] = {}
        for assignment in assignments:
            by_category.setdefault(assignment.category_id, []).append(
                TeamAssignmentInfo.from_model(assignment)
            )
        by_unit: dict[UUID, list[CategoryNode]] = {}
        for category in categories:
            by_unit.setdefault(category.unit_id, []).append(
                CategoryNode(
                    category=CategoryInfo.from_model(category),
                    assignments=tuple(by_category.get(category.id, ())),
                )
            )

        return ProjectTree(
            project=ProjectInfo.from_model(project),
            units=tuple(
                UnitNode(unit=UnitInfo.from_model(u), categories=tuple(by_unit.get(u.id, ())))
                for u in units
            ),
        )

    def list_projects(self, company_id: UUID | None = None) -> list[ProjectInfo]:
        stmt = select(Project)
        if company_id is not None:
            stmt = stmt.where(Project.company_id == company_id)
        stmt = stmt.order_by(Project.name, Project.id)
        return [ProjectInfo.from_model(p) for p in self.session.scalars(stmt)]

    def status_counts(
        self,
        company_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> dict[AssignmentStatus, int]:
        """Assignment count per status; every status is present, unknown values are skipped."""
        stmt = self._scoped(
            select(TeamAssignment.status, func.count(TeamAssignment.id)).select_from(
                TeamAssignment
            ),
            company_id,
            project_id,
        ).group_by(TeamAssignment.status)

        counts = {status: 0 for status in AssignmentStatus}
        for raw_status, count in self.session.execute(stmt):
            try:
                counts[parse_status(raw_status)] += count
            except InvalidStatusError:
                logger.warning(
                    "status_count_skipped",
                    extra={"bad_status": raw_status, "assignments": count},
                )
        return counts

    def delayed_count_by_project(self, company_id: UUID | None = None) -> dict[UUID, int]:
        """Assignments flagged DELAYED, per project.  Projects with none are omitted."""
        stmt = (
            select(Project.id, func.count(TeamAssignment.id))
            .select_from(TeamAssignment)
            .join(Category, TeamAssignment.category_id == Category.id)
            .join(Unit, Category.unit_id == Unit.id)
            .join(Project, Unit.project_id == Project.id)
            .where(TeamAssignment.status == AssignmentStatus.DELAYED.value)
            .group_by(Project.id)
        )
        if company_id is not None:
            stmt = stmt.where(Project.company_id == company_id)
        return {project_id: count for project_id, count in self.session.execute(stmt)}

    def team_workload(self, company_id: UUID | None = None) -> list[TeamWorkload]:
        """Total vs in-progress assignments per team, busiest first."""
        in_progress = func.count(
            case((TeamAssignment.status == AssignmentStatus.IN_PROGRESS.value, 1))
        )
        stmt = self._scoped(
            select(
                TeamAssignment.team_id,
                Team.name,
                func.count(TeamAssignment.id),
                in_progress,
            )
            .select_from(TeamAssignment)
            .outerjoin(Team, TeamAssignment.team_id == Team.id),
            company_id,
            None,
        ).group_by(TeamAssignment.team_id, Team.name)

        workloads = [
            TeamWorkload(team_id=team_id, team_name=name, total=total, in_progress=active)
            for team_id, name, total, active in self.session.execute(stmt)
        ]
        workloads.sort(key=lambda w: (-w.in_progress, -w.total, str(w.team_id)))
        return workloads

    def assignments_awaiting_payment(
        self,
        company_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> list[PaymentDue]:
        stmt = self._scoped(
            select(
                TeamAssignment, Unit.project_id, Category.unit_id, Category.name
            ).select_from(TeamAssignment),
            company_id,
            project_id,
        ).where(
            TeamAssignment.status == AssignmentStatus.DONE.value,
            TeamAssignment.reception_status.is_(True),
            TeamAssignment.payment_status.is_(False),
        ).order_by(TeamAssignment.updated_at, TeamAssignment.id)

        return [
            PaymentDue(
                assignment=TeamAssignmentInfo.from_model(assignment),
                project_id=project,
                unit_id=unit,
                category_name=category_name,
            )
            for assignment, project, unit, category_name in self.session.execute(stmt)
        ]

    @staticmethod
    def _scoped(stmt, company_id: UUID | None, project_id: UUID | None):
        stmt = (
            stmt.join(Category, TeamAssignment.category_id == Category.id)
            .join(Unit, Category.unit_id == Unit.id)
            .join(Project, Unit.project_id == Project.id)
        )
        if company_id is not None:
            stmt = stmt.where(Project.company_id == company_id)
        if project_id is not None:
            stmt = stmt.where(Project.id == project_id)
        return stmt
