"""
HierarchyService -- create, update and delete hierarchy nodes.

Responsibility:
    CRUD for Project, Unit, Category, Team and TeamAssignment.  Validates
    input before touching the store, keeps sibling creation order, and
    triggers the progress cascade whenever a level's child set changes.

Architecture position:
    Kernel > Services -- imperative shell.
    Delegates aggregation to ProgressService and team resolution to
    TeamDirectory.

Invariants enforced:
    - Validation errors are raised before any persistence call.
    - Deleting a node deletes its subtree (ORM delete-orphan cascade).
      Teams are never deleted with an assignment.
    - Creating or deleting a Unit, Category or TeamAssignment leaves the
      ancestors' progress consistent on return.

Failure modes:
    - EmptyNameError, InvalidDateRangeError, InvalidStatusError,
      ProgressOutOfRangeError, ValidationError on bad input.
    - ProjectNotFoundError, UnitNotFoundError, CategoryNotFoundError,
      TeamAssignmentNotFoundError, TeamNotFoundError on unresolved ids.
    - StoreError / CascadeError from the store.

A category scheduled outside its project's timeline is accepted and logged
at WARNING as ``category_outside_project_timeline``.
"""

from datetime import date
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from construction_kernel.domain.dtos import (
    AssignmentStatus,
    CategoryInfo,
    ProjectInfo,
    ProjectStatus,
    TeamAssignmentInfo,
    TeamInfo,
    UnitInfo,
    UnitType,
)
from construction_kernel.domain.progress import validate_progress
from construction_kernel.domain.status import INITIAL_STATUS, parse_status
from construction_kernel.domain.validation import (
    parse_enum,
    require_date_range,
    require_name,
    require_positive_int,
    require_task_names,
)
from construction_kernel.exceptions import (
    CategoryNotFoundError,
    ProjectNotFoundError,
    TeamAssignmentNotFoundError,
    TeamNotFoundError,
    UnitNotFoundError,
    ValidationError,
)
from construction_kernel.logging_config import get_logger
from construction_kernel.models.category import Category
from construction_kernel.models.project import Project
from construction_kernel.models.team import Team
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.models.unit import Unit
from construction_kernel.selectors.team_directory import TeamDirectory
from construction_kernel.services.base import BaseService
from construction_kernel.services.progress_service import ProgressService

logger = get_logger("services.hierarchy")


class HierarchyService(BaseService[Project]):
    """
    Service for hierarchy CRUD.

    Contract:
        Every public method returns a frozen DTO (or None for deletes) and
        flushes within the caller's transaction.
    """

    def __init__(
        self,
        session: Session,
        progress: ProgressService | None = None,
        teams: TeamDirectory | None = None,
    ):
        super().__init__(session)
        self._progress = progress or ProgressService(session)
        self._teams = teams or TeamDirectory(session)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(
        self,
        name: str,
        *,
        location: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: ProjectStatus | str = ProjectStatus.PLANNING,
        company_id: UUID | None = None,
    ) -> ProjectInfo:
        name = require_name("Project", name)
        require_date_range(start_date, end_date, allow_equal=True)
        project_status = parse_enum(ProjectStatus, "status", status)

        project = Project(
            name=name,
            location=location,
            start_date=start_date,
            end_date=end_date,
            status=project_status.value,
            progress=0.0,
            company_id=company_id,
        )
        self.session.add(project)
        self._flush("create project")

        logger.info(
            "project_created",
            extra={"project_id": str(project.id), "project_name": name},
        )
        return ProjectInfo.from_model(project)

    def update_project(
        self,
        project_id: UUID,
        *,
        name: str | None = None,
        location: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: ProjectStatus | str | None = None,
    ) -> ProjectInfo:
        """Partial update; arguments left as None are not changed."""
        if name is not None:
            name = require_name("Project", name)
        project_status = parse_enum(ProjectStatus, "status", status) if status is not None else None

        project = self._get_or_raise(Project, project_id, ProjectNotFoundError)
        new_start = start_date if start_date is not None else project.start_date
        new_end = end_date if end_date is not None else project.end_date
        require_date_range(new_start, new_end, allow_equal=True)

        if name is not None:
            project.name = name
        if location is not None:
            project.location = location
        project.start_date = new_start
        project.end_date = new_end
        if project_status is not None:
            project.status = project_status.value
        self._flush("update project")

        logger.info("project_updated", extra={"project_id": str(project_id)})
        return ProjectInfo.from_model(project)

    def get_project(self, project_id: UUID) -> ProjectInfo:
        return ProjectInfo.from_model(
            self._get_or_raise(Project, project_id, ProjectNotFoundError)
        )

    def delete_project(self, project_id: UUID) -> None:
        project = self._get_or_raise(Project, project_id, ProjectNotFoundError)
        self._delete(project, "delete project")
        logger.info("project_deleted", extra={"project_id": str(project_id)})

    # ------------------------------------------------------------------
    # Units
    # ------------------------------------------------------------------

    def create_unit(
        self,
        project_id: UUID,
        name: str,
        unit_type: UnitType | str,
        *,
        floor: int | None = None,
        area: float | None = None,
    ) -> UnitInfo:
        name = require_name("Unit", name)
        kind = parse_enum(UnitType, "unit_type", unit_type)
        _require_area(area)

        self._get_or_raise(Project, project_id, ProjectNotFoundError)
        unit = Unit(
            project_id=project_id,
            name=name,
            unit_type=kind.value,
            floor=floor,
            area=area,
            progress=0.0,
            position=self._next_position(Unit, Unit.project_id, project_id),
        )
        self.session.add(unit)
        self._flush("create unit")

        logger.info(
            "unit_created",
            extra={
                "project_id": str(project_id),
                "unit_id": str(unit.id),
                "unit_type": kind.value,
            },
        )
        self._progress.cascade_from_project(project_id)
        return UnitInfo.from_model(unit)

    def update_unit(
        self,
        unit_id: UUID,
        *,
        name: str | None = None,
        unit_type: UnitType | str | None = None,
        floor: int | None = None,
        area: float | None = None,
    ) -> UnitInfo:
        if name is not None:
            name = require_name("Unit", name)
        kind = parse_enum(UnitType, "unit_type", unit_type) if unit_type is not None else None
        _require_area(area)

        unit = self._get_or_raise(Unit, unit_id, UnitNotFoundError)
        if name is not None:
            unit.name = name
        if kind is not None:
            unit.unit_type = kind.value
        if floor is not None:
            unit.floor = floor
        if area is not None:
            unit.area = area
        self._flush("update unit")

        logger.info("unit_updated", extra={"unit_id": str(unit_id)})
        return UnitInfo.from_model(unit)

    def get_unit(self, unit_id: UUID) -> UnitInfo:
        return UnitInfo.from_model(self._get_or_raise(Unit, unit_id, UnitNotFoundError))

    def delete_unit(self, unit_id: UUID) -> None:
        unit = self._get_or_raise(Unit, unit_id, UnitNotFoundError)
        project_id = unit.project_id
        self._delete(unit, "delete unit")
        logger.info(
            "unit_deleted",
            extra={"project_id": str(project_id), "unit_id": str(unit_id)},
        )
        self._progress.cascade_from_project(project_id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(
        self,
        unit_id: UUID,
        name: str,
        start_date: date,
        end_date: date,
        order: int,
    ) -> CategoryInfo:
        """
        Create a category on a unit and recompute the unit and project.

        Raises:
            InvalidDateRangeError: end_date is not after start_date.
            ValidationError: order is not a positive integer.
            UnitNotFoundError: unit_id does not resolve.
        """
        name = require_name("Category", name)
        if start_date is None or end_date is None:
            raise ValidationError("start_date", "category dates are required")
        require_date_range(start_date, end_date)
        require_positive_int("order", order)

        unit = self._get_or_raise(Unit, unit_id, UnitNotFoundError)
        category = Category(
            unit_id=unit_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            order=order,
            progress=0.0,
            position=self._next_position(Category, Category.unit_id, unit_id),
        )
        self.session.add(category)
        self._flush("create category")

        logger.info(
            "category_created",
            extra={
                "unit_id": str(unit_id),
                "category_id": str(category.id),
                "order": order,
            },
        )
        self._warn_if_outside_timeline(unit.project_id, category)
        self._progress.cascade_from_unit(unit_id)
        return CategoryInfo.from_model(category)

    def update_category_dates(
        self,
        category_id: UUID,
        start_date: date,
        end_date: date,
    ) -> CategoryInfo:
        require_date_range(start_date, end_date)

        category = self._get_or_raise(Category, category_id, CategoryNotFoundError)
        category.start_date = start_date
        category.end_date = end_date
        self._flush("update category dates")

        logger.info(
            "category_rescheduled",
            extra={
                "category_id": str(category_id),
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        unit = self._get_or_raise(Unit, category.unit_id, UnitNotFoundError)
        self._warn_if_outside_timeline(unit.project_id, category)
        return CategoryInfo.from_model(category)

    def get_category(self, category_id: UUID) -> CategoryInfo:
        return CategoryInfo.from_model(
            self._get_or_raise(Category, category_id, CategoryNotFoundError)
        )

    def delete_category(self, category_id: UUID) -> None:
        category = self._get_or_raise(Category, category_id, CategoryNotFoundError)
        unit_id = category.unit_id
        self._delete(category, "delete category")
        logger.info(
            "category_deleted",
            extra={"unit_id": str(unit_id), "category_id": str(category_id)},
        )
        self._progress.cascade_from_unit(unit_id)

    def _warn_if_outside_timeline(self, project_id: UUID, category: Category) -> None:
        project = self._get_or_raise(Project, project_id, ProjectNotFoundError)
        starts_early = project.start_date is not None and category.start_date < project.start_date
        ends_late = project.end_date is not None and category.end_date > project.end_date
        if starts_early or ends_late:
            logger.warning(
                "category_outside_project_timeline",
                extra={
                    "project_id": str(project_id),
                    "category_id": str(category.id),
                    "category_start": category.start_date,
                    "category_end": category.end_date,
                    "project_start": project.start_date,
                    "project_end": project.end_date,
                },
            )

    # ------------------------------------------------------------------
    # Teams and assignments
    # ------------------------------------------------------------------

    def create_team(
        self,
        name: str,
        *,
        company_id: UUID | None = None,
        specialty: str | None = None,
        color: str | None = None,
        is_active: bool = True,
    ) -> TeamInfo:
        name = require_name("Team", name)
        team = Team(
            name=name,
            company_id=company_id,
            specialty=specialty,
            color=color,
            is_active=is_active,
        )
        self.session.add(team)
        self._flush("create team")

        logger.info("team_created", extra={"team_id": str(team.id), "team_name": name})
        return TeamInfo.from_model(team)

    def create_team_assignment(
        self,
        category_id: UUID,
        team_id: UUID,
        *,
        status: AssignmentStatus | str = INITIAL_STATUS,
        progress: float = 0.0,
        notes: str = "",
        tasks: Sequence[str] = (),
        reception_status: bool = False,
        payment_status: bool = False,
    ) -> TeamAssignmentInfo:
        """
        Assign a team to a category and recompute the category upward.

        Raises:
            ProgressOutOfRangeError: progress outside [0, 100].
            InvalidStatusError: unknown status.
            CategoryNotFoundError / TeamNotFoundError: unresolved ids.
        """
        assignment_status = parse_status(status)
        value = validate_progress(progress)
        task_names = require_task_names(tasks)

        self._get_or_raise(Category, category_id, CategoryNotFoundError)
        self._teams.resolve_team(team_id)

        assignment = TeamAssignment(
            category_id=category_id,
            team_id=team_id,
            status=assignment_status.value,
            progress=value,
            reception_status=reception_status,
            payment_status=payment_status,
            notes=notes or "",
            tasks=task_names,
            position=self._next_position(
                TeamAssignment, TeamAssignment.category_id, category_id
            ),
        )
        self.session.add(assignment)
        self._flush("create team assignment")

        logger.info(
            "team_assignment_created",
            extra={
                "category_id": str(category_id),
                "assignment_id": str(assignment.id),
                "team_id": str(team_id),
            },
        )
        self._progress.cascade_from_category(category_id)
        return TeamAssignmentInfo.from_model(assignment)

    def get_team_assignment(self, assignment_id: UUID) -> TeamAssignmentInfo:
        return TeamAssignmentInfo.from_model(
            self._get_or_raise(TeamAssignment, assignment_id, TeamAssignmentNotFoundError)
        )

    def delete_team_assignment(self, assignment_id: UUID) -> None:
        assignment = self._get_or_raise(
            TeamAssignment, assignment_id, TeamAssignmentNotFoundError
        )
        category_id = assignment.category_id
        self._delete(assignment, "delete team assignment")
        logger.info(
            "team_assignment_deleted",
            extra={"category_id": str(category_id), "assignment_id": str(assignment_id)},
        )
        self._progress.cascade_from_category(category_id)

    def get_team(self, team_id: UUID) -> TeamInfo:
        return TeamInfo.from_model(self._get_or_raise(Team, team_id, TeamNotFoundError))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _delete(self, entity: Any, operation: str) -> None:
        self._flush(operation)
        # Child collections may predate rows added by id; reload them.
        self.session.expire_all()
        self.session.delete(entity)
        self._flush(operation)


def _require_area(area: float | None) -> None:
    if area is None:
        return
    if isinstance(area, bool) or not isinstance(area, (int, float)) or area < 0:
        raise ValidationError("area", f"{area!r} must be a non-negative number")
