"""
UnitCloneService -- deep-copy a unit's schedule onto a new unit.

Responsibility:
    Creates a new Unit (in the source's project or another one) and copies
    the source's Categories and TeamAssignments, preserving structure while
    resetting all work state.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    CLONE_RESETS_WORK -- copied assignments are NOT_STARTED at 0% with
                         reception and payment flags false.  Tasks and notes
                         are copied verbatim.
    BATCH_CONTINUES   -- a team reference that no longer resolves skips
                         that one assignment with a warning.
    - Category dates are copied as-is; a clone replicates a concrete
      schedule rather than re-anchoring it.
    - Payments attached to the source assignments are never copied.
    - A source unit with no categories yields an empty unit, not an error.

Failure modes:
    - UnitNotFoundError (source), ProjectNotFoundError (target).
    - EmptyNameError, InvalidStatusError on the new unit's attributes.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from construction_kernel.domain.dtos import (
    AssignmentStatus,
    CloneResult,
    OperationWarning,
    UnitInfo,
    UnitType,
)
from construction_kernel.domain.validation import parse_enum, require_name
from construction_kernel.exceptions import (
    ProjectNotFoundError,
    TeamNotFoundError,
    UnitNotFoundError,
)
from construction_kernel.logging_config import LogContext, get_logger
from construction_kernel.models.category import Category
from construction_kernel.models.project import Project
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.models.unit import Unit
from construction_kernel.selectors.team_directory import TeamDirectory
from construction_kernel.services.base import BaseService
from construction_kernel.services.progress_service import ProgressService

logger = get_logger("services.clone")


class UnitCloneService(BaseService[Unit]):
    def __init__(
        self,
        session: Session,
        progress: ProgressService | None = None,
        teams: TeamDirectory | None = None,
    ):
        super().__init__(session)
        self._progress = progress or ProgressService(session)
        self._teams = teams or TeamDirectory(session)

    def clone_unit(
        self,
        source_unit_id: UUID,
        name: str,
        target_project_id: UUID | None = None,
        unit_type: UnitType | str | None = None,
        floor: int | None = None,
        area: float | None = None,
    ) -> CloneResult:
        """
        Clone a unit's categories and assignments onto a new unit.

        Attributes left as None (project, type, floor, area) are taken from
        the source unit.
        """
        name = require_name("Unit", name)
        kind = parse_enum(UnitType, "unit_type", unit_type) if unit_type is not None else None

        source = self._get_or_raise(Unit, source_unit_id, UnitNotFoundError)
        project_id = target_project_id or source.project_id
        self._get_or_raise(Project, project_id, ProjectNotFoundError)

        unit = Unit(
            project_id=project_id,
            name=name,
            unit_type=kind.value if kind is not None else source.unit_type,
            floor=floor if floor is not None else source.floor,
            area=area if area is not None else source.area,
            progress=0.0,
            position=self._next_position(Unit, Unit.project_id, project_id),
        )
        self.session.add(unit)
        self._flush("clone unit")

        category_ids: list[UUID] = []
        assignment_ids: list[UUID] = []
        warnings: list[OperationWarning] = []

        with LogContext.bind(project_id=project_id, unit_id=unit.id):
            source_categories = self.session.scalars(
                select(Category)
                .where(Category.unit_id == source_unit_id)
                .order_by(Category.order, Category.position)
            ).all()

            for source_category in source_categories:
                category = Category(
                    unit_id=unit.id,
                    name=source_category.name,
                    start_date=source_category.start_date,
                    end_date=source_category.end_date,
                    order=source_category.order,
                    progress=0.0,
                    position=source_category.position,
                )
                self.session.add(category)
                self._flush("clone category")
                category_ids.append(category.id)

                source_assignments = self.session.scalars(
                    select(TeamAssignment)
                    .where(TeamAssignment.category_id == source_category.id)
                    .order_by(TeamAssignment.position)
                ).all()

                for source_assignment in source_assignments:
                    try:
                        self._teams.resolve_team(source_assignment.team_id)
                    except TeamNotFoundError as exc:
                        logger.warning(
                            "clone_team_unresolved",
                            extra={
                                "source_assignment_id": str(source_assignment.id),
                                "team_id": str(source_assignment.team_id),
                            },
                        )
                        warnings.append(
                            OperationWarning(
                                code=exc.code,
                                message=str(exc),
                                context={
                                    "category_id": str(category.id),
                                    "source_assignment_id": str(source_assignment.id),
                                    "team_id": str(source_assignment.team_id),
                                },
                            )
                        )
                        continue

                    assignment = TeamAssignment(
                        category_id=category.id,
                        team_id=source_assignment.team_id,
                        status=AssignmentStatus.NOT_STARTED.value,
                        progress=0.0,
                        reception_status=False,
                        payment_status=False,
                        notes=source_assignment.notes or "",
                        tasks=list(source_assignment.tasks or []),
                        position=source_assignment.position,
                    )
                    self.session.add(assignment)
                    self._flush("clone assignment")
                    assignment_ids.append(assignment.id)

            self._progress.cascade_from_unit(unit.id)

            logger.info(
                "unit_cloned",
                extra={
                    "source_unit_id": str(source_unit_id),
                    "categories": len(category_ids),
                    "assignments": len(assignment_ids),
                    "warnings": len(warnings),
                },
            )

        return CloneResult(
            source_unit_id=source_unit_id,
            unit=UnitInfo.from_model(unit),
            category_ids=tuple(category_ids),
            assignment_ids=tuple(assignment_ids),
            warnings=tuple(warnings),
        )
