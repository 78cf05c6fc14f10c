"""
TemplateService -- define unit templates and apply them to units.

Responsibility:
    Stores reusable, date-free category sets (with durations, teams, tasks
    and notes) and expands them onto a unit as concrete Categories and
    TeamAssignments dated from a base date.

Architecture position:
    Kernel > Services -- imperative shell.
    Date planning is pure (``domain.planning``); team references are
    resolved through TeamDirectory; the unit is recomputed through
    ProgressService once all children exist.

Invariants enforced:
    BATCH_CONTINUES -- an unresolvable team skips that one assignment and
                       is reported as a warning; nothing already created is
                       rolled back.
    - Every created assignment starts NOT_STARTED at 0% with reception and
      payment flags false; tasks and notes are copied verbatim.
    - Re-applying a template adds a second, parallel set of categories.

Sequencing:
    ANCHORED (default) starts every category at ``base``.  SEQUENTIAL chains
    categories end-to-end in ``order``.  ``base`` defaults to the clock's
    current date.

Failure modes:
    - InvalidTemplateError / EmptyNameError / InvalidStatusError from
      ``create_template``.
    - TemplateNotFoundError, UnitNotFoundError from ``apply_template``.
"""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from construction_kernel.domain.clock import Clock, SystemClock
from construction_kernel.domain.dtos import (
    AssignmentStatus,
    OperationWarning,
    TemplateApplicationResult,
    TemplateCategorySpec,
    TemplateInfo,
    TemplateSequencing,
    UnitType,
)
from construction_kernel.domain.planning import plan_categories
from construction_kernel.domain.validation import (
    parse_enum,
    require_name,
    require_task_names,
)
from construction_kernel.exceptions import (
    InvalidTemplateError,
    TeamNotFoundError,
    TemplateNotFoundError,
    UnitNotFoundError,
    ValidationError,
)
from construction_kernel.logging_config import LogContext, get_logger
from construction_kernel.models.category import Category
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.models.template import (
    Template,
    TemplateCategory,
    TemplateTeamAssignment,
)
from construction_kernel.models.unit import Unit
from construction_kernel.selectors.team_directory import TeamDirectory
from construction_kernel.services.base import BaseService
from construction_kernel.services.progress_service import ProgressService

logger = get_logger("services.template")


class TemplateService(BaseService[Template]):
    """
    Service for template definition and application.

    Contract:
        ``apply_template`` returns a ``TemplateApplicationResult`` listing
        what was created and one warning per skipped assignment.  Callers
        detect partial application through ``result.warnings``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        progress: ProgressService | None = None,
        teams: TeamDirectory | None = None,
        default_sequencing: TemplateSequencing = TemplateSequencing.ANCHORED,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._progress = progress or ProgressService(session)
        self._teams = teams or TeamDirectory(session)
        self._default_sequencing = default_sequencing

    def create_template(
        self,
        name: str,
        unit_type: UnitType | str,
        categories: Sequence[TemplateCategorySpec],
        *,
        company_id: UUID | None = None,
        description: str = "",
    ) -> TemplateInfo:
        name = require_name("Template", name)
        kind = parse_enum(UnitType, "unit_type", unit_type)
        for index, spec in enumerate(categories):
            _validate_category_spec(index, spec)

        template = Template(
            name=name,
            unit_type=kind.value,
            description=description or "",
            company_id=company_id,
            categories=[
                TemplateCategory(
                    name=spec.name.strip(),
                    order=spec.order,
                    duration_days=spec.duration_days,
                    position=position,
                    team_assignments=[
                        TemplateTeamAssignment(
                            team_id=team.team_id,
                            tasks=list(team.tasks),
                            notes=team.notes or "",
                            position=team_position,
                        )
                        for team_position, team in enumerate(spec.teams)
                    ],
                )
                for position, spec in enumerate(categories)
            ],
        )
        self.session.add(template)
        self._flush("create template")

        info = TemplateInfo.from_model(template)
        logger.info(
            "template_created",
            extra={
                "template_id": str(template.id),
                "template_name": name,
                "categories": len(info.categories),
                "assignments": info.assignment_count,
            },
        )
        return info

    def get_template(self, template_id: UUID) -> TemplateInfo:
        return TemplateInfo.from_model(
            self._get_or_raise(Template, template_id, TemplateNotFoundError)
        )

    def delete_template(self, template_id: UUID) -> None:
        template = self._get_or_raise(Template, template_id, TemplateNotFoundError)
        self.session.delete(template)
        self._flush("delete template")
        logger.info("template_deleted", extra={"template_id": str(template_id)})

    def apply_template(
        self,
        template_id: UUID,
        unit_id: UUID,
        base: date | None = None,
        sequencing: TemplateSequencing | str | None = None,
    ) -> TemplateApplicationResult:
        """
        Expand a template onto a unit.

        Args:
            template_id: Template to expand.
            unit_id: Target unit; existing categories are left untouched.
            base: Anchor date. Defaults to today on the injected clock.
            sequencing: ANCHORED or SEQUENTIAL; defaults to the service's
                configured sequencing.
        """
        mode = (
            parse_enum(TemplateSequencing, "sequencing", sequencing)
            if sequencing is not None
            else self._default_sequencing
        )
        template = self._get_or_raise(Template, template_id, TemplateNotFoundError)
        self._get_or_raise(Unit, unit_id, UnitNotFoundError)
        info = TemplateInfo.from_model(template)
        anchor = base or self._clock.today()

        category_ids: list[UUID] = []
        assignment_ids: list[UUID] = []
        warnings: list[OperationWarning] = []

        with LogContext.bind(unit_id=unit_id):
            logger.info(
                "template_application_started",
                extra={
                    "template_id": str(template_id),
                    "base": anchor,
                    "sequencing": mode.value,
                },
            )
            position = self._next_position(Category, Category.unit_id, unit_id)

            for plan in plan_categories(info.categories, anchor, mode):
                category = Category(
                    unit_id=unit_id,
                    name=plan.spec.name,
                    start_date=plan.start_date,
                    end_date=plan.end_date,
                    order=plan.spec.order,
                    progress=0.0,
                    position=position,
                )
                position += 1
                self.session.add(category)
                self._flush("apply template category")
                category_ids.append(category.id)

                for team_position, team in enumerate(plan.spec.teams):
                    try:
                        self._teams.resolve_team(team.team_id)
                    except TeamNotFoundError as exc:
                        logger.warning(
                            "template_team_unresolved",
                            extra={
                                "template_id": str(template_id),
                                "category_id": str(category.id),
                                "team_id": str(team.team_id),
                            },
                        )
                        warnings.append(
                            OperationWarning(
                                code=exc.code,
                                message=str(exc),
                                context={
                                    "category": plan.spec.name,
                                    "category_id": str(category.id),
                                    "team_id": str(team.team_id),
                                },
                            )
                        )
                        continue

                    assignment = TeamAssignment(
                        category_id=category.id,
                        team_id=team.team_id,
                        status=AssignmentStatus.NOT_STARTED.value,
                        progress=0.0,
                        reception_status=False,
                        payment_status=False,
                        notes=team.notes,
                        tasks=list(team.tasks),
                        position=team_position,
                    )
                    self.session.add(assignment)
                    self._flush("apply template assignment")
                    assignment_ids.append(assignment.id)

            self._progress.cascade_from_unit(unit_id)

            logger.info(
                "template_applied",
                extra={
                    "template_id": str(template_id),
                    "categories": len(category_ids),
                    "assignments": len(assignment_ids),
                    "warnings": len(warnings),
                },
            )

        return TemplateApplicationResult(
            template_id=template_id,
            unit_id=unit_id,
            category_ids=tuple(category_ids),
            assignment_ids=tuple(assignment_ids),
            warnings=tuple(warnings),
        )


def _validate_category_spec(index: int, spec: TemplateCategorySpec) -> None:
    field = f"categories[{index}]"
    require_name("Template category", spec.name)
    for attr in ("order", "duration_days"):
        value = getattr(spec, attr)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise InvalidTemplateError(
                f"{field}.{attr}", f"{value!r} must be a positive integer"
            )
    for team in spec.teams:
        if not isinstance(team.team_id, UUID):
            raise InvalidTemplateError(f"{field}.teams", f"{team.team_id!r} is not a team id")
        try:
            require_task_names(team.tasks)
        except ValidationError as exc:
            raise InvalidTemplateError(f"{field}.teams.tasks", exc.reason) from exc
