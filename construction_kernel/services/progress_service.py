"""
ProgressService -- bottom-up progress aggregation and cascade.

Responsibility:
    Keeps Category, Unit and Project ``progress`` consistent with their
    children.  Every mutation of a TeamAssignment's progress or status, and
    every change to a level's child set, ends in a cascade that recomputes
    and persists Category -> Unit -> Project, in that order.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by AssignmentService, HierarchyService, TemplateService and
    UnitCloneService after they flush their own writes.

Invariants enforced:
    PROGRESS_BOUNDS         -- aggregates are means of bounded values.
    EMPTY_LEVEL_IS_ZERO     -- a level with no children aggregates to 0.
    CASCADE_ORDER           -- each level is recomputed from the values
                               persisted by the level below in the same
                               session (read-your-writes via flush).
    AGGREGATION_IDEMPOTENCE -- recomputing with no intervening writes
                               persists the same value.

Manual overrides:
    ``set_project_progress`` / ``set_unit_progress`` store an explicit
    value flagged ``progress_source = "manual"``.  An override is
    best-effort: the next cascade through that level replaces it with the
    derived mean and logs ``manual_override_superseded``.

Failure modes:
    - NotFoundError subclasses when a starting id does not resolve.
    - CascadeError when a store failure interrupts a cascade.  It names the
      levels already persisted and those remaining; ``resume()`` retries
      only the remaining ones.
    - AggregationInconsistencyError from ``verify_project`` (diagnostic).
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from construction_kernel.domain.dtos import (
    CascadeResult,
    HierarchyLevel,
    LevelResult,
    ProgressSource,
    ProjectInfo,
    UnitInfo,
)
from construction_kernel.domain.progress import (
    clamp_progress,
    mean_progress,
    progress_matches,
)
from construction_kernel.exceptions import (
    AggregationInconsistencyError,
    CascadeError,
    CategoryNotFoundError,
    ProjectNotFoundError,
    StoreError,
    TeamAssignmentNotFoundError,
    UnitNotFoundError,
)
from construction_kernel.logging_config import get_logger
from construction_kernel.models.category import Category
from construction_kernel.models.project import Project
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.models.unit import Unit
from construction_kernel.services.base import BaseService

logger = get_logger("services.progress")

# level -> (model, not-found error, child progress column, child parent column)
_LEVELS = {
    HierarchyLevel.CATEGORY: (
        Category,
        CategoryNotFoundError,
        TeamAssignment.progress,
        TeamAssignment.category_id,
    ),
    HierarchyLevel.UNIT: (
        Unit,
        UnitNotFoundError,
        Category.progress,
        Category.unit_id,
    ),
    HierarchyLevel.PROJECT: (
        Project,
        ProjectNotFoundError,
        Unit.progress,
        Unit.project_id,
    ),
}

CascadePlan = tuple[tuple[HierarchyLevel, UUID], ...]


class ProgressService(BaseService[Project]):
    """
    Service for recomputing and persisting aggregated progress.

    Contract:
        Cascade methods return a ``CascadeResult`` listing each level that
        was recomputed, with its new value, in persistence order.

    Guarantees:
        - Never commits; the caller's transaction covers the whole cascade.
        - A failed cascade raises ``CascadeError`` with enough information
          to finish it later with ``resume()``.
    """

    # ------------------------------------------------------------------
    # Cascades
    # ------------------------------------------------------------------

    def cascade_from_assignment(self, assignment_id: UUID) -> CascadeResult:
        assignment = self._get_or_raise(
            TeamAssignment, assignment_id, TeamAssignmentNotFoundError
        )
        return self.cascade_from_category(assignment.category_id)

    def cascade_from_category(self, category_id: UUID) -> CascadeResult:
        category = self._get_or_raise(Category, category_id, CategoryNotFoundError)
        unit = self._get_or_raise(Unit, category.unit_id, UnitNotFoundError)
        return self._run(
            (
                (HierarchyLevel.CATEGORY, category.id),
                (HierarchyLevel.UNIT, unit.id),
                (HierarchyLevel.PROJECT, unit.project_id),
            )
        )

    def cascade_from_unit(self, unit_id: UUID) -> CascadeResult:
        unit = self._get_or_raise(Unit, unit_id, UnitNotFoundError)
        return self._run(
            (
                (HierarchyLevel.UNIT, unit.id),
                (HierarchyLevel.PROJECT, unit.project_id),
            )
        )

    def cascade_from_project(self, project_id: UUID) -> CascadeResult:
        """Recompute only the project level (its unit set changed)."""
        self._get_or_raise(Project, project_id, ProjectNotFoundError)
        return self._run(((HierarchyLevel.PROJECT, project_id),))

    def resume(self, error: CascadeError) -> CascadeResult:
        """
        Finish a cascade that failed partway.

        Only the levels listed in ``error.remaining`` are recomputed; the
        ones in ``error.completed`` are trusted as already persisted.
        """
        plan: CascadePlan = tuple(
            (HierarchyLevel(level), entity_id) for level, entity_id in error.remaining
        )
        logger.info(
            "cascade_resumed",
            extra={
                "failed_level": error.failed_level,
                "remaining": len(plan),
            },
        )
        return self._run(plan)

    def rebuild_project(self, project_id: UUID) -> CascadeResult:
        """
        Recompute every level of a project from its assignments up.

        Used after bulk imports or to repair a tree flagged by
        ``verify_project``.
        """
        self._get_or_raise(Project, project_id, ProjectNotFoundError)
        plan: list[tuple[HierarchyLevel, UUID]] = []
        for unit_id in self._child_ids(Unit.id, Unit.project_id, project_id):
            for category_id in self._child_ids(Category.id, Category.unit_id, unit_id):
                plan.append((HierarchyLevel.CATEGORY, category_id))
            plan.append((HierarchyLevel.UNIT, unit_id))
        plan.append((HierarchyLevel.PROJECT, project_id))

        result = self._run(tuple(plan))
        logger.info(
            "project_rebuilt",
            extra={"project_id": str(project_id), "levels": len(result.levels)},
        )
        return result

    def _run(self, plan: CascadePlan) -> CascadeResult:
        completed: list[LevelResult] = []
        for index, (level, entity_id) in enumerate(plan):
            try:
                value = self._recompute(level, entity_id)
                self._flush(f"cascade {level.value}")
            except StoreError as exc:
                remaining = tuple((lvl.value, eid) for lvl, eid in plan[index:])
                logger.error(
                    "cascade_failed",
                    extra={
                        "failed_level": level.value,
                        "entity_id": str(entity_id),
                        "completed": len(completed),
                        "remaining": len(remaining),
                    },
                )
                raise CascadeError(
                    completed=tuple(
                        (r.level.value, r.entity_id, r.progress) for r in completed
                    ),
                    remaining=remaining,
                    cause=exc.cause or exc,
                ) from exc
            completed.append(LevelResult(level=level, entity_id=entity_id, progress=value))

        logger.debug(
            "cascade_completed",
            extra={
                "levels": [r.level.value for r in completed],
                "progress": [r.progress for r in completed],
            },
        )
        return CascadeResult(levels=tuple(completed))

    def _recompute(self, level: HierarchyLevel, entity_id: UUID) -> float:
        model, error_cls, _, _ = _LEVELS[level]
        entity = self._get_or_raise(model, entity_id, error_cls)
        value = mean_progress(self._child_progress(level, entity_id))

        if level != HierarchyLevel.CATEGORY:
            if entity.progress_source == ProgressSource.MANUAL.value:
                logger.info(
                    "manual_override_superseded",
                    extra={
                        "hierarchy_level": level.value,
                        "entity_id": str(entity_id),
                        "manual_progress": entity.progress,
                        "derived_progress": value,
                    },
                )
            entity.progress_source = ProgressSource.DERIVED.value

        entity.progress = value
        return value

    def _child_progress(self, level: HierarchyLevel, entity_id: UUID) -> list[float]:
        _, _, progress_column, parent_column = _LEVELS[level]
        try:
            return list(
                self.session.scalars(
                    select(progress_column).where(parent_column == entity_id)
                )
            )
        except SQLAlchemyError as exc:
            raise StoreError(f"read {level.value} children", exc) from exc

    def _child_ids(self, id_column, parent_column, parent_id: UUID) -> list[UUID]:
        try:
            return list(
                self.session.scalars(
                    select(id_column).where(parent_column == parent_id).order_by(id_column)
                )
            )
        except SQLAlchemyError as exc:
            raise StoreError("read child ids", exc) from exc

    # ------------------------------------------------------------------
    # Manual overrides
    # ------------------------------------------------------------------

    def set_project_progress(self, project_id: UUID, progress: float) -> ProjectInfo:
        """
        Store an explicit project percentage, clamped to [0, 100].

        The value is flagged manual and is replaced by the derived mean the
        next time a cascade reaches this project.
        """
        value = clamp_progress(progress)
        project = self._get_or_raise(Project, project_id, ProjectNotFoundError)
        project.progress = value
        project.progress_source = ProgressSource.MANUAL.value
        self._flush("set project progress")

        logger.info(
            "manual_progress_override",
            extra={
                "hierarchy_level": HierarchyLevel.PROJECT.value,
                "entity_id": str(project_id),
                "requested": progress,
                "progress": value,
            },
        )
        return ProjectInfo.from_model(project)

    def set_unit_progress(self, unit_id: UUID, progress: float) -> UnitInfo:
        """
        Store an explicit unit percentage, clamped to [0, 100].

        The owning project is recomputed so it reflects the new unit value.
        """
        value = clamp_progress(progress)
        unit = self._get_or_raise(Unit, unit_id, UnitNotFoundError)
        unit.progress = value
        unit.progress_source = ProgressSource.MANUAL.value
        self._flush("set unit progress")

        logger.info(
            "manual_progress_override",
            extra={
                "hierarchy_level": HierarchyLevel.UNIT.value,
                "entity_id": str(unit_id),
                "requested": progress,
                "progress": value,
            },
        )
        self._run(((HierarchyLevel.PROJECT, unit.project_id),))
        return UnitInfo.from_model(unit)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def verify_project(self, project_id: UUID) -> CascadeResult:
        """
        Compare stored progress with a from-scratch recomputation.

        Levels flagged manual are not compared; their stored value is what
        their parent aggregates.

        Returns:
            The expected value of every level, bottom-up.

        Raises:
            AggregationInconsistencyError: First level (bottom-up) whose
                stored value differs from the recomputed one.
        """
        project = self._get_or_raise(Project, project_id, ProjectNotFoundError)
        expected: list[LevelResult] = []

        unit_values: list[float] = []
        for unit in self._children(Unit, Unit.project_id, project_id):
            category_values: list[float] = []
            for category in self._children(Category, Category.unit_id, unit.id):
                value = mean_progress(
                    self._child_progress(HierarchyLevel.CATEGORY, category.id)
                )
                self._check(HierarchyLevel.CATEGORY, category.id, category.progress, value)
                expected.append(LevelResult(HierarchyLevel.CATEGORY, category.id, value))
                category_values.append(value)

            value = mean_progress(category_values)
            if unit.progress_source == ProgressSource.MANUAL.value:
                value = unit.progress
            else:
                self._check(HierarchyLevel.UNIT, unit.id, unit.progress, value)
            expected.append(LevelResult(HierarchyLevel.UNIT, unit.id, value))
            unit_values.append(value)

        value = mean_progress(unit_values)
        if project.progress_source != ProgressSource.MANUAL.value:
            self._check(HierarchyLevel.PROJECT, project.id, project.progress, value)
        expected.append(LevelResult(HierarchyLevel.PROJECT, project.id, value))
        return CascadeResult(levels=tuple(expected))

    def _children(self, model, parent_column, parent_id: UUID) -> list:
        try:
            return list(
                self.session.scalars(
                    select(model).where(parent_column == parent_id).order_by(model.id)
                )
            )
        except SQLAlchemyError as exc:
            raise StoreError(f"read {model.__name__} children", exc) from exc

    def _check(
        self,
        level: HierarchyLevel,
        entity_id: UUID,
        stored: float,
        expected: float,
    ) -> None:
        if not progress_matches(stored, expected):
            logger.warning(
                "aggregation_inconsistency",
                extra={
                    "hierarchy_level": level.value,
                    "entity_id": str(entity_id),
                    "stored": stored,
                    "expected": expected,
                },
            )
            raise AggregationInconsistencyError(level.value, entity_id, stored, expected)
