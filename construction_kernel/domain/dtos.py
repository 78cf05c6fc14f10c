"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the enumerations and immutable data structures that cross the
    kernel boundary: entity snapshots (ProjectInfo ... TeamInfo), template
    definitions, cascade results, schedule rows and alerts, and batch
    operation results with their warnings.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only from
    the service and selector layers.

Invariants enforced:
    - Services and selectors return DTOs, never ORM entities.
    - Task lists are tuples so a returned snapshot cannot be mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping
from uuid import UUID

from construction_kernel.domain.progress import round_progress

if TYPE_CHECKING:
    from construction_kernel.models.category import Category as CategoryModel
    from construction_kernel.models.project import Project as ProjectModel
    from construction_kernel.models.team import Team as TeamModel
    from construction_kernel.models.team_assignment import (
        TeamAssignment as TeamAssignmentModel,
    )
    from construction_kernel.models.template import Template as TemplateModel
    from construction_kernel.models.unit import Unit as UnitModel


class ProjectStatus(str, Enum):
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"


class UnitType(str, Enum):
    VILLA = "villa"
    APARTMENT = "apartment"
    COMMERCIAL = "commercial"


class AssignmentStatus(str, Enum):
    """
    Lifecycle of a TeamAssignment.

    Contract:
        NOT_STARTED -> IN_PROGRESS -> DONE -> NOT_STARTED (re-open), and
        DELAYED -> IN_PROGRESS. No terminal state. Transitions live in
        ``domain.status``.
    """

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    DELAYED = "DELAYED"


class AlertKind(str, Enum):
    DELAYED = "delayed"
    IMMINENT = "imminent"


class HierarchyLevel(str, Enum):
    """Levels that carry an aggregated progress value, in cascade order."""

    CATEGORY = "category"
    UNIT = "unit"
    PROJECT = "project"


class ProgressSource(str, Enum):
    """Where a Project/Unit progress value last came from."""

    DERIVED = "derived"
    MANUAL = "manual"


class TemplateSequencing(str, Enum):
    """
    How template categories are placed on the calendar.

    ANCHORED: every category starts at the base date (historical behaviour).
    SEQUENTIAL: categories are chained end-to-end in ``order``.
    """

    ANCHORED = "anchored"
    SEQUENTIAL = "sequential"


# ---------------------------------------------------------------------------
# Entity snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectInfo:
    id: UUID
    name: str
    location: str | None
    start_date: date | None
    end_date: date | None
    status: ProjectStatus
    progress: float
    progress_source: ProgressSource
    company_id: UUID | None = None

    @property
    def progress_display(self) -> int:
        return round_progress(self.progress)

    @classmethod
    def from_model(cls, model: ProjectModel) -> ProjectInfo:
        return cls(
            id=model.id,
            name=model.name,
            location=model.location,
            start_date=model.start_date,
            end_date=model.end_date,
            status=ProjectStatus(model.status),
            progress=model.progress,
            progress_source=ProgressSource(model.progress_source),
            company_id=model.company_id,
        )


@dataclass(frozen=True)
class UnitInfo:
    id: UUID
    project_id: UUID
    name: str
    unit_type: UnitType
    floor: int | None
    area: float | None
    progress: float
    progress_source: ProgressSource

    @property
    def progress_display(self) -> int:
        return round_progress(self.progress)

    @classmethod
    def from_model(cls, model: UnitModel) -> UnitInfo:
        return cls(
            id=model.id,
            project_id=model.project_id,
            name=model.name,
            unit_type=UnitType(model.unit_type),
            floor=model.floor,
            area=model.area,
            progress=model.progress,
            progress_source=ProgressSource(model.progress_source),
        )


@dataclass(frozen=True)
class CategoryInfo:
    id: UUID
    unit_id: UUID
    name: str
    start_date: date
    end_date: date
    order: int
    progress: float

    @property
    def progress_display(self) -> int:
        return round_progress(self.progress)

    @classmethod
    def from_model(cls, model: CategoryModel) -> CategoryInfo:
        return cls(
            id=model.id,
            unit_id=model.unit_id,
            name=model.name,
            start_date=model.start_date,
            end_date=model.end_date,
            order=model.order,
            progress=model.progress,
        )


@dataclass(frozen=True)
class TeamAssignmentInfo:
    """
    Status/progress pair for one team on one category.

    The pair is documented-coherent, not enforced: DONE normally means 100
    and NOT_STARTED normally means 0, but a manual progress update wins.
    """

    id: UUID
    category_id: UUID
    team_id: UUID
    status: AssignmentStatus
    progress: float
    reception_status: bool
    payment_status: bool
    notes: str
    tasks: tuple[str, ...]

    @property
    def progress_display(self) -> int:
        return round_progress(self.progress)

    @classmethod
    def from_model(cls, model: TeamAssignmentModel) -> TeamAssignmentInfo:
        return cls(
            id=model.id,
            category_id=model.category_id,
            team_id=model.team_id,
            status=AssignmentStatus(model.status),
            progress=model.progress,
            reception_status=model.reception_status,
            payment_status=model.payment_status,
            notes=model.notes or "",
            tasks=tuple(model.tasks or ()),
        )


@dataclass(frozen=True)
class TeamInfo:
    id: UUID
    company_id: UUID | None
    name: str
    specialty: str | None
    color: str | None
    is_active: bool

    @classmethod
    def from_model(cls, model: TeamModel) -> TeamInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            name=model.name,
            specialty=model.specialty,
            color=model.color,
            is_active=model.is_active,
        )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TemplateTeamSpec:
    team_id: UUID
    tasks: tuple[str, ...] = ()
    notes: str = ""


@dataclass(frozen=True)
class TemplateCategorySpec:
    """A category to create, with a duration relative to a base date."""

    name: str
    order: int
    duration_days: int
    teams: tuple[TemplateTeamSpec, ...] = ()


@dataclass(frozen=True)
class TemplateInfo:
    id: UUID
    name: str
    unit_type: UnitType
    description: str
    company_id: UUID | None
    categories: tuple[TemplateCategorySpec, ...]

    @property
    def assignment_count(self) -> int:
        return sum(len(c.teams) for c in self.categories)

    @classmethod
    def from_model(cls, model: TemplateModel) -> TemplateInfo:
        return cls(
            id=model.id,
            name=model.name,
            unit_type=UnitType(model.unit_type),
            description=model.description or "",
            company_id=model.company_id,
            categories=tuple(
                TemplateCategorySpec(
                    name=c.name,
                    order=c.order,
                    duration_days=c.duration_days,
                    teams=tuple(
                        TemplateTeamSpec(
                            team_id=t.team_id,
                            tasks=tuple(t.tasks or ()),
                            notes=t.notes or "",
                        )
                        for t in c.team_assignments
                    ),
                )
                for c in model.categories
            ),
        )


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperationWarning:
    """A non-fatal per-item problem in a batch operation."""

    code: str
    message: str
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))


@dataclass(frozen=True)
class LevelResult:
    level: HierarchyLevel
    entity_id: UUID
    progress: float


@dataclass(frozen=True)
class CascadeResult:
    """Levels recomputed by one cascade, in the order they were persisted."""

    levels: tuple[LevelResult, ...]

    def progress_of(self, level: HierarchyLevel) -> float | None:
        for result in self.levels:
            if result.level == level:
                return result.progress
        return None


@dataclass(frozen=True)
class TemplateApplicationResult:
    template_id: UUID
    unit_id: UUID
    category_ids: tuple[UUID, ...]
    assignment_ids: tuple[UUID, ...]
    warnings: tuple[OperationWarning, ...]

    @property
    def complete(self) -> bool:
        return not self.warnings


@dataclass(frozen=True)
class MarkDelayedResult:
    """Outcome of applying a scan report's Delayed alerts."""

    marked: tuple[UUID, ...]
    already_delayed: tuple[UUID, ...]
    warnings: tuple[OperationWarning, ...]


@dataclass(frozen=True)
class CloneResult:
    source_unit_id: UUID
    unit: UnitInfo
    category_ids: tuple[UUID, ...]
    assignment_ids: tuple[UUID, ...]
    warnings: tuple[OperationWarning, ...]

    @property
    def complete(self) -> bool:
        return not self.warnings


# ---------------------------------------------------------------------------
# Schedule risk
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleRow:
    """
    One assignment joined to its ancestors, as read for a scan.

    Ancestor fields are None when the link is broken; such rows are skipped.
    """

    assignment_id: UUID
    status: AssignmentStatus
    team_id: UUID | None
    team_name: str | None = None
    category_id: UUID | None = None
    category_name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    unit_id: UUID | None = None
    unit_name: str | None = None
    project_id: UUID | None = None
    project_name: str | None = None

    @property
    def is_linked(self) -> bool:
        return None not in (
            self.category_id,
            self.start_date,
            self.end_date,
            self.unit_id,
            self.project_id,
        )


@dataclass(frozen=True)
class ScheduleAlert:
    """
    A derived, ephemeral schedule-risk alert.

    ``days`` is days overdue for DELAYED and days until start for IMMINENT.
    """

    kind: AlertKind
    assignment_id: UUID
    days: int
    project_id: UUID
    unit_id: UUID
    category_id: UUID
    team_id: UUID | None
    status: AssignmentStatus
    start_date: date
    end_date: date
    project_name: str | None = None
    unit_name: str | None = None
    category_name: str | None = None
    team_name: str | None = None

    @property
    def days_overdue(self) -> int | None:
        return self.days if self.kind == AlertKind.DELAYED else None

    @property
    def days_until_start(self) -> int | None:
        return self.days if self.kind == AlertKind.IMMINENT else None

    def to_payload(self) -> dict[str, Any]:
        """Notification-sink payload."""
        payload: dict[str, Any] = {
            "kind": self.kind.value,
            "team_assignment_id": str(self.assignment_id),
            "project_id": str(self.project_id),
            "unit_id": str(self.unit_id),
            "category_id": str(self.category_id),
            "team_id": str(self.team_id) if self.team_id else None,
        }
        if self.kind == AlertKind.DELAYED:
            payload["days_overdue"] = self.days
        else:
            payload["days_until_start"] = self.days
        return payload


@dataclass(frozen=True)
class ScanReport:
    scanned_at: datetime
    today: date
    horizon_days: int
    delayed: tuple[ScheduleAlert, ...]
    imminent: tuple[ScheduleAlert, ...]
    skipped: tuple[UUID, ...] = ()

    @property
    def alerts(self) -> tuple[ScheduleAlert, ...]:
        return self.delayed + self.imminent

    @property
    def total(self) -> int:
        return len(self.delayed) + len(self.imminent)
