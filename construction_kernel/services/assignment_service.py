"""
AssignmentService -- status and progress updates on team assignments.

Responsibility:
    Applies the assignment status state machine, manual progress updates
    and the bookkeeping fields (reception, payment, notes, tasks).  Every
    change to status or progress is followed by a cascade from the owning
    category.

Architecture position:
    Kernel > Services -- imperative shell.
    Uses ``domain.status`` for transitions and ProgressService for the
    cascade.

Invariants enforced:
    PROGRESS_BOUNDS -- supplied progress is clamped to [0, 100].
    CASCADE_ORDER   -- status/progress changes return only after Category,
                       Unit and Project have been recomputed.
    DELAYED is entered only through ``mark_delayed``, which applies a scan
    report.  ``advance_status`` never produces it.

Failure modes:
    - TeamAssignmentNotFoundError for single-assignment calls.
    - InvalidStatusError / ProgressOutOfRangeError (non-numeric input).
    - CascadeError if the cascade stops partway.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from construction_kernel.domain.dtos import (
    AlertKind,
    AssignmentStatus,
    MarkDelayedResult,
    OperationWarning,
    ScanReport,
    TeamAssignmentInfo,
)
from construction_kernel.domain.progress import clamp_progress
from construction_kernel.domain.status import advance, can_mark_delayed, parse_status
from construction_kernel.domain.validation import require_task_names
from construction_kernel.exceptions import TeamAssignmentNotFoundError, ValidationError
from construction_kernel.logging_config import get_logger
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.services.base import BaseService
from construction_kernel.services.progress_service import ProgressService

logger = get_logger("services.assignment")


class AssignmentService(BaseService[TeamAssignment]):
    def __init__(self, session: Session, progress: ProgressService | None = None):
        super().__init__(session)
        self._progress = progress or ProgressService(session)

    def advance_status(self, assignment_id: UUID) -> TeamAssignmentInfo:
        """
        One-click status cycling.

        NOT_STARTED -> IN_PROGRESS -> DONE -> NOT_STARTED, and
        DELAYED -> IN_PROGRESS.  Progress is left as recorded.
        """
        assignment = self._load(assignment_id)
        previous = AssignmentStatus(assignment.status)
        assignment.status = advance(previous).value
        self._flush("advance status")

        logger.info(
            "assignment_status_advanced",
            extra={
                "assignment_id": str(assignment_id),
                "from_status": previous.value,
                "to_status": assignment.status,
            },
        )
        self._progress.cascade_from_category(assignment.category_id)
        return TeamAssignmentInfo.from_model(assignment)

    def set_status_and_progress(
        self,
        assignment_id: UUID,
        status: AssignmentStatus | str,
        progress: float | None = None,
    ) -> TeamAssignmentInfo:
        """
        Set status unconditionally and, when given, progress (clamped).

        Status does not force progress: an assignment may be DONE at 80%.
        """
        new_status = parse_status(status)
        value = clamp_progress(progress) if progress is not None else None

        assignment = self._load(assignment_id)
        previous = assignment.status
        assignment.status = new_status.value
        if value is not None:
            assignment.progress = value
        self._flush("set status and progress")

        logger.info(
            "assignment_status_set",
            extra={
                "assignment_id": str(assignment_id),
                "from_status": previous,
                "to_status": new_status.value,
                "progress": assignment.progress,
            },
        )
        self._progress.cascade_from_category(assignment.category_id)
        return TeamAssignmentInfo.from_model(assignment)

    def update_progress(self, assignment_id: UUID, progress: float) -> TeamAssignmentInfo:
        value = clamp_progress(progress)
        assignment = self._load(assignment_id)
        assignment.progress = value
        self._flush("update progress")

        logger.info(
            "assignment_progress_updated",
            extra={
                "assignment_id": str(assignment_id),
                "requested": progress,
                "progress": value,
            },
        )
        self._progress.cascade_from_category(assignment.category_id)
        return TeamAssignmentInfo.from_model(assignment)

    def update_assignment(
        self,
        assignment_id: UUID,
        *,
        reception_status: bool | None = None,
        payment_status: bool | None = None,
        notes: str | None = None,
        tasks: Sequence[str] | None = None,
    ) -> TeamAssignmentInfo:
        """Partial update of bookkeeping fields; progress is untouched."""
        task_names = require_task_names(tasks) if tasks is not None else None
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes", "notes must be a string")

        assignment = self._load(assignment_id)
        changed = []
        if reception_status is not None:
            assignment.reception_status = bool(reception_status)
            changed.append("reception_status")
        if payment_status is not None:
            assignment.payment_status = bool(payment_status)
            changed.append("payment_status")
        if notes is not None:
            assignment.notes = notes
            changed.append("notes")
        if task_names is not None:
            assignment.tasks = task_names
            changed.append("tasks")
        self._flush("update assignment")

        logger.info(
            "assignment_updated",
            extra={"assignment_id": str(assignment_id), "fields": changed},
        )
        return TeamAssignmentInfo.from_model(assignment)

    def mark_delayed(self, report: ScanReport) -> MarkDelayedResult:
        """
        Flag the Delayed alerts of a scan report as DELAYED.

        This is a batch operation: an assignment that vanished or was
        completed since the scan is skipped with a warning.  Each affected
        category is recomputed once.
        """
        marked: list[UUID] = []
        already: list[UUID] = []
        warnings: list[OperationWarning] = []
        categories: list[UUID] = []

        for alert in report.delayed:
            if alert.kind != AlertKind.DELAYED:
                continue
            assignment = self._find(TeamAssignment, alert.assignment_id)
            if assignment is None:
                warnings.append(
                    OperationWarning(
                        code="assignment_not_found",
                        message=f"TeamAssignment {alert.assignment_id} no longer exists",
                        context={"assignment_id": str(alert.assignment_id)},
                    )
                )
                continue
            current = AssignmentStatus(assignment.status)
            if current == AssignmentStatus.DELAYED:
                already.append(assignment.id)
                continue
            if not can_mark_delayed(current):
                warnings.append(
                    OperationWarning(
                        code="assignment_not_delayable",
                        message=f"TeamAssignment {assignment.id} is {current.value}",
                        context={
                            "assignment_id": str(assignment.id),
                            "status": current.value,
                        },
                    )
                )
                continue
            assignment.status = AssignmentStatus.DELAYED.value
            marked.append(assignment.id)
            if assignment.category_id not in categories:
                categories.append(assignment.category_id)

        self._flush("mark delayed")
        for category_id in categories:
            self._progress.cascade_from_category(category_id)

        logger.info(
            "assignments_marked_delayed",
            extra={
                "marked": len(marked),
                "already_delayed": len(already),
                "skipped": len(warnings),
            },
        )
        return MarkDelayedResult(
            marked=tuple(marked),
            already_delayed=tuple(already),
            warnings=tuple(warnings),
        )

    def _load(self, assignment_id: UUID) -> TeamAssignment:
        return self._get_or_raise(TeamAssignment, assignment_id, TeamAssignmentNotFoundError)
