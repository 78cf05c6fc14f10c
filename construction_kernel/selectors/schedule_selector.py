"""
Module: construction_kernel.selectors.schedule_selector
Responsibility: Schedule-risk scanning -- read every open team assignment
    with its category window and ancestors, and classify it as Delayed or
    Imminent relative to the clock's current date.
Architecture position: Kernel > Selectors.  Read-only; classification is
    delegated to the pure ``domain.schedule`` functions.

Invariants enforced:
    SCAN_PURITY        -- a scan never writes.  Two scans over the same data
                          with the same ``now`` and horizon return identical
                          reports.
    DELAYED_PRECEDENCE -- an assignment is reported at most once.
    - Rows with a broken Category, Unit or Project link are skipped and
      logged; one bad row never aborts a scan.

Failure modes:
    - ValidationError for a negative horizon.
    - Store failures propagate as SQLAlchemy exceptions from the caller's
      session; business-data problems never raise.
"""

from datetime import UTC, date, datetime, time
from typing import Any
from uuid import UUID

from sqlalchemy import select

from construction_kernel.domain.clock import Clock, SystemClock
from construction_kernel.domain.dtos import (
    AssignmentStatus,
    ScanReport,
    ScheduleAlert,
    ScheduleRow,
)
from construction_kernel.domain.schedule import (
    DEFAULT_ALERT_HORIZON_DAYS,
    classify_rows,
    require_horizon,
)
from construction_kernel.domain.status import parse_status
from construction_kernel.exceptions import InvalidStatusError
from construction_kernel.logging_config import get_logger
from construction_kernel.models.category import Category
from construction_kernel.models.project import Project
from construction_kernel.models.team import Team
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.models.unit import Unit
from construction_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.schedule")


class ScheduleRiskScanner(BaseSelector[TeamAssignment]):
    """
    Classifies open team assignments into Delayed and Imminent alerts.

    Contract:
        ``scan`` returns a ``ScanReport``; it is ephemeral and re-derivable,
        never persisted.  ``now`` defaults to the injected clock.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        horizon_days: int = DEFAULT_ALERT_HORIZON_DAYS,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._horizon_days = require_horizon(horizon_days)

    def scan(
        self,
        now: datetime | date | None = None,
        horizon_days: int | None = None,
        company_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> ScanReport:
        scanned_at = _as_instant(now) if now is not None else self._clock.now()
        today = scanned_at.date()
        horizon = require_horizon(
            self._horizon_days if horizon_days is None else horizon_days
        )

        rows = self._load_rows(company_id, project_id)
        delayed, imminent, skipped = classify_rows(rows, today, horizon)

        for row in skipped:
            logger.warning(
                "schedule_row_skipped",
                extra={
                    "assignment_id": str(row.assignment_id),
                    "missing": _missing_links(row),
                },
            )

        report = ScanReport(
            scanned_at=scanned_at,
            today=today,
            horizon_days=horizon,
            delayed=delayed,
            imminent=imminent,
            skipped=tuple(row.assignment_id for row in skipped),
        )
        logger.info(
            "schedule_scanned",
            extra={
                "today": today,
                "horizon_days": horizon,
                "delayed": len(delayed),
                "imminent": len(imminent),
                "skipped": len(report.skipped),
            },
        )
        return report

    def delayed_alerts(self, now: datetime | date | None = None, **filters: Any) -> tuple[ScheduleAlert, ...]:
        return self.scan(now=now, **filters).delayed

    def imminent_alerts(
        self,
        now: datetime | date | None = None,
        horizon_days: int | None = None,
        **filters: Any,
    ) -> tuple[ScheduleAlert, ...]:
        return self.scan(now=now, horizon_days=horizon_days, **filters).imminent

    def _load_rows(
        self,
        company_id: UUID | None,
        project_id: UUID | None,
    ) -> list[ScheduleRow]:
        # Outer joins keep assignments whose ancestors are missing so they
        # can be reported as skipped.
        stmt = (
            select(
                TeamAssignment.id,
                TeamAssignment.status,
                TeamAssignment.team_id,
                Team.name,
                Category.id,
                Category.name,
                Category.start_date,
                Category.end_date,
                Unit.id,
                Unit.name,
                Project.id,
                Project.name,
            )
            .select_from(TeamAssignment)
            .outerjoin(Category, TeamAssignment.category_id == Category.id)
            .outerjoin(Unit, Category.unit_id == Unit.id)
            .outerjoin(Project, Unit.project_id == Project.id)
            .outerjoin(Team, TeamAssignment.team_id == Team.id)
            .where(TeamAssignment.status != AssignmentStatus.DONE.value)
            .order_by(TeamAssignment.id)
        )
        if company_id is not None:
            stmt = stmt.where(Project.company_id == company_id)
        if project_id is not None:
            stmt = stmt.where(Project.id == project_id)

        rows: list[ScheduleRow] = []
        for record in self.session.execute(stmt):
            try:
                status = parse_status(record[1])
            except InvalidStatusError:
                logger.warning(
                    "schedule_row_skipped",
                    extra={"assignment_id": str(record[0]), "bad_status": record[1]},
                )
                continue
            rows.append(
                ScheduleRow(
                    assignment_id=record[0],
                    status=status,
                    team_id=record[2],
                    team_name=record[3],
                    category_id=record[4],
                    category_name=record[5],
                    start_date=record[6],
                    end_date=record[7],
                    unit_id=record[8],
                    unit_name=record[9],
                    project_id=record[10],
                    project_name=record[11],
                )
            )
        return rows


def _as_instant(now: datetime | date) -> datetime:
    if isinstance(now, datetime):
        return now if now.tzinfo is not None else now.replace(tzinfo=UTC)
    return datetime.combine(now, time.min, tzinfo=UTC)


def _missing_links(row: ScheduleRow) -> list[str]:
    if row.category_id is None:
        return ["category"]
    missing = []
    if row.start_date is None or row.end_date is None:
        missing.append("category_dates")
    if row.unit_id is None:
        missing.append("unit")
    elif row.project_id is None:
        missing.append("project")
    return missing
