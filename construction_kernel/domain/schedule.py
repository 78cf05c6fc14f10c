"""
Schedule-risk classification -- pure functions over ScheduleRows.

Responsibility:
    Decides, for a calendar day ``today`` and a look-ahead horizon, whether
    an assignment is Delayed (its category ended and it is not DONE) or
    Imminent (its category starts within the horizon and it has not
    started).

Architecture position:
    Kernel > Domain -- zero I/O. ScheduleRiskScanner feeds it rows read
    from the store.

Invariants enforced:
    SCAN_PURITY        -- output depends only on rows, today and horizon.
    DELAYED_PRECEDENCE -- a Delayed assignment is never also Imminent.

Day arithmetic uses calendar dates, so ``days_overdue`` equals the
ceiling of (now - end_date) in days when now is at midnight and never
depends on the time of day otherwise.
"""

from datetime import date
from typing import Iterable

from construction_kernel.domain.dtos import (
    AlertKind,
    AssignmentStatus,
    ScheduleAlert,
    ScheduleRow,
)
from construction_kernel.exceptions import ValidationError

DEFAULT_ALERT_HORIZON_DAYS = 2
DEFAULT_STARTING_SOON_HORIZON_DAYS = 7
DEFAULT_POLL_INTERVAL_SECONDS = 60


def days_overdue(today: date, end_date: date) -> int:
    return max(0, (today - end_date).days)


def days_until_start(today: date, start_date: date) -> int:
    return (start_date - today).days


def require_horizon(horizon_days: int) -> int:
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or horizon_days < 0:
        raise ValidationError("horizon_days", f"{horizon_days!r} must be a non-negative integer")
    return horizon_days


def is_delayed(row: ScheduleRow, today: date) -> bool:
    return row.status != AssignmentStatus.DONE and row.end_date < today


def is_imminent(row: ScheduleRow, today: date, horizon_days: int) -> bool:
    if row.status != AssignmentStatus.NOT_STARTED:
        return False
    return 0 <= days_until_start(today, row.start_date) <= horizon_days


def classify(row: ScheduleRow, today: date, horizon_days: int) -> ScheduleAlert | None:
    """
    Classify one linked row.

    Delayed is checked first so that pathological rows (start in the
    horizon but end already passed) are reported once, as Delayed.
    """
    if is_delayed(row, today):
        return _alert(row, AlertKind.DELAYED, days_overdue(today, row.end_date))
    if is_imminent(row, today, horizon_days):
        return _alert(row, AlertKind.IMMINENT, days_until_start(today, row.start_date))
    return None


def classify_rows(
    rows: Iterable[ScheduleRow],
    today: date,
    horizon_days: int,
) -> tuple[tuple[ScheduleAlert, ...], tuple[ScheduleAlert, ...], tuple[ScheduleRow, ...]]:
    """
    Classify every row.

    Returns:
        (delayed, imminent, skipped). Delayed is ordered by end date,
        imminent by start date, ties broken by assignment id so two scans
        of the same data are identical. Skipped holds rows with a broken
        ancestor link.
    """
    require_horizon(horizon_days)
    delayed: list[ScheduleAlert] = []
    imminent: list[ScheduleAlert] = []
    skipped: list[ScheduleRow] = []

    for row in rows:
        if not row.is_linked:
            skipped.append(row)
            continue
        alert = classify(row, today, horizon_days)
        if alert is None:
            continue
        if alert.kind == AlertKind.DELAYED:
            delayed.append(alert)
        else:
            imminent.append(alert)

    delayed.sort(key=lambda a: (a.end_date, str(a.assignment_id)))
    imminent.sort(key=lambda a: (a.start_date, str(a.assignment_id)))
    skipped.sort(key=lambda r: str(r.assignment_id))
    return tuple(delayed), tuple(imminent), tuple(skipped)


def _alert(row: ScheduleRow, kind: AlertKind, days: int) -> ScheduleAlert:
    return ScheduleAlert(
        kind=kind,
        assignment_id=row.assignment_id,
        days=days,
        project_id=row.project_id,
        unit_id=row.unit_id,
        category_id=row.category_id,
        team_id=row.team_id,
        status=row.status,
        start_date=row.start_date,
        end_date=row.end_date,
        project_name=row.project_name,
        unit_name=row.unit_name,
        category_name=row.category_name,
        team_name=row.team_name,
    )
