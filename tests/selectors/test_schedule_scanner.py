"""
Tests for ScheduleRiskScanner.

Covers:
- Delayed and Imminent classification over stored data
- DONE assignments excluded, Delayed precedence
- Company and project filters
- Broken ancestor links skipped and logged
- Scans are read-only and reproducible
"""

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from construction_kernel.domain.dtos import AlertKind, AssignmentStatus, UnitType
from construction_kernel.exceptions import ValidationError
from construction_kernel.models.team_assignment import TeamAssignment
from construction_kernel.selectors.schedule_selector import ScheduleRiskScanner

TODAY = date(2024, 6, 10)


@pytest.fixture
def schedule(hierarchy_service, unit, add_assignment):
    """Late, imminent, far-off and finished work on one unit."""
    late = hierarchy_service.create_category(
        unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
    )
    soon = hierarchy_service.create_category(
        unit.id, "Structure", date(2024, 6, 12), date(2024, 7, 30), order=2
    )
    later = hierarchy_service.create_category(
        unit.id, "Roofing", date(2024, 8, 1), date(2024, 8, 30), order=3
    )
    return {
        "late": add_assignment(late.id, status="IN_PROGRESS", progress=60),
        "late_done": add_assignment(late.id, status="DONE", progress=100),
        "soon": add_assignment(soon.id),
        "later": add_assignment(later.id),
    }


class TestScan:
    def test_classifies_stored_assignments(self, scanner, schedule, project, unit):
        report = scanner.scan()

        assert report.today == TODAY
        assert [a.assignment_id for a in report.delayed] == [schedule["late"].id]
        assert [a.assignment_id for a in report.imminent] == [schedule["soon"].id]

        delayed = report.delayed[0]
        assert delayed.days_overdue == 5
        assert delayed.project_id == project.id
        assert delayed.unit_id == unit.id
        assert delayed.project_name == "Palm Residences"
        assert delayed.team_name == "Masonry crew"
        assert report.imminent[0].days_until_start == 2

    def test_horizon_override(self, scanner, schedule):
        assert scanner.scan(horizon_days=1).imminent == ()

    def test_now_may_be_a_date(self, scanner, schedule):
        report = scanner.scan(now=date(2024, 6, 20))

        assert report.scanned_at == datetime(2024, 6, 20, tzinfo=UTC)
        assert [a.days for a in report.delayed] == [15]

    def test_time_of_day_does_not_change_days(self, scanner, schedule):
        morning = scanner.scan(now=datetime(2024, 6, 10, 0, 1, tzinfo=UTC))
        evening = scanner.scan(now=datetime(2024, 6, 10, 23, 59, tzinfo=UTC))

        assert morning.delayed == evening.delayed
        assert morning.imminent == evening.imminent

    def test_advancing_clock_moves_window(self, scanner, clock, schedule):
        clock.advance_days(90)

        report = scanner.scan()

        assert {a.assignment_id for a in report.delayed} == {
            schedule["late"].id,
            schedule["soon"].id,
            schedule["later"].id,
        }
        assert report.imminent == ()

    def test_delayed_status_still_reported(self, scanner, assignment_service, schedule):
        assignment_service.mark_delayed(scanner.scan())

        report = scanner.scan()

        assert report.delayed[0].status == AssignmentStatus.DELAYED

    def test_negative_horizon_rejected(self, session, clock):
        with pytest.raises(ValidationError):
            ScheduleRiskScanner(session, clock=clock, horizon_days=-1)

    def test_scan_is_read_only_and_reproducible(self, session, scanner, schedule):
        first = scanner.scan()
        assert not session.dirty and not session.new

        assert scanner.scan() == first

    def test_convenience_accessors(self, scanner, schedule):
        assert [a.kind for a in scanner.delayed_alerts()] == [AlertKind.DELAYED]
        assert [a.kind for a in scanner.imminent_alerts()] == [AlertKind.IMMINENT]


class TestFilters:
    def test_project_filter(self, scanner, hierarchy_service, schedule, project, add_assignment):
        other = hierarchy_service.create_project("Harbour View")
        other_unit = hierarchy_service.create_unit(other.id, "HV-1", UnitType.APARTMENT)
        other_category = hierarchy_service.create_category(
            other_unit.id, "Demolition", date(2024, 4, 1), date(2024, 5, 1), order=1
        )
        add_assignment(other_category.id)

        assert len(scanner.scan().delayed) == 2
        assert [a.project_id for a in scanner.scan(project_id=project.id).delayed] == [project.id]
        assert [a.project_id for a in scanner.scan(project_id=other.id).delayed] == [other.id]

    def test_company_filter(self, scanner, hierarchy_service, add_assignment):
        company = uuid4()
        mine = hierarchy_service.create_project("Mine", company_id=company)
        unit = hierarchy_service.create_unit(mine.id, "M-1", UnitType.VILLA)
        category = hierarchy_service.create_category(
            unit.id, "Footings", date(2024, 5, 1), date(2024, 6, 1), order=1
        )
        add_assignment(category.id)
        theirs = hierarchy_service.create_project("Theirs", company_id=uuid4())
        their_unit = hierarchy_service.create_unit(theirs.id, "T-1", UnitType.VILLA)
        their_category = hierarchy_service.create_category(
            their_unit.id, "Footings", date(2024, 5, 1), date(2024, 6, 1), order=1
        )
        add_assignment(their_category.id)

        report = scanner.scan(company_id=company)

        assert [a.project_id for a in report.delayed] == [mine.id]


class TestBrokenLinks:
    def test_orphaned_assignment_is_skipped(self, session, scanner, schedule, team, captured_logs):
        orphan = TeamAssignment(
            category_id=uuid4(),
            team_id=team.id,
            status=AssignmentStatus.IN_PROGRESS.value,
            progress=0.0,
            position=0,
        )
        session.add(orphan)
        session.flush()

        report = scanner.scan()

        assert report.skipped == (orphan.id,)
        assert [a.assignment_id for a in report.delayed] == [schedule["late"].id]
        skipped = [r for r in captured_logs() if r["message"] == "schedule_row_skipped"]
        assert skipped[0]["assignment_id"] == str(orphan.id)
        assert skipped[0]["missing"] == ["category"]

    def test_unknown_team_still_alerts(self, session, scanner, hierarchy_service, unit):
        category = hierarchy_service.create_category(
            unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
        )
        session.add(
            TeamAssignment(
                category_id=category.id,
                team_id=uuid4(),
                status=AssignmentStatus.NOT_STARTED.value,
                progress=0.0,
                position=0,
            )
        )
        session.flush()

        report = scanner.scan()

        assert len(report.delayed) == 1
        assert report.delayed[0].team_name is None

    def test_scan_with_clock_days_ahead(self, scanner, clock, schedule):
        clock.advance_days(1)

        report = scanner.scan()

        assert report.today == TODAY + timedelta(days=1)
        assert report.imminent[0].days_until_start == 1
