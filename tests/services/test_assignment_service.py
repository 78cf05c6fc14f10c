"""
Tests for AssignmentService.

Covers:
- One-click status cycling with cascade
- Unconditional status + progress updates (clamped)
- Bookkeeping updates that leave progress untouched
- mark_delayed applying a scan report
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from construction_kernel.domain.dtos import AssignmentStatus
from construction_kernel.exceptions import (
    InvalidStatusError,
    ProgressOutOfRangeError,
    StoreError,
    TeamAssignmentNotFoundError,
    ValidationError,
)
from construction_kernel.models.category import Category
from construction_kernel.models.project import Project


class TestAdvanceStatus:
    def test_cycle(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id)

        statuses = [assignment_service.advance_status(assignment.id).status for _ in range(4)]

        assert statuses == [
            AssignmentStatus.IN_PROGRESS,
            AssignmentStatus.DONE,
            AssignmentStatus.NOT_STARTED,
            AssignmentStatus.IN_PROGRESS,
        ]

    def test_progress_is_left_as_recorded(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id, progress=35)

        info = assignment_service.advance_status(assignment.id)

        assert info.progress == 35.0

    def test_delayed_resumes_in_progress(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id, status=AssignmentStatus.DELAYED)

        assert assignment_service.advance_status(assignment.id).status == AssignmentStatus.IN_PROGRESS

    def test_unknown_assignment(self, assignment_service):
        with pytest.raises(TeamAssignmentNotFoundError):
            assignment_service.advance_status(uuid4())


class TestSetStatusAndProgress:
    def test_sets_both_and_cascades(self, session, project, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id)

        info = assignment_service.set_status_and_progress(assignment.id, "DONE", 100)

        assert info.status == AssignmentStatus.DONE
        assert info.progress == 100.0
        session.expire_all()
        assert session.get(Project, project.id).progress == 100.0

    def test_done_does_not_force_progress(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id, progress=80)

        info = assignment_service.set_status_and_progress(assignment.id, AssignmentStatus.DONE)

        assert info.status == AssignmentStatus.DONE
        assert info.progress == 80.0

    def test_progress_is_clamped(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id)

        assert assignment_service.set_status_and_progress(assignment.id, "IN_PROGRESS", -20).progress == 0.0

    def test_invalid_status_rejected_before_write(
        self, session, category, add_assignment, assignment_service
    ):
        assignment = add_assignment(category.id)

        with pytest.raises(InvalidStatusError):
            assignment_service.set_status_and_progress(assignment.id, "FINISHED", 50)

        session.expire_all()
        assert session.get(Category, category.id).progress == 0.0


class TestUpdateProgress:
    def test_clamped_above_hundred(self, session, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id)

        info = assignment_service.update_progress(assignment.id, 150)

        assert info.progress == 100.0
        session.expire_all()
        assert session.get(Category, category.id).progress == 100.0

    def test_non_numeric_rejected(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id)

        with pytest.raises(ProgressOutOfRangeError):
            assignment_service.update_progress(assignment.id, "half")

    def test_update_is_logged(self, category, add_assignment, assignment_service, captured_logs):
        assignment = add_assignment(category.id)

        assignment_service.update_progress(assignment.id, 120)

        record = next(r for r in captured_logs() if r["message"] == "assignment_progress_updated")
        assert record["requested"] == 120
        assert record["progress"] == 100.0


class TestUpdateAssignment:
    def test_bookkeeping_fields(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id, progress=50)

        info = assignment_service.update_assignment(
            assignment.id,
            reception_status=True,
            notes="Checked by site engineer",
            tasks=["Formwork", " Rebar "],
        )

        assert info.reception_status is True
        assert info.payment_status is False
        assert info.notes == "Checked by site engineer"
        assert info.tasks == ("Formwork", "Rebar")
        assert info.progress == 50.0

    def test_blank_task_rejected(self, category, add_assignment, assignment_service):
        assignment = add_assignment(category.id)

        with pytest.raises(ValidationError):
            assignment_service.update_assignment(assignment.id, tasks=["Formwork", "  "])


class TestMarkDelayed:
    def test_marks_delayed_alerts(
        self, hierarchy_service, unit, add_assignment, assignment_service, scanner
    ):
        late = hierarchy_service.create_category(
            unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
        )
        open_work = add_assignment(late.id, status="IN_PROGRESS", progress=40)
        finished = add_assignment(late.id, status="DONE", progress=100)

        report = scanner.scan()
        result = assignment_service.mark_delayed(report)

        assert result.marked == (open_work.id,)
        assert result.warnings == ()
        assert hierarchy_service.get_team_assignment(open_work.id).status == AssignmentStatus.DELAYED
        assert hierarchy_service.get_team_assignment(finished.id).status == AssignmentStatus.DONE

    def test_second_application_is_a_no_op(
        self, hierarchy_service, unit, add_assignment, assignment_service, scanner
    ):
        late = hierarchy_service.create_category(
            unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
        )
        assignment = add_assignment(late.id)
        report = scanner.scan()
        assignment_service.mark_delayed(report)

        result = assignment_service.mark_delayed(report)

        assert result.marked == ()
        assert result.already_delayed == (assignment.id,)

    def test_stale_report_yields_warnings(
        self, hierarchy_service, unit, add_assignment, assignment_service, scanner
    ):
        late = hierarchy_service.create_category(
            unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
        )
        removed = add_assignment(late.id)
        completed = add_assignment(late.id)
        report = scanner.scan()
        hierarchy_service.delete_team_assignment(removed.id)
        assignment_service.set_status_and_progress(completed.id, "DONE", 100)

        result = assignment_service.mark_delayed(report)

        assert result.marked == ()
        assert sorted(w.code for w in result.warnings) == [
            "assignment_not_delayable",
            "assignment_not_found",
        ]

    def test_progress_unchanged_by_delay(
        self, session, hierarchy_service, unit, add_assignment, assignment_service, scanner
    ):
        late = hierarchy_service.create_category(
            unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
        )
        add_assignment(late.id, status="IN_PROGRESS", progress=40)

        assignment_service.mark_delayed(scanner.scan())

        session.expire_all()
        assert session.get(Category, late.id).progress == 40.0

    def test_store_failure_is_wrapped(
        self, monkeypatch, session, hierarchy_service, unit, add_assignment, assignment_service, scanner
    ):
        late = hierarchy_service.create_category(
            unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
        )
        add_assignment(late.id, status="IN_PROGRESS")
        report = scanner.scan()

        def _unavailable(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "get", _unavailable)

        with pytest.raises(StoreError) as exc_info:
            assignment_service.mark_delayed(report)
        assert exc_info.value.operation == "get TeamAssignment"
        assert isinstance(exc_info.value.cause, OperationalError)
