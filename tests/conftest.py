"""
Shared pytest fixtures for the construction kernel test suite.

Every test gets a fresh in-memory SQLite database, a DeterministicClock
pinned to 2024-06-10, and services wired to the same session.  Builder
fixtures create a small Project -> Unit -> Category tree that tests extend
with ``add_assignment``.
"""

import json
import logging
from datetime import date
from io import StringIO

import pytest

from construction_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from construction_kernel.domain.clock import DeterministicClock
from construction_kernel.domain.dtos import UnitType
from construction_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from construction_kernel.selectors.hierarchy_selector import HierarchySelector
from construction_kernel.selectors.schedule_selector import ScheduleRiskScanner
from construction_kernel.selectors.team_directory import TeamDirectory
from construction_kernel.services.assignment_service import AssignmentService
from construction_kernel.services.clone_service import UnitCloneService
from construction_kernel.services.hierarchy_service import HierarchyService
from construction_kernel.services.progress_service import ProgressService
from construction_kernel.services.template_service import TemplateService

TODAY = date(2024, 6, 10)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture construction_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, assignment_service):
            assignment_service.update_progress(...)
            logs = captured_logs()
            assert any(r["message"] == "assignment_progress_updated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("construction_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def session():
    """Session on a fresh in-memory database, torn down after the test."""
    init_engine_from_url("sqlite://")
    create_tables()
    db_session = get_session()
    yield db_session
    db_session.rollback()
    db_session.close()
    drop_tables()
    reset_engine()


@pytest.fixture
def clock():
    return DeterministicClock.on(TODAY)


# ---------------------------------------------------------------------------
# Services and selectors
# ---------------------------------------------------------------------------


@pytest.fixture
def progress_service(session):
    return ProgressService(session)


@pytest.fixture
def team_directory(session):
    return TeamDirectory(session)


@pytest.fixture
def hierarchy_service(session, progress_service, team_directory):
    return HierarchyService(session, progress=progress_service, teams=team_directory)


@pytest.fixture
def assignment_service(session, progress_service):
    return AssignmentService(session, progress=progress_service)


@pytest.fixture
def template_service(session, clock, progress_service, team_directory):
    return TemplateService(
        session, clock=clock, progress=progress_service, teams=team_directory
    )


@pytest.fixture
def clone_service(session, progress_service, team_directory):
    return UnitCloneService(session, progress=progress_service, teams=team_directory)


@pytest.fixture
def scanner(session, clock):
    return ScheduleRiskScanner(session, clock=clock)


@pytest.fixture
def hierarchy_selector(session):
    return HierarchySelector(session)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@pytest.fixture
def team(hierarchy_service):
    return hierarchy_service.create_team("Masonry crew", specialty="masonry")


@pytest.fixture
def project(hierarchy_service):
    return hierarchy_service.create_project(
        "Palm Residences",
        location="Lot 14",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
    )


@pytest.fixture
def unit(hierarchy_service, project):
    return hierarchy_service.create_unit(project.id, "Villa A", UnitType.VILLA, floor=0, area=240.0)


@pytest.fixture
def category(hierarchy_service, unit):
    return hierarchy_service.create_category(
        unit.id, "Foundations", date(2024, 6, 1), date(2024, 6, 30), order=1
    )


@pytest.fixture
def add_assignment(hierarchy_service, team):
    """Factory: add a team assignment to a category (default team)."""

    def _add(category_id, progress=0.0, status="NOT_STARTED", team_id=None, **kwargs):
        return hierarchy_service.create_team_assignment(
            category_id,
            team_id or team.id,
            status=status,
            progress=progress,
            **kwargs,
        )

    return _add
