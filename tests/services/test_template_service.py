"""
Tests for TemplateService.

Covers:
- Template definition and validation
- Application onto a unit: one category per template category, one
  NOT_STARTED assignment per resolvable team
- Unresolvable teams skipped with warnings
- Anchored vs sequential date placement
"""

from datetime import date
from uuid import uuid4

import pytest

from construction_kernel.domain.dtos import (
    AssignmentStatus,
    TemplateCategorySpec,
    TemplateSequencing,
    TemplateTeamSpec,
    UnitType,
)
from construction_kernel.exceptions import (
    EmptyNameError,
    InvalidTemplateError,
    TemplateNotFoundError,
    UnitNotFoundError,
)


@pytest.fixture
def villa_template(template_service, team, hierarchy_service):
    electrician = hierarchy_service.create_team("Electrical crew", specialty="electrical")
    return template_service.create_template(
        "Standard villa",
        UnitType.VILLA,
        [
            TemplateCategorySpec(
                name="Excavation",
                order=1,
                duration_days=10,
                teams=(TemplateTeamSpec(team_id=team.id, tasks=("Dig", "Compact")),),
            ),
            TemplateCategorySpec(
                name="Wiring",
                order=2,
                duration_days=5,
                teams=(
                    TemplateTeamSpec(team_id=electrician.id, notes="First fix"),
                    TemplateTeamSpec(team_id=team.id),
                ),
            ),
        ],
        description="Two-phase villa build",
    )


class TestCreateTemplate:
    def test_round_trip(self, template_service, villa_template):
        info = template_service.get_template(villa_template.id)

        assert info.name == "Standard villa"
        assert [c.name for c in info.categories] == ["Excavation", "Wiring"]
        assert info.categories[0].teams[0].tasks == ("Dig", "Compact")
        assert info.assignment_count == 3

    def test_blank_name(self, template_service):
        with pytest.raises(EmptyNameError):
            template_service.create_template("", UnitType.VILLA, [])

    @pytest.mark.parametrize("field", ["order", "duration_days"])
    def test_non_positive_values_rejected(self, template_service, field):
        values = {"order": 1, "duration_days": 3, field: 0}
        spec = TemplateCategorySpec(name="Roofing", **values)

        with pytest.raises(InvalidTemplateError) as exc_info:
            template_service.create_template("Bad", UnitType.VILLA, [spec])
        assert exc_info.value.field == f"categories[0].{field}"

    def test_bad_task_names_rejected(self, template_service, team):
        spec = TemplateCategorySpec(
            name="Roofing",
            order=1,
            duration_days=3,
            teams=(TemplateTeamSpec(team_id=team.id, tasks=("Tiles", "")),),
        )

        with pytest.raises(InvalidTemplateError):
            template_service.create_template("Bad", UnitType.VILLA, [spec])

    def test_delete(self, template_service, villa_template):
        template_service.delete_template(villa_template.id)

        with pytest.raises(TemplateNotFoundError):
            template_service.get_template(villa_template.id)


class TestApplyTemplate:
    def test_creates_categories_and_assignments(
        self, template_service, villa_template, unit, hierarchy_selector, project
    ):
        result = template_service.apply_template(villa_template.id, unit.id, date(2024, 7, 1))

        assert result.complete
        assert len(result.category_ids) == 2
        assert len(result.assignment_ids) == 3

        tree = hierarchy_selector.project_tree(project.id)
        categories = tree.units[0].categories
        assert [c.category.name for c in categories] == ["Excavation", "Wiring"]
        assert all(
            a.status == AssignmentStatus.NOT_STARTED and a.progress == 0.0
            for c in categories
            for a in c.assignments
        )
        assert categories[0].assignments[0].tasks == ("Dig", "Compact")
        assert categories[1].assignments[0].notes == "First fix"

    def test_anchored_dates(self, template_service, hierarchy_service, villa_template, unit):
        result = template_service.apply_template(villa_template.id, unit.id, date(2024, 7, 1))

        windows = [
            (hierarchy_service.get_category(cid).start_date, hierarchy_service.get_category(cid).end_date)
            for cid in result.category_ids
        ]
        assert windows == [
            (date(2024, 7, 1), date(2024, 7, 11)),
            (date(2024, 7, 1), date(2024, 7, 6)),
        ]

    def test_sequential_dates(self, template_service, hierarchy_service, villa_template, unit):
        result = template_service.apply_template(
            villa_template.id, unit.id, date(2024, 7, 1), sequencing=TemplateSequencing.SEQUENTIAL
        )

        second = hierarchy_service.get_category(result.category_ids[1])
        assert (second.start_date, second.end_date) == (date(2024, 7, 11), date(2024, 7, 16))

    def test_base_defaults_to_clock_today(
        self, template_service, hierarchy_service, villa_template, unit, clock
    ):
        result = template_service.apply_template(villa_template.id, unit.id)

        assert hierarchy_service.get_category(result.category_ids[0]).start_date == clock.today()

    def test_unresolved_team_is_skipped_with_warning(
        self, template_service, unit, team, captured_logs
    ):
        missing = uuid4()
        template = template_service.create_template(
            "Mixed",
            UnitType.VILLA,
            [
                TemplateCategorySpec(
                    name="Plumbing",
                    order=1,
                    duration_days=4,
                    teams=(TemplateTeamSpec(team_id=team.id), TemplateTeamSpec(team_id=missing)),
                )
            ],
        )

        result = template_service.apply_template(template.id, unit.id, date(2024, 7, 1))

        assert not result.complete
        assert len(result.category_ids) == 1
        assert len(result.assignment_ids) == 1
        assert result.warnings[0].code == "TEAM_NOT_FOUND"
        assert result.warnings[0].context["team_id"] == str(missing)
        logged = [r for r in captured_logs() if r["message"] == "template_team_unresolved"]
        assert logged[0]["unit_id"] == str(unit.id)

    def test_existing_categories_are_kept(
        self, template_service, hierarchy_service, villa_template, unit, category
    ):
        template_service.apply_template(villa_template.id, unit.id, date(2024, 7, 1))

        assert hierarchy_service.get_category(category.id).name == "Foundations"

    def test_unit_and_project_are_recomputed(
        self, template_service, hierarchy_service, villa_template, unit, category, add_assignment
    ):
        add_assignment(category.id, progress=90)

        template_service.apply_template(villa_template.id, unit.id, date(2024, 7, 1))

        assert hierarchy_service.get_unit(unit.id).progress == pytest.approx(30.0)

    def test_unknown_unit(self, template_service, villa_template):
        with pytest.raises(UnitNotFoundError):
            template_service.apply_template(villa_template.id, uuid4())

    def test_unknown_template(self, template_service, unit):
        with pytest.raises(TemplateNotFoundError):
            template_service.apply_template(uuid4(), unit.id)
