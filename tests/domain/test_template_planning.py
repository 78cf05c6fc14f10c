"""Tests for template date planning and the deterministic clock."""

from datetime import UTC, date, datetime

from construction_kernel.domain.clock import DeterministicClock
from construction_kernel.domain.dtos import TemplateCategorySpec, TemplateSequencing
from construction_kernel.domain.planning import plan_categories

BASE = date(2024, 3, 1)

SPECS = [
    TemplateCategorySpec(name="Finishing", order=3, duration_days=5),
    TemplateCategorySpec(name="Excavation", order=1, duration_days=10),
    TemplateCategorySpec(name="Structure", order=2, duration_days=20),
]


class TestPlanCategories:
    def test_anchored_all_start_at_base(self):
        plans = plan_categories(SPECS, BASE, TemplateSequencing.ANCHORED)
        assert [p.spec.name for p in plans] == ["Excavation", "Structure", "Finishing"]
        assert all(p.start_date == BASE for p in plans)
        assert [p.end_date for p in plans] == [date(2024, 3, 11), date(2024, 3, 21), date(2024, 3, 6)]

    def test_sequential_chains_windows(self):
        plans = plan_categories(SPECS, BASE, TemplateSequencing.SEQUENTIAL)
        assert [(p.start_date, p.end_date) for p in plans] == [
            (date(2024, 3, 1), date(2024, 3, 11)),
            (date(2024, 3, 11), date(2024, 3, 31)),
            (date(2024, 3, 31), date(2024, 4, 5)),
        ]

    def test_equal_orders_keep_definition_order(self):
        specs = [
            TemplateCategorySpec(name="Plumbing", order=1, duration_days=3),
            TemplateCategorySpec(name="Electrical", order=1, duration_days=3),
        ]
        assert [p.spec.name for p in plan_categories(specs, BASE)] == ["Plumbing", "Electrical"]

    def test_empty_template(self):
        assert plan_categories([], BASE) == []


class TestDeterministicClock:
    def test_on_pins_midnight_utc(self):
        clock = DeterministicClock.on(date(2024, 6, 10))
        assert clock.now() == datetime(2024, 6, 10, tzinfo=UTC)
        assert clock.today() == date(2024, 6, 10)

    def test_advance_days(self):
        clock = DeterministicClock.on(date(2024, 6, 10))
        clock.advance_days(3)
        assert clock.today() == date(2024, 6, 13)

    def test_naive_time_is_treated_as_utc(self):
        clock = DeterministicClock(datetime(2024, 1, 2, 12, 0))
        assert clock.now().tzinfo is not None
        clock.set_time(datetime(2024, 2, 1))
        assert clock.today() == date(2024, 2, 1)
