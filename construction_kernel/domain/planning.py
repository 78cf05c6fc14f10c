"""
Template date planning.

Turns the relative durations of a template into concrete category date
windows from a base date. Templates never hold dates themselves.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Sequence

from construction_kernel.domain.dtos import TemplateCategorySpec, TemplateSequencing


@dataclass(frozen=True)
class CategoryPlan:
    spec: TemplateCategorySpec
    start_date: date
    end_date: date


def plan_categories(
    categories: Sequence[TemplateCategorySpec],
    base: date,
    sequencing: TemplateSequencing = TemplateSequencing.ANCHORED,
) -> list[CategoryPlan]:
    """
    Compute a date window for each template category.

    Categories are returned sorted by ``order`` (stable for equal orders).
    With ANCHORED every window starts at ``base``; with SEQUENTIAL each
    window starts where the previous one ended.
    """
    ordered = sorted(categories, key=lambda c: c.order)
    plans: list[CategoryPlan] = []
    cursor = base
    for spec in ordered:
        start = base if sequencing == TemplateSequencing.ANCHORED else cursor
        end = start + timedelta(days=spec.duration_days)
        plans.append(CategoryPlan(spec=spec, start_date=start, end_date=end))
        cursor = end
    return plans
