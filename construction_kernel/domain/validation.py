"""
Input validation for mutating operations.

Every check here runs before any persistence call, so a ValidationError
never reaches the store.
"""

from datetime import date
from enum import Enum
from typing import Any, TypeVar

from construction_kernel.exceptions import (
    EmptyNameError,
    InvalidDateRangeError,
    InvalidStatusError,
    ValidationError,
)

E = TypeVar("E", bound=Enum)


def require_name(entity: str, name: Any) -> str:
    """Return the stripped name, rejecting None and blank strings."""
    if not isinstance(name, str) or not name.strip():
        raise EmptyNameError(entity)
    return name.strip()


def require_date_range(
    start_date: date | None,
    end_date: date | None,
    *,
    allow_equal: bool = False,
) -> None:
    """
    Reject ranges whose end does not come after the start.

    Open ranges (either bound None) pass.
    """
    if start_date is None or end_date is None:
        return
    if end_date < start_date or (end_date == start_date and not allow_equal):
        raise InvalidDateRangeError(start_date, end_date)


def parse_enum(enum_cls: type[E], field: str, value: Any) -> E:
    """Coerce ``value`` into ``enum_cls`` by member, value, or name."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if value in (member.value, member.name) or value.lower() == str(member.value).lower():
                return member
    raise InvalidStatusError(field, value, tuple(str(m.value) for m in enum_cls))


def require_positive_int(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(field, f"{value!r} must be a positive integer")
    return value


def require_task_names(tasks: Any) -> list[str]:
    """Return task names in order, stripped; blank names are rejected."""
    if isinstance(tasks, str) or tasks is None:
        raise ValidationError("tasks", "tasks must be a sequence of names")
    names = []
    for task in tasks:
        if not isinstance(task, str) or not task.strip():
            raise ValidationError("tasks", f"{task!r} is not a valid task name")
        names.append(task.strip())
    return names
