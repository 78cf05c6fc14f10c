"""
Typed Exception Hierarchy for the Construction Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the engine (HTTP handlers, batch jobs, the schedule monitor) need
to react differently to bad input, missing records, and storage failures.
Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        assignments.set_status_and_progress(assignment_id, status, 80)
    except TeamAssignmentNotFoundError as e:
        return {"error": e.code, "assignment_id": str(e.assignment_id)}
    except CascadeError as e:
        progress.resume(e)   # retry only the levels that did not finish

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ConstructionKernelError (base)
    |
    +-- ValidationError                 rejected before any persistence call
    |   +-- EmptyNameError
    |   +-- InvalidDateRangeError
    |   +-- ProgressOutOfRangeError
    |   +-- InvalidStatusError
    |   +-- InvalidTemplateError
    |
    +-- NotFoundError                   fatal for single-entity operations,
    |   +-- ProjectNotFoundError        a per-item warning in batch operations
    |   +-- UnitNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- TeamAssignmentNotFoundError
    |   +-- TeamNotFoundError
    |   +-- TemplateNotFoundError
    |
    +-- StoreError                      persistence failure, never retried here
    |   +-- CascadeError                partial progress cascade
    |
    +-- AggregationInconsistencyError   diagnostics only, never user-facing

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                        | When Raised
--------------|-----------------------------|-------------------------------------
Validation    | EMPTY_NAME                  | Required name blank
              | INVALID_DATE_RANGE          | end_date <= start_date
              | PROGRESS_OUT_OF_RANGE       | progress outside [0, 100]
              | INVALID_STATUS              | unknown status / enum value
              | INVALID_TEMPLATE            | bad duration, order, or shape
--------------|-----------------------------|-------------------------------------
Not found     | PROJECT_NOT_FOUND           | Project id does not resolve
              | UNIT_NOT_FOUND              | Unit id does not resolve
              | CATEGORY_NOT_FOUND          | Category id does not resolve
              | TEAM_ASSIGNMENT_NOT_FOUND   | Assignment id does not resolve
              | TEAM_NOT_FOUND              | Team id does not resolve
              | TEMPLATE_NOT_FOUND          | Template id does not resolve
--------------|-----------------------------|-------------------------------------
Store         | STORE_ERROR                 | SQLAlchemy failure on flush/query
              | CASCADE_INCOMPLETE          | Cascade stopped at a level
--------------|-----------------------------|-------------------------------------
Diagnostics   | AGGREGATION_INCONSISTENCY   | Stored % != recomputed %
"""

from typing import Any


class ConstructionKernelError(Exception):
    """
    Base exception for all construction kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CONSTRUCTION_KERNEL_ERROR"


# Validation


class ValidationError(ConstructionKernelError):
    """Malformed input to a mutating operation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class EmptyNameError(ValidationError):
    """A required name was missing or blank."""

    code: str = "EMPTY_NAME"

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__("name", f"{entity} name must not be empty")


class InvalidDateRangeError(ValidationError):
    """End date does not come after start date."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start_date: Any, end_date: Any):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            "end_date",
            f"end_date ({end_date}) must be after start_date ({start_date})",
        )


class ProgressOutOfRangeError(ValidationError):
    """A progress value falls outside [0, 100]."""

    code: str = "PROGRESS_OUT_OF_RANGE"

    def __init__(self, value: Any):
        self.value = value
        super().__init__("progress", f"{value!r} is not within [0, 100]")


class InvalidStatusError(ValidationError):
    """An enum-valued field received an unknown value."""

    code: str = "INVALID_STATUS"

    def __init__(self, field: str, value: Any, allowed: tuple[str, ...]):
        self.value = value
        self.allowed = allowed
        super().__init__(
            field, f"{value!r} is not one of {', '.join(allowed)}"
        )


class InvalidTemplateError(ValidationError):
    """A template definition is structurally invalid."""

    code: str = "INVALID_TEMPLATE"


# Not found


class NotFoundError(ConstructionKernelError):
    """Base exception for ids that do not resolve."""

    code: str = "NOT_FOUND"
    entity: str = "entity"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class ProjectNotFoundError(NotFoundError):
    code: str = "PROJECT_NOT_FOUND"
    entity: str = "Project"

    def __init__(self, project_id: Any):
        self.project_id = project_id
        super().__init__(project_id)


class UnitNotFoundError(NotFoundError):
    code: str = "UNIT_NOT_FOUND"
    entity: str = "Unit"

    def __init__(self, unit_id: Any):
        self.unit_id = unit_id
        super().__init__(unit_id)


class CategoryNotFoundError(NotFoundError):
    code: str = "CATEGORY_NOT_FOUND"
    entity: str = "Category"

    def __init__(self, category_id: Any):
        self.category_id = category_id
        super().__init__(category_id)


class TeamAssignmentNotFoundError(NotFoundError):
    code: str = "TEAM_ASSIGNMENT_NOT_FOUND"
    entity: str = "TeamAssignment"

    def __init__(self, assignment_id: Any):
        self.assignment_id = assignment_id
        super().__init__(assignment_id)


class TeamNotFoundError(NotFoundError):
    code: str = "TEAM_NOT_FOUND"
    entity: str = "Team"

    def __init__(self, team_id: Any):
        self.team_id = team_id
        super().__init__(team_id)


class TemplateNotFoundError(NotFoundError):
    code: str = "TEMPLATE_NOT_FOUND"
    entity: str = "Template"

    def __init__(self, template_id: Any):
        self.template_id = template_id
        super().__init__(template_id)


# Store


class StoreError(ConstructionKernelError):
    """
    Underlying persistence failure (timeout, conflict, constraint).

    Propagated unchanged; the kernel never retries internally.
    """

    code: str = "STORE_ERROR"

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store failure during {operation}{detail}")


class CascadeError(StoreError):
    """
    A progress cascade failed partway.

    ``completed`` holds ``(level, entity_id, value)`` tuples for levels that
    were recomputed and persisted.  ``remaining`` holds ``(level, entity_id)``
    tuples, starting with the failed level, so the caller can retry just
    those via ``ProgressService.resume``.
    """

    code: str = "CASCADE_INCOMPLETE"

    def __init__(
        self,
        completed: tuple[tuple[str, Any, float], ...],
        remaining: tuple[tuple[str, Any], ...],
        cause: BaseException | None = None,
    ):
        self.completed = completed
        self.remaining = remaining
        self.failed_level = remaining[0][0] if remaining else None
        super().__init__(f"progress cascade at {self.failed_level}", cause)


# Diagnostics


class AggregationInconsistencyError(ConstructionKernelError):
    """Stored progress differs from a from-scratch recomputation."""

    code: str = "AGGREGATION_INCONSISTENCY"

    def __init__(self, level: str, entity_id: Any, stored: float, expected: float):
        self.level = level
        self.entity_id = entity_id
        self.stored = stored
        self.expected = expected
        super().__init__(
            f"{level} {entity_id} stores progress {stored} "
            f"but children aggregate to {expected}"
        )
