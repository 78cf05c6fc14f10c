"""
Kernel Invariants Contract.

These rules hold regardless of how entities are stored or displayed. No
configuration set may switch them off.

This module only declares them. Enforcement is distributed across
ProgressService, AssignmentService, HierarchyService, TemplateService,
UnitCloneService and ScheduleRiskScanner.
"""

from enum import Enum, unique


@unique
class HierarchyInvariant(str, Enum):
    """Non-configurable guarantees of the progress and schedule engine."""

    PROGRESS_BOUNDS = "progress_bounds"
    """Progress at every level is within [0, 100]. Assignment input is
    clamped; aggregates are means of bounded values."""

    EMPTY_LEVEL_IS_ZERO = "empty_level_is_zero"
    """A level with no children aggregates to 0."""

    CASCADE_ORDER = "cascade_order"
    """Any change to an assignment's progress or status recomputes and
    persists Category, then Unit, then Project before the call returns."""

    AGGREGATION_IDEMPOTENCE = "aggregation_idempotence"
    """Aggregation is a pure function of the children's current values."""

    SCAN_PURITY = "scan_purity"
    """Schedule scans never mutate the hierarchy and are deterministic for
    the same data, now and horizon."""

    DELAYED_PRECEDENCE = "delayed_precedence"
    """An assignment classified Delayed is never also reported Imminent."""

    CLONE_RESETS_WORK = "clone_resets_work"
    """Cloned and template-created assignments start NOT_STARTED at 0%
    with reception and payment flags cleared."""

    BATCH_CONTINUES = "batch_continues"
    """Template application and cloning skip unresolvable items with a
    warning instead of aborting or rolling back."""


ALL_HIERARCHY_INVARIANTS: frozenset[HierarchyInvariant] = frozenset(
    HierarchyInvariant
)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "construction_config",
    "scripts",
)
