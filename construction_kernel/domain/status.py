"""
Assignment status state machine.

The lifecycle is an explicit from-state -> to-state table rather than a
class hierarchy because it is cyclic: DONE re-opens to NOT_STARTED and
DELAYED resumes to IN_PROGRESS.

``advance`` drives one-click status cycling. It never fires on a schedule
breach; DELAYED is entered only by an explicit ``mark_delayed`` call that
applies a scan report.
"""

from types import MappingProxyType
from typing import Any, Mapping

from construction_kernel.domain.dtos import AssignmentStatus
from construction_kernel.exceptions import InvalidStatusError

ADVANCE_TABLE: Mapping[AssignmentStatus, AssignmentStatus] = MappingProxyType(
    {
        AssignmentStatus.NOT_STARTED: AssignmentStatus.IN_PROGRESS,
        AssignmentStatus.IN_PROGRESS: AssignmentStatus.DONE,
        AssignmentStatus.DONE: AssignmentStatus.NOT_STARTED,
        AssignmentStatus.DELAYED: AssignmentStatus.IN_PROGRESS,
    }
)

INITIAL_STATUS = AssignmentStatus.NOT_STARTED

# States from which the scheduler may flag an assignment as DELAYED.
DELAYABLE_STATUSES: frozenset[AssignmentStatus] = frozenset(
    s for s in AssignmentStatus if s != AssignmentStatus.DONE
)


def advance(current: AssignmentStatus) -> AssignmentStatus:
    """Next status in the one-click cycle."""
    return ADVANCE_TABLE[parse_status(current)]


def can_mark_delayed(current: AssignmentStatus) -> bool:
    return parse_status(current) in DELAYABLE_STATUSES


def parse_status(value: Any) -> AssignmentStatus:
    """Coerce a status value, accepting enum members or their names/values."""
    if isinstance(value, AssignmentStatus):
        return value
    if isinstance(value, str):
        try:
            return AssignmentStatus(value.upper())
        except ValueError:
            pass
    raise InvalidStatusError(
        "status", value, tuple(s.value for s in AssignmentStatus)
    )
