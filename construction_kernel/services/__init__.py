"""Services for the construction kernel (write side)."""

from construction_kernel.services.alert_dispatcher import (
    AlertDispatcher,
    CollectingNotificationSink,
    DispatchSummary,
    LoggingNotificationSink,
    NotificationSink,
    ScheduleMonitor,
)
from construction_kernel.services.assignment_service import AssignmentService
from construction_kernel.services.clone_service import UnitCloneService
from construction_kernel.services.hierarchy_service import HierarchyService
from construction_kernel.services.progress_service import ProgressService
from construction_kernel.services.template_service import TemplateService

__all__ = [
    "AlertDispatcher",
    "AssignmentService",
    "CollectingNotificationSink",
    "DispatchSummary",
    "HierarchyService",
    "LoggingNotificationSink",
    "NotificationSink",
    "ProgressService",
    "ScheduleMonitor",
    "TemplateService",
    "UnitCloneService",
]
