"""ORM model package."""

from timesheet_reports.models.entities import (
    Customer,
    Project,
    Task,
    Timesheet,
    TimesheetRow,
    User,
    WorkPacket,
    task_users,
)

__all__ = [
    "Customer",
    "Project",
    "Task",
    "Timesheet",
    "TimesheetRow",
    "User",
    "WorkPacket",
    "task_users",
]
