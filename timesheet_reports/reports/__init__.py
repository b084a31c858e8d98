"""Report compilation engine."""

from timesheet_reports.reports.compiler import Report, ReportCompiler, ReportState, WorkRecordSource
from timesheet_reports.reports.errors import ReportError, ReportErrorKind
from timesheet_reports.reports.options import ReportOptions, TaskFilter, TaskGrouping, Viewer
from timesheet_reports.reports.periods import DateRange, Frequency, PeriodCalendar

__all__ = [
    "DateRange",
    "Frequency",
    "PeriodCalendar",
    "Report",
    "ReportCompiler",
    "ReportError",
    "ReportErrorKind",
    "ReportOptions",
    "ReportState",
    "TaskFilter",
    "TaskGrouping",
    "Viewer",
    "WorkRecordSource",
]
