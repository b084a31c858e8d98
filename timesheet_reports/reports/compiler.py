"""Report aggregate and the compiler that fills it in one pass."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from timesheet_reports.core.config import Settings, get_settings
from timesheet_reports.reports.calculators import ZERO, Cell, HourAccumulator, HourSelector, Row, Section
from timesheet_reports.reports.errors import ReportError
from timesheet_reports.reports.headings import COLUMN_TITLES, FREQUENCY_LABELS, column_heading, heading_total
from timesheet_reports.reports.options import (
    DEFAULT_SORT_FIELD,
    SORT_FIELDS,
    ReportOptions,
    TaskFilter,
    Viewer,
)
from timesheet_reports.reports.periods import DateRange, PeriodCalendar, is_partial_period, partition
from timesheet_reports.reports.ranges import rationalise_range
from timesheet_reports.reports.scanner import RecordCursor, WorkRecord, scan_cell
from timesheet_reports.reports.sections import SectionBoundaryDetector

if TYPE_CHECKING:
    from timesheet_reports.models.entities import Task

logger = logging.getLogger(__name__)


class WorkRecordSource(Protocol):
    """Read-side collaborator supplying tasks and work records."""

    def list_tasks(self, task_ids: Sequence[UUID]) -> list[Task]: ...

    def record_date_bounds(self, task_ids: Sequence[UUID]) -> tuple[date | None, date | None]: ...

    def committed_records(
        self, task_id: UUID, *, date_range: DateRange, user_ids: Sequence[UUID]
    ) -> Sequence[WorkRecord]: ...

    def not_committed_records(
        self, task_id: UUID, *, date_range: DateRange, user_ids: Sequence[UUID]
    ) -> Sequence[WorkRecord]: ...


class ReportState(str, enum.Enum):
    UNFILTERED = "unfiltered"
    FILTERED = "filtered"
    SORTED = "sorted"
    ROWS_BUILT = "rows_built"
    COLUMNS_BUILT = "columns_built"
    CALCULATED = "calculated"


_STATE_ORDER = list(ReportState)


@dataclass(slots=True)
class Report(HourAccumulator):
    """Compiled report; read-only once ``state`` reaches ``calculated``.

    ``rows`` and ``filtered_tasks`` are index-aligned, as are each row's
    ``cells`` with ``column_ranges`` and ``column_totals``, and every
    per-user list with ``users``. The report's own committed and
    not-committed hours are the grand totals.
    """

    options: ReportOptions = field(default_factory=ReportOptions)
    period_calendar: PeriodCalendar = field(default_factory=PeriodCalendar)
    state: ReportState = ReportState.UNFILTERED
    range: DateRange | None = None
    throttled: date | None = None
    filtered_tasks: list[Task] = field(default_factory=list)
    column_ranges: list[DateRange] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)
    column_totals: list[Cell] = field(default_factory=list)
    users: list[UUID] = field(default_factory=list)
    user_column_totals: list[HourAccumulator] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    total_duration: Decimal | None = None
    total_actual_remaining: Decimal | None = None
    total_potential_remaining: Decimal | None = None
    issues: list[ReportError] = field(default_factory=list)

    def advance(self, state: ReportState) -> None:
        expected = _STATE_ORDER.index(self.state) + 1
        if expected >= len(_STATE_ORDER) or _STATE_ORDER[expected] is not state:
            logger.error("Report cannot move from %s to %s.", self.state.value, state.value)
            raise ReportError.invariant(f"Report cannot move from {self.state.value} to {state.value}.")
        self.state = state

    @property
    def compiled(self) -> bool:
        return self.state is ReportState.CALCULATED

    @property
    def column_count(self) -> int | None:
        if _STATE_ORDER.index(self.state) < _STATE_ORDER.index(ReportState.COLUMNS_BUILT):
            return None
        return len(self.column_ranges)

    @property
    def user_count(self) -> int:
        return len(self.users)

    @property
    def has_rows(self) -> bool:
        return bool(self.rows)

    @property
    def label(self) -> str:
        return FREQUENCY_LABELS[self.options.frequency]

    @property
    def column_title(self) -> str:
        return COLUMN_TITLES[self.options.frequency]

    @property
    def display_range(self) -> str | None:
        if self.range is None:
            return None
        return heading_total(self.range, self.period_calendar)

    def column_heading(self, index: int) -> str:
        return column_heading(self.options.frequency, self.column_ranges[index], self.period_calendar)

    def is_partial_column(self, index: int) -> bool:
        """Whether the column covers less than its whole quantized period."""

        return is_partial_period(self.column_ranges[index], self.options.frequency, self.period_calendar)


def _duration(task: Task) -> Decimal:
    return task.duration if task.duration is not None else ZERO


def _sort_value(item: object | None, field_name: str) -> tuple[int, int, object]:
    if item is None:
        return (1, 0, "")
    value = getattr(item, field_name)
    if value is None:
        return (0, 1, "")
    return (0, 0, value)


def _identity(item: object | None) -> str:
    return "" if item is None else str(item.id)


class ReportCompiler:
    """Compile report options into a ``Report`` for one viewer.

    Work records are loaded once per task and then distributed across the
    columns in a single chronological walk, so the cost is bounded by the
    number of records rather than by tasks times columns.
    """

    def __init__(
        self,
        source: WorkRecordSource,
        settings: Settings | None = None,
        *,
        today: date | None = None,
    ) -> None:
        self.source = source
        self.settings = settings or get_settings()
        self.period_calendar = PeriodCalendar.from_settings(self.settings)
        self.today = today

    def compile(self, options: ReportOptions, viewer: Viewer) -> Report:
        report = Report(options=options, period_calendar=self.period_calendar)

        self._apply_filters(report, viewer)
        if not report.filtered_tasks:
            logger.debug("Report for user %s has no tasks after filtering.", viewer.user_id)
            return report

        self._rationalise_dates(report)
        self._sort_and_group(report)
        self._build_rows(report)
        self._build_columns(report)
        self._calculate(report)

        logger.debug(
            "Compiled %s report for user %s: %d rows, %d columns, %d sections.",
            options.frequency.value,
            viewer.user_id,
            len(report.rows),
            len(report.column_ranges),
            len(report.sections),
        )
        return report

    # ---------- Filtering / ordering ----------
    def _apply_filters(self, report: Report, viewer: Viewer) -> None:
        options = report.options
        if options.task_ids:
            tasks = list(self.source.list_tasks(options.task_ids))
        else:
            tasks = [task for task in viewer.permitted_tasks() if task.active]

        if options.task_filter is TaskFilter.BILLABLE:
            tasks = [task for task in tasks if task.billable]
        elif options.task_filter is TaskFilter.NON_BILLABLE:
            tasks = [task for task in tasks if not task.billable]

        report.filtered_tasks = tasks
        report.advance(ReportState.FILTERED)

    def _rationalise_dates(self, report: Report) -> None:
        earliest, latest = self.source.record_date_bounds([task.id for task in report.filtered_tasks])
        today = self.today or date.today()
        first = earliest or date(self.settings.report_minimum_year, 1, 1)
        last = latest or today
        default = DateRange(min(first, last), max(first, last))

        resolution = rationalise_range(
            report.options,
            default,
            today=today,
            daily_max_days=self.settings.report_daily_max_days,
            period_calendar=self.period_calendar,
        )
        report.range = resolution.range
        report.throttled = resolution.throttled
        report.issues.extend(resolution.issues)

    def _validated_sort_field(self, report: Report, name: str) -> str:
        value = getattr(report.options, name)
        if value in SORT_FIELDS:
            return value
        issue = ReportError.input_defaulted(
            f"Unsupported sort field {value!r}; using {DEFAULT_SORT_FIELD!r}.",
            field=name,
        )
        logger.warning(issue.message)
        report.issues.append(issue)
        return DEFAULT_SORT_FIELD

    def _sort_and_group(self, report: Report) -> None:
        options = report.options
        customer_field = self._validated_sort_field(report, "customer_sort_field")
        project_field = self._validated_sort_field(report, "project_sort_field")
        task_field = self._validated_sort_field(report, "task_sort_field")

        def sort_key(task: Task) -> tuple[object, ...]:
            project = task.project
            customer = project.customer if project is not None else None
            grouping: list[bool] = []
            # False sorts first, so billable and active tasks lead.
            if options.group_by_billable:
                grouping.append(not task.billable)
            if options.group_by_active:
                grouping.append(not task.active)
            return (
                *grouping,
                _sort_value(customer, customer_field),
                _identity(customer),
                _sort_value(project, project_field),
                _identity(project),
                _sort_value(task, task_field),
            )

        report.filtered_tasks.sort(key=sort_key)
        report.advance(ReportState.SORTED)

    # ---------- Grid ----------
    def _build_rows(self, report: Report) -> None:
        report.rows = [Row(task=task) for task in report.filtered_tasks]
        report.advance(ReportState.ROWS_BUILT)

    def _build_columns(self, report: Report) -> None:
        if report.range is None:
            logger.error("Report columns requested before the date range was resolved.")
            raise ReportError.invariant("Report columns cannot be built without a date range.")
        report.users = list(report.options.user_ids)
        user_index = {user_id: position for position, user_id in enumerate(report.users)}

        cursors: list[tuple[RecordCursor, RecordCursor]] = []
        for task in report.filtered_tasks:
            committed = self.source.committed_records(task.id, date_range=report.range, user_ids=report.users)
            not_committed = self.source.not_committed_records(
                task.id, date_range=report.range, user_ids=report.users
            )
            cursors.append((RecordCursor(committed), RecordCursor(not_committed)))

        for column in partition(report.range, report.options.frequency, self.period_calendar):
            column_total = Cell.for_users(len(report.users))
            for row, (committed, not_committed) in zip(report.rows, cursors):
                cell = scan_cell(column, committed, not_committed, user_index)
                row.append_cell(cell)
                column_total.add_cell(cell)
            report.column_ranges.append(column)
            report.column_totals.append(column_total)

        for task, (committed, not_committed) in zip(report.filtered_tasks, cursors):
            leftover = committed.remaining + not_committed.remaining + committed.skipped + not_committed.skipped
            if leftover:
                logger.warning("%d work records for task %s fell outside the report range.", leftover, task.id)

        report.advance(ReportState.COLUMNS_BUILT)

    # ---------- Totals ----------
    def _calculate(self, report: Report) -> None:
        options = report.options
        selector = options.zero_check_selector

        if options.exclude_zero_rows:
            self._exclude_zero_rows(report, selector)
        if options.exclude_zero_cols:
            self._exclude_zero_columns(report, selector)

        report.total_duration = sum((_duration(task) for task in report.filtered_tasks), ZERO)

        report.reset()
        for row in report.rows:
            report.add(row)

        report.total_actual_remaining = None
        report.total_potential_remaining = None
        for row in report.rows:
            if _duration(row.task) <= ZERO:
                continue
            if report.total_actual_remaining is None:
                report.total_actual_remaining = report.total_duration
                report.total_potential_remaining = report.total_duration
            report.total_actual_remaining -= row.committed
            report.total_potential_remaining -= row.total

        user_count = len(report.users)
        for row in report.rows:
            row.calculate_user_totals(user_count)

        report.user_column_totals = []
        for user_position in range(user_count):
            user_column_total = HourAccumulator()
            for row in report.rows:
                user_column_total.add(row.user_totals[user_position])
            report.user_column_totals.append(user_column_total)

        if options.exclude_zero_cols:
            self._exclude_zero_users(report, selector)

        # Detector state is per build; compilers may be shared across threads.
        report.sections = SectionBoundaryDetector().build(report.rows)
        report.advance(ReportState.CALCULATED)

    @staticmethod
    def _exclude_zero_rows(report: Report, selector: HourSelector) -> None:
        # Descending so earlier indices stay valid.
        for index in reversed(range(len(report.rows))):
            row = report.rows[index]
            if row.value(selector) != ZERO:
                continue
            for column_index, cell in enumerate(row.cells):
                report.column_totals[column_index].subtract_cell(cell)
            del report.rows[index]
            del report.filtered_tasks[index]

    @staticmethod
    def _exclude_zero_columns(report: Report, selector: HourSelector) -> None:
        for index in reversed(range(len(report.column_ranges))):
            if report.column_totals[index].value(selector) != ZERO:
                continue
            for row in report.rows:
                row.delete_cell(index)
            del report.column_ranges[index]
            del report.column_totals[index]

    @staticmethod
    def _exclude_zero_users(report: Report, selector: HourSelector) -> None:
        for position in reversed(range(len(report.users))):
            if report.user_column_totals[position].value(selector) != ZERO:
                continue
            del report.users[position]
            del report.user_column_totals[position]
            for row in report.rows:
                del row.user_totals[position]
                for cell in row.cells:
                    del cell.user_data[position]
            for column_total in report.column_totals:
                del column_total.user_data[position]
