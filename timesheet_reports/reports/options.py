"""Report parameters and the viewer capability passed to the compiler."""

from __future__ import annotations

import enum
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from timesheet_reports.reports.calculators import HourSelector
from timesheet_reports.reports.periods import Frequency

if TYPE_CHECKING:
    from timesheet_reports.models.entities import Task

SORT_FIELDS = ("title", "code", "created_at")
DEFAULT_SORT_FIELD = "title"
RELATIVE_DISTANCES = {"this": 0, "last": 1, "two": 2}


class TaskFilter(str, enum.Enum):
    ALL = "all"
    BILLABLE = "billable"
    NON_BILLABLE = "non_billable"


class TaskGrouping(str, enum.Enum):
    DEFAULT = "default"
    BILLABLE = "billable"
    ACTIVE = "active"
    BOTH = "both"


@dataclass(slots=True)
class ReportOptions:
    """Caller parameters for one report compilation.

    Sort fields are kept as given; values outside ``SORT_FIELDS`` are
    replaced with ``title`` during compilation. Range fields hold raw user
    input and are only parsed when the compiler rationalises dates.
    """

    task_ids: Sequence[UUID] = ()
    user_ids: Sequence[UUID] = ()
    frequency: Frequency = Frequency.TOTALS_ONLY
    task_filter: TaskFilter = TaskFilter.ALL
    task_grouping: TaskGrouping = TaskGrouping.DEFAULT
    customer_sort_field: str = DEFAULT_SORT_FIELD
    project_sort_field: str = DEFAULT_SORT_FIELD
    task_sort_field: str = DEFAULT_SORT_FIELD

    range_start: date | str | None = None
    range_end: date | str | None = None
    range_week_start: str | None = None
    range_week_end: str | None = None
    range_month_start: str | None = None
    range_month_end: str | None = None
    range_one_week: str | None = None
    range_one_month: str | None = None

    include_totals: bool = True
    include_committed: bool = False
    include_not_committed: bool = False
    exclude_zero_rows: bool = False
    exclude_zero_cols: bool = False
    title: str | None = None

    def __post_init__(self) -> None:
        self.frequency = Frequency(self.frequency)
        self.task_filter = TaskFilter(self.task_filter)
        self.task_grouping = TaskGrouping(self.task_grouping)
        self.task_ids = tuple(dict.fromkeys(self.task_ids))
        self.user_ids = tuple(dict.fromkeys(self.user_ids))

    @property
    def group_by_billable(self) -> bool:
        return self.task_grouping in {TaskGrouping.BILLABLE, TaskGrouping.BOTH}

    @property
    def group_by_active(self) -> bool:
        return self.task_grouping in {TaskGrouping.ACTIVE, TaskGrouping.BOTH}

    @property
    def zero_check_selector(self) -> HourSelector:
        if self.include_totals or (self.include_committed and self.include_not_committed):
            return HourSelector.TOTAL
        if self.include_committed:
            return HourSelector.COMMITTED
        if self.include_not_committed:
            return HourSelector.NOT_COMMITTED
        return HourSelector.TOTAL


@dataclass(frozen=True)
class Viewer:
    """The user a report is compiled for.

    ``permitted_task_loader`` returns the active tasks this user may see; it
    is only consulted when no explicit task list is given.
    """

    user_id: UUID
    restricted: bool = False
    permitted_task_loader: Callable[[], Sequence[Task]] = field(default=lambda: [], repr=False)

    def permitted_tasks(self) -> list[Task]:
        return list(self.permitted_task_loader())
