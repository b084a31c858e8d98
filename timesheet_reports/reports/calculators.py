"""Hour accumulators making up a compiled report.

Every level of a report (cell, row, section, column total and the report
itself) carries a committed and a not-committed hour count. Cells, rows and
sections additionally carry per-user breakdowns kept index-aligned with the
report's user list.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timesheet_reports.models.entities import Customer, Project, Task

ZERO = Decimal("0")


class HourSelector(str, enum.Enum):
    """Which accumulator value zero-row/zero-column checks look at."""

    TOTAL = "total"
    COMMITTED = "committed"
    NOT_COMMITTED = "not_committed"


@dataclass(slots=True)
class HourAccumulator:
    committed: Decimal = ZERO
    not_committed: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.committed + self.not_committed

    def has_hours(self) -> bool:
        return self.total > ZERO

    def value(self, selector: HourSelector) -> Decimal:
        if selector is HourSelector.COMMITTED:
            return self.committed
        if selector is HourSelector.NOT_COMMITTED:
            return self.not_committed
        return self.total

    def add_hours(self, hours: Decimal, *, committed: bool) -> None:
        if committed:
            self.committed += hours
        else:
            self.not_committed += hours

    def add(self, other: HourAccumulator) -> None:
        self.committed += other.committed
        self.not_committed += other.not_committed

    def subtract(self, other: HourAccumulator) -> None:
        self.committed -= other.committed
        self.not_committed -= other.not_committed

    def reset(self) -> None:
        self.committed = ZERO
        self.not_committed = ZERO


def _accumulate_users(target: list[HourAccumulator], source: list[HourAccumulator]) -> None:
    # Grow lazily so a fresh target takes the shape of its first contribution.
    while len(target) < len(source):
        target.append(HourAccumulator())
    for index, user_hours in enumerate(source):
        target[index].add(user_hours)


@dataclass(slots=True)
class Cell(HourAccumulator):
    """Hours for one task (or one total line) within one column."""

    user_data: list[HourAccumulator] = field(default_factory=list)

    @classmethod
    def for_users(cls, user_count: int) -> Cell:
        return cls(user_data=[HourAccumulator() for _ in range(user_count)])

    def add_cell(self, other: Cell) -> None:
        self.add(other)
        _accumulate_users(self.user_data, other.user_data)

    def subtract_cell(self, other: Cell) -> None:
        self.subtract(other)
        for index, user_hours in enumerate(other.user_data):
            self.user_data[index].subtract(user_hours)

    def reset(self) -> None:
        HourAccumulator.reset(self)
        for user_hours in self.user_data:
            user_hours.reset()


@dataclass(slots=True)
class Row(HourAccumulator):
    """One task across the whole report range."""

    task: Task | None = None
    cells: list[Cell] = field(default_factory=list)
    user_totals: list[HourAccumulator] = field(default_factory=list)
    section_index: int = -1
    group_title: str | None = None
    starts_section: bool = False
    starts_group: bool = False

    def append_cell(self, cell: Cell) -> None:
        self.cells.append(cell)
        self.add(cell)

    def delete_cell(self, index: int) -> Cell:
        cell = self.cells.pop(index)
        self.subtract(cell)
        return cell

    def calculate_user_totals(self, user_count: int) -> None:
        self.user_totals = []
        for user_index in range(user_count):
            user_total = HourAccumulator()
            for cell in self.cells:
                user_total.add(cell.user_data[user_index])
            self.user_totals.append(user_total)


@dataclass(slots=True)
class Section(HourAccumulator):
    """Contiguous rows sharing one customer and project."""

    index: int = 0
    customer: Customer | None = None
    project: Project | None = None
    title: str = ""
    rows: list[Row] = field(default_factory=list)
    cells: list[Cell] = field(default_factory=list)
    user_totals: list[HourAccumulator] = field(default_factory=list)

    def cell(self, column_index: int) -> Cell:
        while len(self.cells) <= column_index:
            self.cells.append(Cell())
        return self.cells[column_index]

    def add_row(self, row: Row) -> None:
        self.rows.append(row)
        for column_index, row_cell in enumerate(row.cells):
            self.cell(column_index).add_cell(row_cell)
        _accumulate_users(self.user_totals, row.user_totals)
        self.add(row)
