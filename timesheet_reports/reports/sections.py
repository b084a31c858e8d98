"""Section and group boundary detection over ordered report rows."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from timesheet_reports.reports.calculators import Row, Section
from timesheet_reports.reports.errors import ReportError

if TYPE_CHECKING:
    from timesheet_reports.models.entities import Customer, Project, Task

logger = logging.getLogger(__name__)

_UNSET = object()


def group_title(task: Task) -> str | None:
    """Group name from a "Group: task name" title, or None without a colon."""

    title = task.title or ""
    colon = title.find(":")
    if colon < 0:
        return None
    return title[:colon]


def section_title(customer: Customer | None, project: Project | None) -> str:
    if project is None:
        return "No customer, no project"
    if customer is None:
        return f"(No customer) {project.title}"
    return f"Customer {customer.title} - {project.title}"


class SectionBoundaryDetector:
    """Stateful single pass assigning rows to sections and groups.

    A new section starts whenever the (customer, project) pair changes
    between consecutive rows; section indices rise by one from zero. Groups
    are tracked independently from the task title prefix and carry no index.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._last_key: object = _UNSET
        self._last_group: object = _UNSET
        self._customer: Customer | None = None
        self._project: Project | None = None
        self.section_index = -1

    @staticmethod
    def _section_key(task: Task) -> tuple[object, object]:
        project = task.project
        if project is None:
            return (None, None)
        customer = project.customer
        return (customer.id if customer is not None else None, project.id)

    def new_section(self, task: Task) -> bool:
        key = self._section_key(task)
        changed = key != self._last_key
        if changed:
            self._last_key = key
            self._project = task.project
            self._customer = task.project.customer if task.project is not None else None
            self._last_group = group_title(task)
            self.section_index += 1
        return changed

    def new_group(self, task: Task) -> bool:
        this_group = group_title(task)
        changed = this_group != self._last_group
        if changed:
            self._last_group = this_group
        return changed

    def section_title(self) -> str:
        return section_title(self._customer, self._project)

    def build(self, rows: Sequence[Row]) -> list[Section]:
        """Annotate ``rows`` and return their sections with summed totals."""

        self.reset()
        sections: list[Section] = []
        current: Section | None = None

        for row in rows:
            if row.task is None:
                raise ReportError.invariant("Report row has no task.")

            row.starts_section = self.new_section(row.task)
            row.starts_group = self.new_group(row.task)
            row.section_index = self.section_index
            row.group_title = group_title(row.task)

            if row.starts_section:
                current = Section(
                    index=self.section_index,
                    customer=self._customer,
                    project=self._project,
                    title=self.section_title(),
                )
                sections.append(current)

            if current is None:
                logger.error("No current section while processing row for task %s.", row.task.id)
                raise ReportError.invariant("No current section while processing report rows.")
            current.add_row(row)

        return sections
