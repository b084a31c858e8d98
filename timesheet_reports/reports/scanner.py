"""Single-pass distribution of preloaded work records into report cells."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from timesheet_reports.reports.calculators import Cell
from timesheet_reports.reports.periods import DateRange


@dataclass(frozen=True, slots=True)
class WorkRecord:
    task_id: UUID
    user_id: UUID
    date: date
    worked_hours: Decimal
    committed: bool


class RecordCursor:
    """Walk a date-descending record sequence from its oldest end.

    The underlying sequence is never modified, so one snapshot of records
    may back any number of cursors. Columns must be visited in ascending
    date order; each record is handed out at most once per cursor.
    """

    def __init__(self, records: Sequence[WorkRecord]) -> None:
        self._records = records
        self._position = len(records) - 1
        self.consumed = 0
        self.skipped = 0

    @property
    def remaining(self) -> int:
        return self._position + 1

    def peek(self) -> WorkRecord | None:
        if self._position < 0:
            return None
        return self._records[self._position]

    def take(self, column: DateRange) -> Iterator[WorkRecord]:
        """Yield records dated within ``column``, advancing past them."""

        while self._position >= 0:
            record = self._records[self._position]
            if record.date > column.last:
                return
            self._position -= 1
            if record.date < column.first:
                # Earlier than every column still to come.
                self.skipped += 1
                continue
            self.consumed += 1
            yield record


def scan_cell(
    column: DateRange,
    committed: RecordCursor,
    not_committed: RecordCursor,
    user_index: Mapping[UUID, int],
    cell: Cell | None = None,
) -> Cell:
    """Fill a cell from both cursors for one column.

    ``user_index`` maps user ids to positions in the report's user list;
    hours from users outside it still count towards the cell total.
    """

    if cell is None:
        cell = Cell.for_users(len(user_index))
    else:
        cell.reset()

    for cursor, is_committed in ((committed, True), (not_committed, False)):
        for record in cursor.take(column):
            cell.add_hours(record.worked_hours, committed=is_committed)
            position = user_index.get(record.user_id)
            if position is not None:
                cell.user_data[position].add_hours(record.worked_hours, committed=is_committed)
    return cell
