"""Date ranges, reporting frequencies and column partitioning."""

from __future__ import annotations

import calendar
import enum
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, timedelta

from timesheet_reports.core.config import Settings

ONE_DAY = timedelta(days=1)


class Frequency(str, enum.Enum):
    TOTALS_ONLY = "totals_only"
    TAX_YEAR = "tax_year"
    CALENDAR_YEAR = "calendar_year"
    QUARTER = "quarter"
    MONTH = "month"
    WEEK = "week"
    DAILY = "daily"


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive range of calendar dates."""

    first: date
    last: date

    def __post_init__(self) -> None:
        if self.last < self.first:
            raise ValueError("DateRange last must be greater than or equal to first.")

    def __contains__(self, value: object) -> bool:
        return isinstance(value, date) and self.first <= value <= self.last

    def __iter__(self) -> Iterator[date]:
        current = self.first
        while current <= self.last:
            yield current
            current += ONE_DAY

    @property
    def day_count(self) -> int:
        return (self.last - self.first).days + 1


def _last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


@dataclass(frozen=True, slots=True)
class PeriodCalendar:
    """Pinned calendar conventions used to quantize report columns."""

    week_start_day: int = 0
    tax_year_start_month: int = 4
    tax_year_start_day: int = 6

    @classmethod
    def from_settings(cls, settings: Settings) -> PeriodCalendar:
        return cls(
            week_start_day=settings.report_week_start_day,
            tax_year_start_month=settings.report_tax_year_start_month,
            tax_year_start_day=settings.report_tax_year_start_day,
        )

    def start_of_tax_year(self, value: date) -> date:
        start = date(value.year, self.tax_year_start_month, self.tax_year_start_day)
        if value < start:
            return date(value.year - 1, self.tax_year_start_month, self.tax_year_start_day)
        return start

    def end_of_tax_year(self, value: date) -> date:
        start = self.start_of_tax_year(value)
        return date(start.year + 1, self.tax_year_start_month, self.tax_year_start_day) - ONE_DAY

    def start_of_week(self, value: date) -> date:
        return value - timedelta(days=(value.weekday() - self.week_start_day) % 7)

    def end_of_week(self, value: date) -> date:
        return self.start_of_week(value) + timedelta(days=6)

    def start_of_period(self, frequency: Frequency, value: date) -> date:
        if frequency is Frequency.TAX_YEAR:
            return self.start_of_tax_year(value)
        if frequency is Frequency.CALENDAR_YEAR:
            return date(value.year, 1, 1)
        if frequency is Frequency.QUARTER:
            return date(value.year, ((value.month - 1) // 3) * 3 + 1, 1)
        if frequency is Frequency.MONTH:
            return date(value.year, value.month, 1)
        if frequency is Frequency.WEEK:
            return self.start_of_week(value)
        if frequency is Frequency.DAILY:
            return value
        raise ValueError(f"Frequency {frequency.value} has no period boundaries.")

    def end_of_period(self, frequency: Frequency, value: date) -> date:
        if frequency is Frequency.TAX_YEAR:
            return self.end_of_tax_year(value)
        if frequency is Frequency.CALENDAR_YEAR:
            return date(value.year, 12, 31)
        if frequency is Frequency.QUARTER:
            return _last_day_of_month(value.year, ((value.month - 1) // 3) * 3 + 3)
        if frequency is Frequency.MONTH:
            return _last_day_of_month(value.year, value.month)
        if frequency is Frequency.WEEK:
            return self.end_of_week(value)
        if frequency is Frequency.DAILY:
            return value
        raise ValueError(f"Frequency {frequency.value} has no period boundaries.")


def partition(
    overall: DateRange,
    frequency: Frequency,
    period_calendar: PeriodCalendar | None = None,
) -> Iterator[DateRange]:
    """Yield the column ranges covering ``overall`` in ascending order.

    The first and last columns are cut to the overall range, so they may
    cover only part of a period. Each call returns a fresh generator.
    """

    if frequency is Frequency.TOTALS_ONLY:
        yield overall
        return

    period_calendar = period_calendar or PeriodCalendar()
    current_start = overall.first
    while current_start <= overall.last:
        period_end = min(period_calendar.end_of_period(frequency, current_start), overall.last)
        yield DateRange(current_start, period_end)
        current_start = period_end + ONE_DAY


def is_partial_period(
    column: DateRange,
    frequency: Frequency,
    period_calendar: PeriodCalendar | None = None,
) -> bool:
    """Whether ``column`` was cut short of its quantized period boundaries."""

    if frequency is Frequency.TOTALS_ONLY:
        return False
    period_calendar = period_calendar or PeriodCalendar()
    return (
        period_calendar.start_of_period(frequency, column.first) != column.first
        or period_calendar.end_of_period(frequency, column.last) != column.last
    )


def clamp_range(overall: DateRange, max_days: int) -> DateRange:
    """Keep only the last ``max_days`` days of ``overall``."""

    if overall.day_count <= max_days:
        return overall
    return DateRange(overall.last - timedelta(days=max_days - 1), overall.last)
