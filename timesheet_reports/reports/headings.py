"""Human-readable labels for report frequencies and column ranges."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from timesheet_reports.reports.periods import DateRange, Frequency, PeriodCalendar

# Pinned rather than taken from strftime("%b"), which follows the locale.
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

FREQUENCY_LABELS: dict[Frequency, str] = {
    Frequency.TOTALS_ONLY: "Totals only",
    Frequency.TAX_YEAR: "UK tax year",
    Frequency.CALENDAR_YEAR: "Calendar year",
    Frequency.QUARTER: "Calendar quarter",
    Frequency.MONTH: "Monthly",
    Frequency.WEEK: "Weekly",
    Frequency.DAILY: "Daily",
}

COLUMN_TITLES: dict[Frequency, str] = {
    Frequency.TOTALS_ONLY: "",
    Frequency.TAX_YEAR: "UK tax year:",
    Frequency.CALENDAR_YEAR: "Year:",
    Frequency.QUARTER: "Quarter starting:",
    Frequency.MONTH: "Month:",
    Frequency.WEEK: "Week starting:",
    Frequency.DAILY: "Date:",
}


def format_day(value: date) -> str:
    """Format as DD-Mth-YYYY."""

    return f"{value.day:02d}-{MONTH_ABBREVIATIONS[value.month - 1]}-{value.year}"


def heading_total(column: DateRange, period_calendar: PeriodCalendar) -> str:
    return f"{format_day(column.first)} to {format_day(column.last)}"


def heading_tax_year(column: DateRange, period_calendar: PeriodCalendar) -> str:
    year = period_calendar.start_of_tax_year(column.first).year
    return f"{year} / {year + 1}"


def heading_calendar_year(column: DateRange, period_calendar: PeriodCalendar) -> str:
    return str(column.first.year)


def heading_quarter(column: DateRange, period_calendar: PeriodCalendar) -> str:
    quarter = (column.first.month - 1) // 3 + 1
    return f"Q{quarter} {column.first.year}"


def heading_month(column: DateRange, period_calendar: PeriodCalendar) -> str:
    return f"{MONTH_ABBREVIATIONS[column.first.month - 1]} {column.first.year}"


def heading_week(column: DateRange, period_calendar: PeriodCalendar) -> str:
    return f"{format_day(column.first)} ({column.first.isocalendar()[1]})"


def heading_daily(column: DateRange, period_calendar: PeriodCalendar) -> str:
    return format_day(column.first)


HEADINGS: dict[Frequency, Callable[[DateRange, PeriodCalendar], str]] = {
    Frequency.TOTALS_ONLY: heading_total,
    Frequency.TAX_YEAR: heading_tax_year,
    Frequency.CALENDAR_YEAR: heading_calendar_year,
    Frequency.QUARTER: heading_quarter,
    Frequency.MONTH: heading_month,
    Frequency.WEEK: heading_week,
    Frequency.DAILY: heading_daily,
}


def column_heading(
    frequency: Frequency,
    column: DateRange,
    period_calendar: PeriodCalendar | None = None,
) -> str:
    return HEADINGS[frequency](column, period_calendar or PeriodCalendar())
