"""Resolve the alternative report range inputs into one date range."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from timesheet_reports.reports.errors import ReportError
from timesheet_reports.reports.options import RELATIVE_DISTANCES, ReportOptions
from timesheet_reports.reports.periods import DateRange, Frequency, PeriodCalendar, clamp_range

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RangeResolution:
    range: DateRange
    throttled: date | None = None
    issues: list[ReportError] = field(default_factory=list)


def unpack_year_and_number(value: str) -> tuple[int, int]:
    """Split "2008_12" into (2008, 12)."""

    parts = value.split("_")
    if len(parts) != 2:
        raise ValueError(f"Expected YEAR_NUMBER, got {value!r}.")
    return int(parts[0]), int(parts[1])


def _relative_distance(value: str) -> int:
    # Anything other than a known word means the current period.
    return RELATIVE_DISTANCES.get(value.strip().lower(), 0)


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    first = date(year, month, 1)
    following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return first, following - timedelta(days=1)


def _relative_month_bounds(today: date, value: str) -> tuple[date, date]:
    months = today.year * 12 + today.month - 1 - _relative_distance(value)
    return _month_bounds(months // 12, months % 12 + 1)


def _week_bounds(period_calendar: PeriodCalendar, value: date) -> tuple[date, date]:
    start = period_calendar.start_of_week(value)
    return start, period_calendar.end_of_week(start)


def _numbered_week_bounds(period_calendar: PeriodCalendar, value: str) -> tuple[date, date]:
    year, week = unpack_year_and_number(value)
    return _week_bounds(period_calendar, date.fromisocalendar(year, week, 1))


def _as_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def _resolve_bound(
    options: ReportOptions,
    *,
    end: bool,
    today: date,
    period_calendar: PeriodCalendar,
) -> date | None:
    """Return the requested start or end bound, or None if not given.

    Precedence: relative month, numbered month, relative week, numbered
    week, then an absolute date. Raises ValueError for unusable input.
    """

    pick = 1 if end else 0
    numbered_month = options.range_month_end if end else options.range_month_start
    numbered_week = options.range_week_end if end else options.range_week_start
    absolute = options.range_end if end else options.range_start

    if options.range_one_month:
        return _relative_month_bounds(today, options.range_one_month)[pick]
    if numbered_month:
        return _month_bounds(*unpack_year_and_number(numbered_month))[pick]
    if options.range_one_week:
        week_day = today - timedelta(weeks=_relative_distance(options.range_one_week))
        return _week_bounds(period_calendar, week_day)[pick]
    if numbered_week:
        return _numbered_week_bounds(period_calendar, numbered_week)[pick]
    if absolute:
        return _as_date(absolute)
    return None


def rationalise_range(
    options: ReportOptions,
    default: DateRange,
    *,
    today: date,
    daily_max_days: int,
    period_calendar: PeriodCalendar | None = None,
) -> RangeResolution:
    """Resolve the report range, falling back to ``default`` per bound."""

    period_calendar = period_calendar or PeriodCalendar()
    issues: list[ReportError] = []
    bounds: list[date] = []

    for end, fallback in ((False, default.first), (True, default.last)):
        try:
            bound = _resolve_bound(options, end=end, today=today, period_calendar=period_calendar)
        except (TypeError, ValueError) as exc:
            name = "end" if end else "start"
            issue = ReportError.input_defaulted(f"Unusable report range {name}: {exc}", field=f"range_{name}")
            logger.warning(issue.message)
            issues.append(issue)
            bound = None
        bounds.append(fallback if bound is None else bound)

    first, last = bounds
    if last < first:
        first, last = last, first
    resolved = DateRange(first, last)

    throttled = None
    if options.frequency is Frequency.DAILY:
        clamped = clamp_range(resolved, daily_max_days)
        if clamped != resolved:
            logger.info(
                "Daily report range %s..%s clamped to %s..%s.",
                resolved.first,
                resolved.last,
                clamped.first,
                clamped.last,
            )
            throttled = resolved.first
            resolved = clamped

    return RangeResolution(range=resolved, throttled=throttled, issues=issues)
