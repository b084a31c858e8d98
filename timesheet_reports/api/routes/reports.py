"""Timesheet report compilation endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timesheet_reports.core.auth import RequestUserContext, get_current_user_context
from timesheet_reports.db.dependencies import get_db_session
from timesheet_reports.reports.options import DEFAULT_SORT_FIELD, TaskFilter, TaskGrouping
from timesheet_reports.reports.periods import Frequency
from timesheet_reports.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportRequestPayload(BaseModel):
    task_ids: list[UUID] = Field(default_factory=list)
    user_ids: list[UUID] = Field(default_factory=list)
    frequency: Frequency = Frequency.TOTALS_ONLY
    task_filter: TaskFilter = TaskFilter.ALL
    task_grouping: TaskGrouping = TaskGrouping.DEFAULT
    # Unsupported sort fields fall back to title and are reported as issues.
    customer_sort_field: str = Field(default=DEFAULT_SORT_FIELD, max_length=64)
    project_sort_field: str = Field(default=DEFAULT_SORT_FIELD, max_length=64)
    task_sort_field: str = Field(default=DEFAULT_SORT_FIELD, max_length=64)

    # Free-form so unusable values fall back to the default range.
    range_start: str | None = Field(default=None, max_length=32)
    range_end: str | None = Field(default=None, max_length=32)
    range_week_start: str | None = Field(default=None, max_length=16)
    range_week_end: str | None = Field(default=None, max_length=16)
    range_month_start: str | None = Field(default=None, max_length=16)
    range_month_end: str | None = Field(default=None, max_length=16)
    range_one_week: str | None = Field(default=None, max_length=16)
    range_one_month: str | None = Field(default=None, max_length=16)

    include_totals: bool = True
    include_committed: bool = False
    include_not_committed: bool = False
    exclude_zero_rows: bool = False
    exclude_zero_cols: bool = False
    title: str | None = Field(default=None, max_length=255)


def _service(db: Session) -> ReportService:
    return ReportService(db)


@router.post("/compile")
def compile_report(
    payload: ReportRequestPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    options = service.build_options(**payload.model_dump())
    report = service.compile_report(context=context, options=options)
    return service.serialize_report(report)
