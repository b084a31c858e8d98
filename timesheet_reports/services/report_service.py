"""Report compilation service layer."""

from __future__ import annotations

import dataclasses
import logging
from datetime import date
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from timesheet_reports.core.auth import RequestUserContext
from timesheet_reports.core.config import get_settings
from timesheet_reports.models.entities import User
from timesheet_reports.reports.calculators import Cell, HourAccumulator, Row, Section
from timesheet_reports.reports.compiler import Report, ReportCompiler
from timesheet_reports.reports.errors import ReportError
from timesheet_reports.reports.options import ReportOptions, Viewer
from timesheet_reports.repositories.timesheet_repository import TimesheetRepository

logger = logging.getLogger(__name__)


def _decimal(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _hours(accumulator: HourAccumulator) -> dict[str, str]:
    return {
        "committed": str(accumulator.committed),
        "not_committed": str(accumulator.not_committed),
        "total": str(accumulator.total),
    }


def _cell(cell: Cell) -> dict[str, object]:
    return {**_hours(cell), "users": [_hours(user_hours) for user_hours in cell.user_data]}


class ReportService:
    """Resolve viewer permissions, compile and serialize reports."""

    def __init__(self, db: Session, *, today: date | None = None) -> None:
        self.db = db
        self.repo = TimesheetRepository(db)
        self.settings = get_settings()
        self.today = today

    # ---------- Access / scope ----------
    def _viewer(self, context: RequestUserContext) -> tuple[User, Viewer]:
        user = self.repo.get_user(context.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user.")
        viewer = Viewer(
            user_id=user.id,
            restricted=user.restricted,
            permitted_task_loader=lambda: self.repo.list_permitted_tasks(user),
        )
        return user, viewer

    def _scoped_options(self, options: ReportOptions, user: User, viewer: Viewer) -> ReportOptions:
        """Validate requested ids and narrow them for restricted users."""

        if options.task_ids:
            found = {task.id for task in self.repo.list_tasks(options.task_ids)}
            missing = [str(task_id) for task_id in options.task_ids if task_id not in found]
            if missing:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Unknown task ids: {', '.join(missing)}.",
                )
            if viewer.restricted:
                permitted = {task.id for task in self.repo.list_permitted_tasks(user)}
                if any(task_id not in permitted for task_id in options.task_ids):
                    raise HTTPException(
                        status_code=status.HTTP_403_FORBIDDEN,
                        detail="Report includes tasks outside the user's permitted set.",
                    )

        user_ids = tuple(options.user_ids)
        if user_ids:
            found_users = {row.id for row in self.repo.list_users(user_ids)}
            missing_users = [str(user_id) for user_id in user_ids if user_id not in found_users]
            if missing_users:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Unknown user ids: {', '.join(missing_users)}.",
                )
            if viewer.restricted:
                user_ids = (viewer.user_id,)

        return dataclasses.replace(options, user_ids=user_ids)

    # ---------- Compilation ----------
    def build_options(self, **fields: object) -> ReportOptions:
        try:
            return ReportOptions(**fields)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    def compile_report(self, *, context: RequestUserContext, options: ReportOptions) -> Report:
        user, viewer = self._viewer(context)
        scoped = self._scoped_options(options, user, viewer)
        compiler = ReportCompiler(self.repo, self.settings, today=self.today)
        try:
            return compiler.compile(scoped, viewer)
        except ReportError as exc:
            logger.exception("Report compilation failed for user %s.", user.id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Report compilation failed: {exc.message}",
            ) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    # ---------- Serialization ----------
    @staticmethod
    def serialize_row(row: Row) -> dict[str, object]:
        task = row.task
        return {
            "task_id": str(task.id) if task is not None else None,
            "task_code": task.code if task is not None else None,
            "task_title": task.title if task is not None else None,
            "billable": task.billable if task is not None else None,
            "active": task.active if task is not None else None,
            "section_index": row.section_index,
            "group_title": row.group_title,
            "starts_section": row.starts_section,
            "starts_group": row.starts_group,
            **_hours(row),
            "cells": [_cell(cell) for cell in row.cells],
            "user_totals": [_hours(user_total) for user_total in row.user_totals],
        }

    @staticmethod
    def serialize_section(section: Section) -> dict[str, object]:
        return {
            "index": section.index,
            "title": section.title,
            "customer_id": str(section.customer.id) if section.customer is not None else None,
            "project_id": str(section.project.id) if section.project is not None else None,
            **_hours(section),
            "cells": [_cell(cell) for cell in section.cells],
            "user_totals": [_hours(user_total) for user_total in section.user_totals],
            "task_ids": [str(row.task.id) for row in section.rows if row.task is not None],
        }

    @staticmethod
    def serialize_report(report: Report) -> dict[str, object]:
        options = report.options
        columns = [
            {
                "index": index,
                "first": column.first.isoformat(),
                "last": column.last.isoformat(),
                "heading": report.column_heading(index),
                "partial": report.is_partial_column(index),
                **_cell(report.column_totals[index]),
            }
            for index, column in enumerate(report.column_ranges)
        ]
        return {
            "title": options.title,
            "frequency": options.frequency.value,
            "label": report.label,
            "column_title": report.column_title,
            "state": report.state.value,
            "range": (
                {
                    "first": report.range.first.isoformat(),
                    "last": report.range.last.isoformat(),
                    "display": report.display_range,
                }
                if report.range is not None
                else None
            ),
            "throttled": report.throttled.isoformat() if report.throttled is not None else None,
            "users": [str(user_id) for user_id in report.users],
            "columns": columns,
            "rows": [ReportService.serialize_row(row) for row in report.rows],
            "sections": [ReportService.serialize_section(section) for section in report.sections],
            "user_column_totals": [_hours(user_total) for user_total in report.user_column_totals],
            "totals": {
                **_hours(report),
                "duration": _decimal(report.total_duration),
                "actual_remaining": _decimal(report.total_actual_remaining),
                "potential_remaining": _decimal(report.total_potential_remaining),
            },
            "issues": [issue.as_dict() for issue in report.issues],
        }
