"""Read-side queries feeding the report compiler."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from timesheet_reports.models.entities import Project, Task, Timesheet, TimesheetRow, User, WorkPacket, task_users
from timesheet_reports.reports.periods import DateRange
from timesheet_reports.reports.scanner import WorkRecord


class TimesheetRepository:
    """Persistence reads used by report compilation."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users ----------
    def get_user(self, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))

    def list_users(self, user_ids: Sequence[UUID]) -> list[User]:
        if not user_ids:
            return []
        return self.db.scalars(select(User).where(User.id.in_(user_ids))).all()

    # ---------- Tasks ----------
    def _task_query(self):
        return select(Task).options(selectinload(Task.project).selectinload(Project.customer))

    def list_tasks(self, task_ids: Sequence[UUID]) -> list[Task]:
        if not task_ids:
            return []
        return self.db.scalars(self._task_query().where(Task.id.in_(task_ids))).all()

    def list_permitted_tasks(self, user: User) -> list[Task]:
        """Active tasks the user may report on; restricted users see only their own."""

        query = self._task_query().where(Task.active.is_(True))
        if user.restricted:
            query = query.join(task_users, task_users.c.task_id == Task.id).where(task_users.c.user_id == user.id)
        return self.db.scalars(query.order_by(Task.title.asc())).all()

    # ---------- Work records ----------
    def _packets_for_task(self, task_id: UUID):
        return (
            select(WorkPacket.date, WorkPacket.worked_hours, Timesheet.user_id)
            .join(TimesheetRow, TimesheetRow.id == WorkPacket.timesheet_row_id)
            .join(Timesheet, Timesheet.id == TimesheetRow.timesheet_id)
            .where(TimesheetRow.task_id == task_id, WorkPacket.worked_hours > 0)
        )

    def _work_records(
        self,
        task_id: UUID,
        *,
        committed: bool,
        date_range: DateRange,
        user_ids: Sequence[UUID],
    ) -> list[WorkRecord]:
        query = self._packets_for_task(task_id).where(
            Timesheet.committed.is_(committed),
            WorkPacket.date >= date_range.first,
            WorkPacket.date <= date_range.last,
        )
        if user_ids:
            query = query.where(Timesheet.user_id.in_(user_ids))
        rows = self.db.execute(query.order_by(WorkPacket.date.desc())).all()
        return [
            WorkRecord(
                task_id=task_id,
                user_id=row.user_id,
                date=row.date,
                worked_hours=row.worked_hours,
                committed=committed,
            )
            for row in rows
        ]

    def committed_records(
        self, task_id: UUID, *, date_range: DateRange, user_ids: Sequence[UUID]
    ) -> list[WorkRecord]:
        return self._work_records(task_id, committed=True, date_range=date_range, user_ids=user_ids)

    def not_committed_records(
        self, task_id: UUID, *, date_range: DateRange, user_ids: Sequence[UUID]
    ) -> list[WorkRecord]:
        return self._work_records(task_id, committed=False, date_range=date_range, user_ids=user_ids)

    def record_date_bounds(self, task_ids: Sequence[UUID]) -> tuple[date | None, date | None]:
        if not task_ids:
            return None, None
        earliest, latest = self.db.execute(
            select(func.min(WorkPacket.date), func.max(WorkPacket.date))
            .join(TimesheetRow, TimesheetRow.id == WorkPacket.timesheet_row_id)
            .where(TimesheetRow.task_id.in_(task_ids), WorkPacket.worked_hours > 0)
        ).one()
        return earliest, latest
