from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from tests.conftest import auth_headers
from timesheet_reports.core.auth import ensure_user_principal
from timesheet_reports.models.entities import Customer, Project, Task, Timesheet, TimesheetRow, User, WorkPacket
from timesheet_reports.repositories.timesheet_repository import TimesheetRepository
from timesheet_reports.reports.periods import DateRange

MANAGER_EMAIL = "manager@test.local"
WORKER_EMAIL = "worker@test.local"


def _book(
    db: Session,
    *,
    user: User,
    task: Task,
    week: int,
    committed: bool,
    hours: dict[date, str],
) -> None:
    timesheet = db.scalar(
        select(Timesheet).where(Timesheet.user_id == user.id, Timesheet.year == 2020, Timesheet.week_number == week)
    )
    if timesheet is None:
        timesheet = Timesheet(user_id=user.id, year=2020, week_number=week, committed=committed)
        db.add(timesheet)
        db.flush()
    row = TimesheetRow(timesheet_id=timesheet.id, task_id=task.id)
    db.add(row)
    db.flush()
    for day, value in hours.items():
        db.add(WorkPacket(timesheet_row_id=row.id, date=day, worked_hours=Decimal(value)))
    db.commit()


def _seed(db: Session) -> dict[str, object]:
    manager = ensure_user_principal(db, email=MANAGER_EMAIL, display_name="Manager")
    worker = ensure_user_principal(db, email=WORKER_EMAIL, display_name="Worker", restricted=True)

    acme = Customer(title="Acme")
    website = Project(title="Website", customer=acme)
    internal = Project(title="Internal")
    build = Task(title="Build", project=website, duration=Decimal("10"), billable=True, active=True)
    design = Task(title="Design", project=website, duration=Decimal("0"), billable=True, active=True)
    admin = Task(title="Admin", project=internal, duration=Decimal("0"), billable=False, active=True)
    build.users.append(worker)
    db.add_all([acme, website, internal, build, design, admin])
    db.commit()

    _book(db, user=worker, task=build, week=2, committed=True, hours={date(2020, 1, 6): "4", date(2020, 1, 7): "2"})
    _book(db, user=worker, task=design, week=2, committed=True, hours={date(2020, 1, 8): "1"})
    _book(db, user=manager, task=admin, week=3, committed=False, hours={date(2020, 1, 15): "3"})
    _book(db, user=manager, task=build, week=3, committed=False, hours={date(2020, 1, 16): "1"})

    return {"manager": manager, "worker": worker, "build": build, "design": design, "admin": admin}


def _hours(payload: dict[str, object], key: str = "total") -> Decimal:
    return Decimal(payload[key])


def test_manager_report_groups_rows_into_sections(client: TestClient, db_session: Session) -> None:
    seeded = _seed(db_session)

    response = client.post(
        "/api/v1/reports/compile",
        headers=auth_headers(MANAGER_EMAIL),
        json={
            "task_ids": [str(seeded["build"].id), str(seeded["design"].id), str(seeded["admin"].id)],
            "user_ids": [str(seeded["manager"].id), str(seeded["worker"].id)],
            "frequency": "month",
            "range_start": "2020-01-01",
            "range_end": "2020-01-31",
            "title": "January",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "January"
    assert body["state"] == "calculated"
    assert body["label"] == "Monthly"
    assert [column["heading"] for column in body["columns"]] == ["Jan 2020"]
    assert body["columns"][0]["partial"] is False
    assert [row["task_title"] for row in body["rows"]] == ["Build", "Design", "Admin"]
    assert [section["title"] for section in body["sections"]] == [
        "Customer Acme - Website",
        "(No customer) Internal",
    ]
    assert [row["section_index"] for row in body["rows"]] == [0, 0, 1]

    totals = body["totals"]
    assert _hours(totals, "committed") == Decimal("7")
    assert _hours(totals, "not_committed") == Decimal("4")
    assert Decimal(totals["duration"]) == Decimal("10")
    assert Decimal(totals["actual_remaining"]) == Decimal("4")
    assert Decimal(totals["potential_remaining"]) == Decimal("3")

    assert body["users"] == [str(seeded["manager"].id), str(seeded["worker"].id)]
    assert [_hours(user_total) for user_total in body["user_column_totals"]] == [Decimal("4"), Decimal("7")]
    assert body["issues"] == []


def test_restricted_user_sees_own_tasks_and_hours(client: TestClient, db_session: Session) -> None:
    seeded = _seed(db_session)

    response = client.post(
        "/api/v1/reports/compile",
        headers=auth_headers(WORKER_EMAIL),
        json={"user_ids": [str(seeded["manager"].id)]},
    )

    assert response.status_code == 200
    body = response.json()
    assert [row["task_title"] for row in body["rows"]] == ["Build"]
    assert body["users"] == [str(seeded["worker"].id)]
    assert _hours(body["totals"]) == Decimal("6")
    assert body["range"]["first"] == "2020-01-06"
    assert body["range"]["last"] == "2020-01-16"


def test_restricted_user_cannot_request_other_tasks(client: TestClient, db_session: Session) -> None:
    seeded = _seed(db_session)

    response = client.post(
        "/api/v1/reports/compile",
        headers=auth_headers(WORKER_EMAIL),
        json={"task_ids": [str(seeded["design"].id)]},
    )

    assert response.status_code == 403


def test_unknown_task_is_rejected(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post(
        "/api/v1/reports/compile",
        headers=auth_headers(MANAGER_EMAIL),
        json={"task_ids": [str(uuid.uuid4())]},
    )

    assert response.status_code == 422


def test_unknown_user_is_unauthorized(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post("/api/v1/reports/compile", headers=auth_headers("nobody@test.local"), json={})

    assert response.status_code == 401


def test_invalid_frequency_is_rejected(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post(
        "/api/v1/reports/compile",
        headers=auth_headers(MANAGER_EMAIL),
        json={"frequency": "fortnightly"},
    )

    assert response.status_code == 422


def test_bad_range_input_is_reported_not_raised(client: TestClient, db_session: Session) -> None:
    seeded = _seed(db_session)

    response = client.post(
        "/api/v1/reports/compile",
        headers=auth_headers(MANAGER_EMAIL),
        json={
            "task_ids": [str(seeded["admin"].id)],
            "range_start": "31/01/2020",
            "task_sort_field": "rank",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["range"]["first"] == "2020-01-15"
    assert sorted(issue["field"] for issue in body["issues"]) == ["range_start", "task_sort_field"]
    assert all(issue["kind"] == "input_defaulted" for issue in body["issues"])


def test_dev_principal_sees_all_active_tasks(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post("/api/v1/reports/compile", json={"task_filter": "billable"})

    assert response.status_code == 200
    body = response.json()
    assert [row["task_title"] for row in body["rows"]] == ["Build", "Design"]
    assert _hours(body["totals"]) == Decimal("8")


def test_empty_report_has_no_columns(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post(
        "/api/v1/reports/compile",
        headers=auth_headers(WORKER_EMAIL),
        json={"task_filter": "non_billable"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "filtered"
    assert body["rows"] == []
    assert body["columns"] == []
    assert body["range"] is None
    assert body["totals"]["duration"] is None


def test_repository_returns_records_newest_first(db_session: Session) -> None:
    seeded = _seed(db_session)
    repo = TimesheetRepository(db_session)
    january = DateRange(date(2020, 1, 1), date(2020, 1, 31))

    committed = repo.committed_records(seeded["build"].id, date_range=january, user_ids=())
    not_committed = repo.not_committed_records(seeded["build"].id, date_range=january, user_ids=())

    assert [record.date for record in committed] == [date(2020, 1, 7), date(2020, 1, 6)]
    assert all(record.committed for record in committed)
    assert [record.user_id for record in not_committed] == [seeded["manager"].id]
    assert repo.record_date_bounds([seeded["build"].id]) == (date(2020, 1, 6), date(2020, 1, 16))
    assert repo.record_date_bounds([]) == (None, None)
