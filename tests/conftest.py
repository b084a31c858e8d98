from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timesheet_reports.db.base import Base
from timesheet_reports.db.dependencies import get_db_session
import timesheet_reports.models.entities  # noqa: F401
from timesheet_reports.main import create_app
from timesheet_reports.models.entities import (
    Customer,
    Project,
    Task,
    Timesheet,
    TimesheetRow,
    User,
    WorkPacket,
    task_users,
)

TEST_TABLES = [
    Customer.__table__,
    Project.__table__,
    Task.__table__,
    User.__table__,
    task_users,
    Timesheet.__table__,
    TimesheetRow.__table__,
    WorkPacket.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(email: str = "manager@test.local") -> dict[str, str]:
    return {"X-User-Email": email}
