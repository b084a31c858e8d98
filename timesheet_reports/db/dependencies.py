"""Database session dependency for report endpoints."""

from collections.abc import Iterator

from sqlalchemy.orm import Session

from timesheet_reports.db.session import SessionLocal


def get_db_session() -> Iterator[Session]:
    """Yield a session per request.

    Report compilation only reads; anything left uncommitted when the
    request ends is rolled back.
    """

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
