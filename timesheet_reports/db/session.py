"""Engine and session factory bound to configured database URL."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from timesheet_reports.core.config import get_settings

settings = get_settings()

engine = create_engine(settings.database_url, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
