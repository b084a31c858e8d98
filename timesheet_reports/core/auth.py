"""Authentication context extraction for report requests."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from timesheet_reports.core.config import get_settings
from timesheet_reports.db.dependencies import get_db_session
from timesheet_reports.models.entities import User


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    email: str
    display_name: str
    restricted: bool


def _resolve_email(x_user_email: str | None) -> str:
    if x_user_email and x_user_email.strip():
        return x_user_email.strip().lower()

    settings = get_settings()
    if settings.auth_allow_dev_principal:
        return settings.auth_dev_email.strip().lower()

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing identity header. Expected X-User-Email or enable development principal fallback.",
    )


def _find_user(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(func.lower(User.email) == email))


def ensure_user_principal(
    db: Session,
    *,
    email: str,
    display_name: str,
    restricted: bool = False,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_email = email.strip().lower()
    user = _find_user(db, normalized_email)
    if user is None:
        user = User(
            email=normalized_email,
            display_name=display_name.strip() or normalized_email,
            restricted=restricted,
            active=True,
        )
        db.add(user)
    else:
        user.restricted = restricted
    db.commit()
    db.refresh(user)
    return user


def get_current_user_context(
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user.

    Users are provisioned elsewhere; only the development principal is
    created on first use.
    """

    settings = get_settings()
    email = _resolve_email(x_user_email)
    user = _find_user(db, email)

    if user is None and not x_user_email and settings.auth_allow_dev_principal:
        user = ensure_user_principal(db, email=email, display_name=settings.auth_dev_display_name)

    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user.")
    if not user.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive.")

    return RequestUserContext(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        restricted=user.restricted,
    )
