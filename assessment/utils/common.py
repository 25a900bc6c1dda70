"""
Common utility functions used across services and routes.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assessment.errors import NotFoundError, PersistenceError
from assessment.models import Enrollment


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_format(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO string with Z suffix."""
    if dt is None:
        return None
    return dt.isoformat() + "Z"


def new_id() -> str:
    return str(uuid4())


def display_name(user) -> str:
    """Full name if set, else preferences name, else the email prefix."""
    if getattr(user, "full_name", None) and user.full_name.strip():
        return user.full_name.strip()
    prefs = getattr(user, "preferences", None) or {}
    name = prefs.get("name") if isinstance(prefs, dict) else None
    if isinstance(name, str) and name.strip():
        return name.strip()
    return user.email.split("@", 1)[0]


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Commit on success, roll back on any error. Storage failures surface as
    PersistenceError so callers can retry idempotent operations.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError("Storage operation failed", cause=type(e).__name__) from e
    except Exception:
        db.rollback()
        raise


def get_enrollment(user_id: int, course_id: str, db: Session):
    """Enrollment of user in course, or NotFoundError."""
    enrollment = (
        db.query(Enrollment)
        .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
        .first()
    )
    if enrollment is None:
        raise NotFoundError("Enrollment not found", code="ENROLLMENT_NOT_FOUND", course_id=course_id)
    return enrollment
