"""Activity logging for operational visibility."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dashboard.models.activity_log import ActivityLog
from dashboard.models.user import User

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: int | str | None = None,
    user_id: int | None = None,
    description: str | None = None,
    details: dict | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ActivityLog | None:
    """
    Writes one activity entry for an existing user.
    Returns None (and writes nothing) when the user is unknown or the insert fails:
    the action being logged has already happened and must not be reported as failed.
    """
    if user_id is None:
        return None
    try:
        if db.get(User, user_id) is None:
            logger.warning("activity_log: unknown user_id=%s action=%s entity=%s", user_id, action, entity_type)
            return None
        entry = ActivityLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            user_id=user_id,
            description=description,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    except SQLAlchemyError:
        db.rollback()
        logger.exception("activity_log: failed to write action=%s entity=%s id=%s", action, entity_type, entity_id)
        return None


class ActivityRecorder:
    """`log_activity` bound to its own session, for services that do not hold a request session."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def __call__(self, **kwargs) -> ActivityLog | None:
        with self._session_factory() as db:
            return log_activity(db, **kwargs)
