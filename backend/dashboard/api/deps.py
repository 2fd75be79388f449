from __future__ import annotations

import datetime as dt

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session, sessionmaker

from dashboard.core.config import settings
from dashboard.core.security import InvalidTokenError, decode_access_token
from dashboard.db.session import SessionLocal, get_db
from dashboard.models.user import User
from dashboard.services.activity_log import ActivityRecorder
from dashboard.services.archive_store import ArchiveStore
from dashboard.services.backup_export import SnapshotExporter
from dashboard.services.backup_records import BackupRecordManager
from dashboard.services.backups import BackupService
from dashboard.services.snapshot import default_export_tables


def _user_from_cookie(request: Request, db: Session) -> User | None:
    token = request.cookies.get(settings.jwt_cookie_name)
    if not token:
        return None
    try:
        payload = decode_access_token(token)
        user_id = int(payload.sub)
    except (InvalidTokenError, ValueError):
        return None
    user = db.get(User, user_id)
    if not user or not user.is_active:
        return None
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    if not request.cookies.get(settings.jwt_cookie_name):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user = _user_from_cookie(request, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return user


def require_auth(user: User = Depends(get_current_user)) -> User:
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    """
    Best-effort auth: returns User if the cookie is present & valid, otherwise None.
    Useful for endpoints like logout that must stay idempotent.
    """
    return _user_from_cookie(request, db)


# Backup collaborators. Routes depend on these so tests can swap them via app.dependency_overrides.


def get_session_factory() -> sessionmaker[Session]:
    return SessionLocal


def get_backup_records(session_factory: sessionmaker[Session] = Depends(get_session_factory)) -> BackupRecordManager:
    return BackupRecordManager(session_factory)


def get_archive_store() -> ArchiveStore:
    return ArchiveStore(settings.backup_dir)


def get_activity_recorder(session_factory: sessionmaker[Session] = Depends(get_session_factory)) -> ActivityRecorder:
    return ActivityRecorder(session_factory)


def get_backup_exporter(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    records: BackupRecordManager = Depends(get_backup_records),
    store: ArchiveStore = Depends(get_archive_store),
    activity: ActivityRecorder = Depends(get_activity_recorder),
) -> SnapshotExporter:
    return SnapshotExporter(
        session_factory=session_factory,
        records=records,
        store=store,
        tables=default_export_tables(
            activity_log_limit=settings.backup_activity_log_limit,
            email_log_limit=settings.backup_email_log_limit,
        ),
        activity=activity,
        max_workers=settings.backup_export_workers,
        file_prefix=settings.backup_file_prefix,
    )


def get_backup_service(
    records: BackupRecordManager = Depends(get_backup_records),
    store: ArchiveStore = Depends(get_archive_store),
    activity: ActivityRecorder = Depends(get_activity_recorder),
) -> BackupService:
    return BackupService(records=records, store=store, activity=activity)


def get_stale_backup_threshold() -> dt.timedelta:
    return dt.timedelta(minutes=settings.backup_stale_after_minutes)
