"""
BackupRecord lifecycle: PENDING -> COMPLETED | FAILED, exactly once.

Every method runs in its own short session and commits one single-record
mutation, so a failed export can still persist its FAILED state even when the
session used for reading tables is unusable.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from dashboard.models.backup import BackupRecord
from dashboard.models.enums import BackupStatus

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


class BackupNotFoundError(LookupError):
    pass


class BackupStateError(RuntimeError):
    pass


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class BackupRecordManager:
    def __init__(self, session_factory: sessionmaker[Session], *, clock: Callable[[], dt.datetime] = utcnow) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def _load(self, db: Session, backup_id: str) -> BackupRecord:
        rec = db.get(BackupRecord, backup_id)
        if rec is None:
            raise BackupNotFoundError(backup_id)
        return rec

    def create(
        self,
        *,
        created_by: int,
        name: str,
        file_name: str,
        created_at: dt.datetime | None = None,
    ) -> BackupRecord:
        rec = BackupRecord(
            name=name,
            file_name=file_name,
            file_size=0,
            status=BackupStatus.PENDING,
            record_count=0,
            tables=[],
            created_by=created_by,
            created_at=created_at or self._clock(),
        )
        with self._session_factory() as db:
            db.add(rec)
            db.commit()
            db.refresh(rec)
        return rec

    def _finish(self, backup_id: str, **values) -> BackupRecord:
        # Single conditional UPDATE: the PENDING check and the write cannot be split by the stale sweep.
        stmt = (
            update(BackupRecord)
            .where(BackupRecord.id == backup_id, BackupRecord.status == BackupStatus.PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with self._session_factory() as db:
            updated = db.execute(stmt).rowcount
            if updated != 1:
                db.rollback()
                rec = self._load(db, backup_id)
                raise BackupStateError(f"Backup {backup_id} is already {rec.status.value}")
            db.commit()
            return self._load(db, backup_id)

    def mark_completed(
        self,
        backup_id: str,
        *,
        file_size: int,
        record_count: int,
        tables: Sequence[str],
    ) -> BackupRecord:
        return self._finish(
            backup_id,
            status=BackupStatus.COMPLETED,
            file_size=file_size,
            record_count=record_count,
            tables=list(tables),
            error=None,
        )

    def mark_failed(self, backup_id: str, *, error: str) -> BackupRecord:
        return self._finish(backup_id, status=BackupStatus.FAILED, error=(error or "").strip() or UNKNOWN_ERROR)

    def get(self, backup_id: str) -> BackupRecord:
        with self._session_factory() as db:
            return self._load(db, backup_id)

    def list(self, limit: int = 20) -> list[BackupRecord]:
        """Newest first."""
        if limit < 1:
            raise ValueError("limit must be >= 1")
        stmt = (
            select(BackupRecord)
            .order_by(BackupRecord.created_at.desc(), BackupRecord.id.desc())
            .limit(limit)
        )
        with self._session_factory() as db:
            return list(db.scalars(stmt).all())

    def delete(self, backup_id: str) -> None:
        with self._session_factory() as db:
            rec = self._load(db, backup_id)
            db.delete(rec)
            db.commit()

    def fail_stale_pending(self, *, older_than: dt.timedelta) -> int:
        """
        Moves PENDING records created before now - older_than to FAILED.
        An export abandoned mid-flight (process killed, request timeout) otherwise stays PENDING forever.
        """
        cutoff = self._clock() - older_than
        minutes = int(older_than.total_seconds() // 60)
        stmt = (
            update(BackupRecord)
            .where(BackupRecord.status == BackupStatus.PENDING, BackupRecord.created_at < cutoff)
            .values(
                status=BackupStatus.FAILED,
                error=f"Export abandoned: still pending after {minutes} minutes",
            )
            .execution_options(synchronize_session=False)
        )
        with self._session_factory() as db:
            swept = db.execute(stmt).rowcount or 0
            db.commit()
        if swept:
            logger.warning("backup_records: swept stale pending backups count=%d cutoff=%s", swept, cutoff.isoformat())
        return swept
