"""
Create-snapshot pipeline.

    PENDING record -> concurrent table reads -> normalize -> render -> write archive -> COMPLETED

Any failure after the PENDING insert turns the record FAILED (best effort) and is re-raised.
Tables are read on separate connections with no shared transaction, so an archive is a
best-effort snapshot: rows written while the export runs may appear in some tables and not others.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
import secrets
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from dashboard.models.backup import BackupRecord
from dashboard.models.user import User
from dashboard.services.archive_store import ArchiveStore
from dashboard.services.backup_records import BackupRecordManager, utcnow
from dashboard.services.snapshot import ExportTable, default_export_tables, normalize_row, render_snapshot

logger = logging.getLogger(__name__)


class BackupValidationError(ValueError):
    pass


def build_file_name(now: dt.datetime, *, prefix: str = "backup", salt: str | None = None) -> str:
    """
    backup-2026-10-18T09-41-07-512Z-3fa9c1.json

    Sorts by creation time; ':' and '.' of the ISO timestamp are replaced so the name is path-safe.
    The random salt keeps two exports started in the same millisecond apart.
    """
    stamp = now.astimezone(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    stamp = re.sub(r"[:.]", "-", stamp)
    salt = salt if salt is not None else secrets.token_hex(3)
    return f"{prefix}-{stamp}-{salt}.json"


def build_backup_name(now: dt.datetime) -> str:
    return f"Backup {now.astimezone(dt.timezone.utc):%Y-%m-%d %H:%M:%S} UTC"


class SnapshotExporter:
    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session],
        records: BackupRecordManager,
        store: ArchiveStore,
        tables: Sequence[ExportTable] | None = None,
        activity: Callable[..., Any] | None = None,
        max_workers: int = 4,
        file_prefix: str = "backup",
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._records = records
        self._store = store
        self._tables = tuple(tables) if tables is not None else default_export_tables()
        self._activity = activity
        self._max_workers = max(1, max_workers)
        self._file_prefix = file_prefix
        self._clock = clock

    @property
    def table_names(self) -> list[str]:
        return [t.name for t in self._tables]

    def _read_table(self, table: ExportTable) -> list[dict[str, Any]]:
        with self._session_factory() as db:
            rows = db.execute(table.statement()).mappings().all()
        return [normalize_row(row) for row in rows]

    def _read_tables(self) -> dict[str, list[dict[str, Any]]]:
        # Fan out one read per table, then wait for all of them; the first failure propagates.
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="backup-read") as pool:
            futures = {t.name: pool.submit(self._read_table, t) for t in self._tables}
            return {name: future.result() for name, future in futures.items()}

    def _mark_failed(self, backup_id: str, exc: BaseException) -> None:
        error = str(exc) or exc.__class__.__name__
        try:
            self._records.mark_failed(backup_id, error=error)
        except Exception:
            # Nothing else to fall back on: the record stays PENDING until the stale sweep.
            logger.exception("backup_export: could not mark id=%s FAILED", backup_id)

    def create_snapshot(self, actor: User | None) -> BackupRecord:
        if actor is None or getattr(actor, "id", None) is None:
            raise BackupValidationError("An authenticated actor is required to create a backup")

        now = self._clock()
        file_name = build_file_name(now, prefix=self._file_prefix)
        rec = self._records.create(
            created_by=actor.id,
            name=build_backup_name(now),
            file_name=file_name,
            created_at=now,
        )
        logger.info("backup_export: started id=%s file_name=%s user_id=%s", rec.id, file_name, actor.id)

        try:
            rows_by_table = self._read_tables()
            payload, table_names = render_snapshot(
                rows_by_table,
                tables=self._tables,
                created_by=actor.display_identity,
                created_at=now,
            )
            self._store.write(file_name, payload)
            record_count = sum(len(rows_by_table[name]) for name in table_names)
            rec = self._records.mark_completed(
                rec.id,
                file_size=len(payload),
                record_count=record_count,
                tables=table_names,
            )
        except Exception as exc:
            logger.exception("backup_export: failed id=%s", rec.id)
            self._mark_failed(rec.id, exc)
            raise

        logger.info(
            "backup_export: completed id=%s tables=%d records=%d size_bytes=%d",
            rec.id,
            len(rec.tables),
            rec.record_count,
            rec.file_size,
        )
        if self._activity is not None:
            self._activity(
                user_id=actor.id,
                action="created",
                entity_type="backup",
                entity_id=rec.id,
                description=f"Created backup with {rec.record_count} records",
                details={"file_name": rec.file_name, "file_size": rec.file_size},
            )
        return rec
