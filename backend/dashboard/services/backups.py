from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from dashboard.models.backup import BackupRecord
from dashboard.models.user import User
from dashboard.services.archive_store import ArchiveNotFoundError, ArchiveStore
from dashboard.services.backup_records import BackupRecordManager

logger = logging.getLogger(__name__)


class BackupFileMissingError(LookupError):
    """The record exists but its archive is not in the store."""

    def __init__(self, backup_id: str, file_name: str) -> None:
        super().__init__(f"Backup file not found on disk: {file_name}")
        self.backup_id = backup_id
        self.file_name = file_name


class BackupService:
    def __init__(
        self,
        *,
        records: BackupRecordManager,
        store: ArchiveStore,
        activity: Callable[..., Any] | None = None,
    ) -> None:
        self._records = records
        self._store = store
        self._activity = activity

    def get(self, backup_id: str) -> BackupRecord:
        return self._records.get(backup_id)

    def list(self, limit: int = 20) -> list[BackupRecord]:
        return self._records.list(limit)

    def download(self, backup_id: str) -> tuple[bytes, str]:
        """Returns (archive bytes, suggested file name)."""
        rec = self._records.get(backup_id)
        try:
            data = self._store.read(rec.file_name)
        except ArchiveNotFoundError:
            logger.warning("backups: record id=%s status=%s has no file %s", rec.id, rec.status.value, rec.file_name)
            raise BackupFileMissingError(rec.id, rec.file_name) from None
        return data, rec.file_name

    def remove(self, backup_id: str, *, actor: User | None = None) -> None:
        # File first: a crash in between leaves a record without a file (reported on download),
        # never an archive nobody can see.
        rec = self._records.get(backup_id)
        self._store.delete(rec.file_name)
        self._records.delete(rec.id)
        logger.info("backups: removed id=%s file_name=%s", rec.id, rec.file_name)

        if self._activity is not None and actor is not None:
            self._activity(
                user_id=actor.id,
                action="deleted",
                entity_type="backup",
                entity_id=rec.id,
                description=f"Deleted backup: {rec.name}",
            )
