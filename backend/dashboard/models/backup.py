from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import JSON, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dashboard.db.session import Base
from dashboard.models.enums import BackupStatus


def _new_backup_id() -> str:
    return str(uuid.uuid4())


class BackupRecord(Base):
    """
    Lifecycle record for one snapshot export.

    Inserted as PENDING before any table is read, then moved exactly once to
    COMPLETED (file_size/record_count/tables filled in) or FAILED (error filled in).
    The archive itself lives in the archive store under `file_name`.
    """

    __tablename__ = "backup_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_backup_id)
    name: Mapped[str] = mapped_column(String(255))
    file_name: Mapped[str] = mapped_column(String(255), unique=True)
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[BackupStatus] = mapped_column(Enum(BackupStatus), default=BackupStatus.PENDING, index=True)
    record_count: Mapped[int] = mapped_column(Integer, default=0)
    tables: Mapped[list] = mapped_column(JSON, default=list)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Opaque actor id; no FK so the record outlives the user that created it.
    created_by: Mapped[int] = mapped_column(Integer, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), index=True)
