from __future__ import annotations

from dashboard.models.enums import BackupStatus
from dashboard.schemas.common import ApiModel, Timestamped


class BackupOut(Timestamped):
    id: str
    name: str
    file_name: str
    file_size: int
    status: BackupStatus
    record_count: int
    tables: list[str]
    error: str | None = None
    created_by: int


class BackupDeletedOut(ApiModel):
    success: bool = True
