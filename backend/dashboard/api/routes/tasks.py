from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Header, HTTPException, status

from dashboard.api.deps import get_backup_records, get_stale_backup_threshold
from dashboard.core.config import settings
from dashboard.core.security import constant_time_equals
from dashboard.services.backup_records import BackupRecordManager

router = APIRouter()


@router.post("/daily")
def daily_tasks(
    records: BackupRecordManager = Depends(get_backup_records),
    stale_after: dt.timedelta = Depends(get_stale_backup_threshold),
    x_tasks_token: str | None = Header(default=None),
):
    if not constant_time_equals(x_tasks_token, settings.tasks_daily_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid tasks token")
    swept = records.fail_stale_pending(older_than=stale_after)
    return {"ok": True, "stale_backups_failed": swept}
