from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from dashboard.api.deps import get_backup_exporter, get_backup_service, require_auth
from dashboard.core.config import settings
from dashboard.models.user import User
from dashboard.schemas.backup import BackupDeletedOut, BackupOut
from dashboard.services.backup_export import BackupValidationError, SnapshotExporter
from dashboard.services.backup_records import BackupNotFoundError
from dashboard.services.backups import BackupFileMissingError, BackupService

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Backup not found")


@router.get("", response_model=list[BackupOut])
def list_backups(
    limit: int = Query(default=settings.backup_list_default_limit, ge=1, le=settings.backup_list_max_limit),
    service: BackupService = Depends(get_backup_service),
    _: User = Depends(require_auth),
) -> list[BackupOut]:
    return [BackupOut.model_validate(rec) for rec in service.list(limit)]


@router.post("", response_model=BackupOut)
def create_backup(
    user: User = Depends(require_auth),
    exporter: SnapshotExporter = Depends(get_backup_exporter),
) -> BackupOut:
    """
    Exports every table into one JSON archive kept server-side.
    On failure the job record is left FAILED with the cause and the error is returned as 500.
    """
    try:
        rec = exporter.create_snapshot(user)
    except BackupValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e) or "Failed to create backup")
    return BackupOut.model_validate(rec)


@router.get("/{backup_id}", response_model=BackupOut)
def get_backup(
    backup_id: str,
    service: BackupService = Depends(get_backup_service),
    _: User = Depends(require_auth),
) -> BackupOut:
    try:
        return BackupOut.model_validate(service.get(backup_id))
    except BackupNotFoundError:
        raise _not_found()


@router.get("/{backup_id}/download")
def download_backup(
    backup_id: str,
    service: BackupService = Depends(get_backup_service),
    _: User = Depends(require_auth),
) -> Response:
    try:
        data, file_name = service.download(backup_id)
    except BackupNotFoundError:
        raise _not_found()
    except BackupFileMissingError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Backup file not found on disk")
    headers = {
        "Content-Disposition": f'attachment; filename="{file_name}"',
        "X-Backup-Id": backup_id,
    }
    return Response(content=data, media_type="application/json", headers=headers)


@router.delete("/{backup_id}", response_model=BackupDeletedOut)
def delete_backup(
    backup_id: str,
    user: User = Depends(require_auth),
    service: BackupService = Depends(get_backup_service),
) -> BackupDeletedOut:
    try:
        service.remove(backup_id, actor=user)
    except BackupNotFoundError:
        raise _not_found()
    return BackupDeletedOut()
