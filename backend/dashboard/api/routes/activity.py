"""Activity log API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dashboard.api.deps import require_auth
from dashboard.db.session import get_db
from dashboard.models.activity_log import ActivityLog
from dashboard.models.user import User

router = APIRouter()


@router.get("/latest")
def get_activity_latest(
    limit: int = Query(default=10, ge=1, le=100),
    entity_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _=Depends(require_auth),
):
    q = db.query(ActivityLog)
    if entity_type:
        q = q.filter(ActivityLog.entity_type == entity_type)
    items = q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()

    users_by_id = {}
    user_ids = {a.user_id for a in items if a.user_id}
    if user_ids:
        users = db.query(User).filter(User.id.in_(user_ids)).all()
        users_by_id = {u.id: u.display_identity for u in users}
    return [
        {
            "id": a.id,
            "created_at": a.created_at.isoformat() if a.created_at else None,
            "action": a.action,
            "entity_type": a.entity_type,
            "entity_id": a.entity_id,
            "description": a.description,
            "user": users_by_id.get(a.user_id) if a.user_id else None,
        }
        for a in items
    ]
