from fastapi import APIRouter

from dashboard.api.routes import activity, auth, backups, tasks

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
api_router.include_router(backups.router, prefix="/backups", tags=["backups"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
