from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dashboard.api.router import api_router
from dashboard.core.config import settings
from dashboard.core.security import constant_time_equals
from dashboard.db.init_db import ensure_seeded
from dashboard.db.session import Base, SessionLocal, engine

# Register every model on Base.metadata before create_all.
import dashboard.models  # noqa: F401

logger = logging.getLogger(__name__)

_CSRF_EXEMPT_PATHS = frozenset({"/auth/login", "/auth/logout", "/tasks/daily"})


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name)

    logger.info("CORS allow_origins=%s", settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Backup-Id", "Content-Disposition"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.middleware("http")
    async def _csrf_middleware(request: Request, call_next):
        """
        Double-submit CSRF check for cookie-auth endpoints.
        - Only enforced in production, only for unsafe methods, only when the session cookie is present.
        - Login/logout and the token-protected cron endpoint are exempt.
        """
        if settings.environment == "production" and request.method.upper() in {"POST", "PUT", "PATCH", "DELETE"}:
            path = request.url.path.rstrip("/") or "/"
            if path not in _CSRF_EXEMPT_PATHS and request.cookies.get(settings.jwt_cookie_name):
                csrf_cookie = request.cookies.get(settings.csrf_cookie_name)
                csrf_header = request.headers.get("X-CSRF-Token")
                if not constant_time_equals(csrf_cookie, csrf_header):
                    # HTTPException raised in middleware bypasses the exception handlers.
                    return JSONResponse(status_code=403, content={"detail": "CSRF token missing/invalid"})
        return await call_next(request)

    @app.on_event("startup")
    def _startup() -> None:
        """
        Local-dev helper: run without Postgres by pointing DATABASE_URL at SQLite.
        Creates tables (no Alembic) and seeds the admin account.
        """
        if settings.environment == "development" and settings.database_url.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
            db = SessionLocal()
            try:
                ensure_seeded(db)
            finally:
                db.close()

    app.include_router(api_router)
    return app


app = create_app()
