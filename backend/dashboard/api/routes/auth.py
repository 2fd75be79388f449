from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from dashboard.api.deps import get_optional_user, require_auth
from dashboard.core.config import settings
from dashboard.core.security import create_access_token, create_csrf_token
from dashboard.db.session import get_db
from dashboard.models.user import User
from dashboard.schemas.auth import LoginRequest, UserOut
from dashboard.services.activity_log import log_activity
from dashboard.services.users import authenticate_user

router = APIRouter()


def _user_out(user: User, csrf_token: str | None = None) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role.name if user.role else None,
        csrf_token=csrf_token,
    )


@router.post("/login", response_model=UserOut)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = authenticate_user(db, payload.email, payload.password)
    token = create_access_token(subject=str(user.id))
    csrf = create_csrf_token()
    production = settings.environment == "production"
    # SameSite=None so the cookie survives cross-origin requests (separate frontend host).
    samesite = "none" if production else "lax"
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=production,
        samesite=samesite,
        max_age=settings.jwt_expires_minutes * 60,
        path="/",
    )
    # Readable by JS; must be echoed in X-CSRF-Token for unsafe methods in production.
    response.set_cookie(
        settings.csrf_cookie_name,
        csrf,
        httponly=False,
        secure=production,
        samesite=samesite,
        max_age=settings.jwt_expires_minutes * 60,
        path="/",
    )
    log_activity(db, action="login", entity_type="user", entity_id=user.id, user_id=user.id, description="Signed in")
    return _user_out(user, csrf)


@router.post("/logout")
def logout(
    response: Response,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
):
    if user is not None:
        log_activity(db, action="logout", entity_type="user", entity_id=user.id, user_id=user.id, description="Signed out")
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_auth)):
    return _user_out(user)
