from __future__ import annotations

import datetime as dt
import secrets
from dataclasses import dataclass

import bcrypt
from jose import JWTError, jwt

from dashboard.core.config import settings

PASSWORD_MIN_LENGTH = 6


def hash_password(plain: str) -> str:
    if not plain or len(plain) < PASSWORD_MIN_LENGTH:
        raise ValueError("Password too short")
    hashed = bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash stored for the account.
        return False


def create_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def constant_time_equals(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class InvalidTokenError(ValueError):
    pass


@dataclass(frozen=True)
class JwtPayload:
    sub: str
    exp: int


def create_access_token(*, subject: str, now: dt.datetime | None = None) -> str:
    now = now or dt.datetime.now(dt.timezone.utc)
    exp = now + dt.timedelta(minutes=settings.jwt_expires_minutes)
    payload = {"sub": subject, "exp": int(exp.timestamp())}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> JwtPayload:
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e
    if "sub" not in data or "exp" not in data:
        raise InvalidTokenError("Token is missing sub/exp")
    return JwtPayload(sub=str(data["sub"]), exp=int(data["exp"]))
