from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=200)


class UserOut(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: str | None = None
    csrf_token: str | None = None  # echo in X-CSRF-Token on mutating requests
