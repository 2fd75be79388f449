from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from dashboard.core.security import hash_password, verify_password
from dashboard.models.user import Role, User


def normalize_email(email: str) -> str:
    return email.strip().lower()


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return user


def get_or_create_role(db: Session, *, name: str, description: str | None = None, permissions: dict | None = None, is_default: bool = False) -> Role:
    role = db.query(Role).filter(Role.name == name).first()
    if role:
        return role
    role = Role(name=name, description=description, permissions=permissions or {}, is_default=is_default)
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def create_user(db: Session, *, email: str, password: str, name: str | None = None, role: Role | None = None) -> User:
    email = normalize_email(email)
    exists = db.query(User).filter(User.email == email).first()
    if exists:
        return exists
    user = User(email=email, name=name, password_hash=hash_password(password), role_id=role.id if role else None)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
