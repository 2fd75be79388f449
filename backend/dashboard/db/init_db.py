from __future__ import annotations

from sqlalchemy.orm import Session

from dashboard.core.security import hash_password
from dashboard.models.user import User
from dashboard.services.users import create_user, get_or_create_role

ALL_ACTIONS = ["create", "read", "update", "delete"]

DEFAULT_ROLE_PERMISSIONS: dict[str, dict[str, list[str]]] = {
    "Admin": {area: ALL_ACTIONS for area in ("users", "roles", "posts", "media", "settings", "plans", "backups")},
    "Editor": {"posts": ALL_ACTIONS, "media": ALL_ACTIONS, "settings": ["read"]},
    "Author": {"posts": ["create", "read", "update"], "media": ["create", "read"]},
    "User": {"posts": ["read"]},
}


def upsert_admin(db: Session, *, email: str, password: str) -> None:
    """
    Seed helper:
    - If the admin exists, reset its password (local dev can recover credentials without wiping the DB).
    - Otherwise create it with the Admin role.
    """
    admin_role = get_or_create_role(db, name="Admin", description="Full access to all features", permissions=DEFAULT_ROLE_PERMISSIONS["Admin"])
    user = db.query(User).filter(User.email == email).first()
    if user:
        user.password_hash = hash_password(password)
        user.role_id = admin_role.id
        user.is_active = True
        db.commit()
        return
    create_user(db, email=email, password=password, name="Admin User", role=admin_role)


def seed_roles(db: Session) -> None:
    for name, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        get_or_create_role(db, name=name, permissions=permissions, is_default=name == "User")


def ensure_seeded(db: Session) -> None:
    exists = db.query(User).first()
    if exists:
        return
    seed_roles(db)
    upsert_admin(db, email="admin@example.com", password="admin123")


if __name__ == "__main__":
    from dashboard.db.session import SessionLocal

    db = SessionLocal()
    try:
        ensure_seeded(db)
        print("Seeded roles and admin user.")
    finally:
        db.close()
