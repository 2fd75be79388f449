"""
Snapshot document: which tables go into an archive, how their values are made
JSON-safe, and how the archive is rendered.

Archive layout (ARCHIVE_VERSION "1.0"):

    {
      "version": "1.0",
      "createdAt": "<ISO-8601>",
      "createdBy": "<actor identity>",
      "data": {"<table>": [{<column>: <value>, ...}, ...], ...}
    }

Table keys and column keys are the database names, snake_case throughout
(`post_tags`, `activity_log`, `monthly_price`), not the camelCase names
(`postTags`, `activityLogs`, `monthlyPrice`) written by the dashboard's
earlier exporter. Version "1.0" archives from that exporter and from this
module therefore share the envelope but not the `data` keys; a reader must
not assume one layout from the version alone.

Bump ARCHIVE_VERSION for any change a reader of older archives could not parse.
"""

from __future__ import annotations

import datetime as dt
import enum
import json
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, select

from dashboard.models.activity_log import ActivityLog
from dashboard.models.billing import Plan, Subscription
from dashboard.models.content import Category, Media, MediaFolder, Post, PostTag, Redirect, SeoMeta, Tag
from dashboard.models.email import EmailLog, EmailTemplate
from dashboard.models.notification import Notification, NotificationPreference
from dashboard.models.setting import Setting
from dashboard.models.user import Role, User

ARCHIVE_VERSION = "1.0"


@dataclass(frozen=True)
class ExportTable:
    """One table in the archive: the mapped model, an optional column subset and an optional row cap."""

    name: str
    model: type
    columns: tuple[str, ...] | None = None
    # Cap keeps the newest rows by created_at (log-like tables).
    limit: int | None = None

    def statement(self) -> Select:
        table = self.model.__table__
        if self.columns:
            stmt = select(*(table.c[c] for c in self.columns))
        else:
            stmt = select(table)
        if self.limit is not None:
            stmt = stmt.order_by(table.c.created_at.desc()).limit(self.limit)
        return stmt


def default_export_tables(*, activity_log_limit: int = 1000, email_log_limit: int = 500) -> tuple[ExportTable, ...]:
    # Order here is the order of `data` in the archive and of BackupRecord.tables.
    return (
        ExportTable("users", User, columns=("id", "name", "email", "role_id", "created_at")),
        ExportTable("roles", Role),
        ExportTable("posts", Post),
        ExportTable("categories", Category),
        ExportTable("tags", Tag),
        ExportTable("post_tags", PostTag),
        ExportTable("media", Media),
        ExportTable("media_folders", MediaFolder),
        ExportTable("seo_meta", SeoMeta),
        ExportTable("redirects", Redirect),
        ExportTable("settings", Setting),
        ExportTable("notifications", Notification),
        ExportTable("notification_preferences", NotificationPreference),
        ExportTable("plans", Plan),
        ExportTable("subscriptions", Subscription),
        ExportTable("activity_log", ActivityLog, limit=activity_log_limit),
        ExportTable("email_templates", EmailTemplate),
        ExportTable("email_logs", EmailLog, limit=email_log_limit),
    )


def _as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def normalize_value(value: Any) -> Any:
    # Before the primitives: our enums subclass str.
    if isinstance(value, enum.Enum):
        return normalize_value(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        # Exact fixed-point text (plan prices); float() would round and str() may use exponents.
        return format(value, "f")
    if isinstance(value, dt.datetime):
        return _as_utc(value).isoformat()
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    raise TypeError(f"Cannot export value of type {type(value).__name__}")


def normalize_row(row: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k): normalize_value(v) for k, v in row.items()}


def render_snapshot(
    rows_by_table: Mapping[str, Sequence[Mapping[str, Any]]],
    *,
    tables: Sequence[ExportTable],
    created_by: str,
    created_at: dt.datetime,
) -> tuple[bytes, list[str]]:
    """
    Renders the archive document to UTF-8 bytes.

    Returns (payload, table_names) where table_names follows `tables`, not the
    iteration order of `rows_by_table`. Rows must already be normalized.
    """
    table_names = [t.name for t in tables]
    missing = [name for name in table_names if name not in rows_by_table]
    if missing:
        raise ValueError(f"Missing rows for tables: {', '.join(missing)}")

    document = {
        "version": ARCHIVE_VERSION,
        "createdAt": _as_utc(created_at).isoformat(),
        "createdBy": created_by,
        "data": {name: list(rows_by_table[name]) for name in table_names},
    }
    payload = json.dumps(document, ensure_ascii=False, indent=2).encode("utf-8")
    return payload, table_names
