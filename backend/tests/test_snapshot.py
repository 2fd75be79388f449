import datetime as dt
import json
from decimal import Decimal

import pytest

from dashboard.models.activity_log import ActivityLog
from dashboard.models.enums import PlanStatus, PostStatus
from dashboard.models.user import User
from dashboard.services.snapshot import (
    ARCHIVE_VERSION,
    ExportTable,
    default_export_tables,
    normalize_row,
    normalize_value,
    render_snapshot,
)


def test_decimal_is_exported_as_exact_string():
    assert normalize_value(Decimal("12345.6789")) == "12345.6789"
    assert normalize_value(Decimal("0.10")) == "0.10"


def test_decimal_never_uses_exponent_notation():
    assert normalize_value(Decimal("1E+3")) == "1000"
    assert normalize_value(Decimal("1E-7")) == "0.0000001"


def test_naive_datetime_is_rendered_as_utc_iso():
    assert normalize_value(dt.datetime(2026, 10, 18, 9, 30)) == "2026-10-18T09:30:00+00:00"
    assert normalize_value(dt.date(2026, 10, 18)) == "2026-10-18"


def test_enums_and_nested_json_are_normalized():
    row = {
        "status": PlanStatus.ACTIVE,
        "features": {"maxUsers": 5, "flags": ["api", PostStatus.DRAFT], "price": Decimal("9.99")},
        "is_popular": True,
        "description": None,
    }
    assert normalize_row(row) == {
        "status": "ACTIVE",
        "features": {"maxUsers": 5, "flags": ["api", "DRAFT"], "price": "9.99"},
        "is_popular": True,
        "description": None,
    }


def test_unsupported_value_raises():
    with pytest.raises(TypeError):
        normalize_value(object())


def test_default_tables_have_fixed_order_and_caps():
    tables = default_export_tables(activity_log_limit=10, email_log_limit=5)
    names = [t.name for t in tables]
    assert names[0] == "users"
    assert names[-1] == "email_logs"
    assert len(names) == len(set(names)) == 18
    caps = {t.name: t.limit for t in tables if t.limit is not None}
    assert caps == {"activity_log": 10, "email_logs": 5}


def test_users_export_leaves_out_password_hash(db):
    db.add(User(email="a@example.com", name="A", password_hash="secret-hash"))
    db.commit()
    users = next(t for t in default_export_tables() if t.name == "users")
    rows = db.execute(users.statement()).mappings().all()
    assert len(rows) == 1
    assert "password_hash" not in rows[0]
    assert rows[0]["email"] == "a@example.com"


def test_capped_table_keeps_newest_rows(db):
    base = dt.datetime(2026, 1, 1, tzinfo=dt.timezone.utc)
    for i in range(5):
        db.add(ActivityLog(action=f"a{i}", entity_type="post", created_at=base + dt.timedelta(minutes=i)))
    db.commit()
    rows = db.execute(ExportTable("activity_log", ActivityLog, limit=3).statement()).mappings().all()
    assert [r["action"] for r in rows] == ["a4", "a3", "a2"]


def test_render_follows_table_order_not_mapping_order():
    tables = default_export_tables()
    rows = {t.name: [] for t in reversed(tables)}
    rows["plans"] = [{"id": 1, "monthly_price": "29.99"}]
    created_at = dt.datetime(2026, 10, 18, 9, 0, tzinfo=dt.timezone.utc)

    payload, names = render_snapshot(rows, tables=tables, created_by="admin@example.com", created_at=created_at)

    assert names == [t.name for t in tables]
    doc = json.loads(payload.decode("utf-8"))
    assert doc["version"] == ARCHIVE_VERSION
    assert doc["createdBy"] == "admin@example.com"
    assert doc["createdAt"] == "2026-10-18T09:00:00+00:00"
    assert list(doc["data"].keys()) == names
    assert doc["data"]["plans"] == [{"id": 1, "monthly_price": "29.99"}]


def test_identical_input_renders_identical_bytes():
    tables = default_export_tables()
    rows = {t.name: [{"id": 1}] for t in tables}
    created_at = dt.datetime(2026, 10, 18, tzinfo=dt.timezone.utc)
    first, _ = render_snapshot(rows, tables=tables, created_by="x", created_at=created_at)
    second, _ = render_snapshot(dict(reversed(list(rows.items()))), tables=tables, created_by="x", created_at=created_at)
    assert first == second


def test_render_rejects_missing_table():
    tables = default_export_tables()
    with pytest.raises(ValueError, match="users"):
        render_snapshot({}, tables=tables[:1], created_by="x", created_at=dt.datetime.now(dt.timezone.utc))


def test_archive_keys_are_database_names():
    for table in default_export_tables():
        assert table.name == table.model.__tablename__
    plan = next(t for t in default_export_tables() if t.name == "plans")
    assert "monthly_price" in plan.model.__table__.c
    assert "activityLogs" not in [t.name for t in default_export_tables()]
