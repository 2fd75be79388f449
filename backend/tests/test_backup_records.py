import datetime as dt

import pytest

from dashboard.models.enums import BackupStatus
from dashboard.services.backup_records import (
    UNKNOWN_ERROR,
    BackupNotFoundError,
    BackupRecordManager,
    BackupStateError,
)
from conftest import T0, StepClock


def _create(records, n=1):
    return records.create(created_by=1, name=f"Backup {n}", file_name=f"backup-{n}.json")


def test_create_inserts_pending_record(records):
    rec = _create(records)
    assert rec.id
    assert rec.status == BackupStatus.PENDING
    assert rec.file_size == 0
    assert rec.record_count == 0
    assert rec.tables == []
    assert rec.error is None
    assert records.get(rec.id).status == BackupStatus.PENDING


def test_mark_completed_fills_outcome(records):
    rec = _create(records)
    done = records.mark_completed(rec.id, file_size=123, record_count=7, tables=["users", "roles"])
    assert done.status == BackupStatus.COMPLETED
    assert (done.file_size, done.record_count, done.tables) == (123, 7, ["users", "roles"])


def test_terminal_state_cannot_change(records):
    rec = _create(records)
    records.mark_failed(rec.id, error="boom")
    with pytest.raises(BackupStateError):
        records.mark_completed(rec.id, file_size=1, record_count=1, tables=[])
    with pytest.raises(BackupStateError):
        records.mark_failed(rec.id, error="again")
    assert records.get(rec.id).error == "boom"


def test_mark_failed_never_stores_empty_error(records):
    rec = _create(records)
    failed = records.mark_failed(rec.id, error="  ")
    assert failed.status == BackupStatus.FAILED
    assert failed.error == UNKNOWN_ERROR


def test_missing_record_is_not_found(records):
    with pytest.raises(BackupNotFoundError):
        records.get("does-not-exist")
    with pytest.raises(BackupNotFoundError):
        records.mark_failed("does-not-exist", error="x")
    with pytest.raises(BackupNotFoundError):
        records.delete("does-not-exist")


def test_list_is_newest_first_and_bounded(records):
    t1 = _create(records, 1)
    t2 = _create(records, 2)
    t3 = _create(records, 3)
    assert [r.id for r in records.list(2)] == [t3.id, t2.id]
    assert [r.id for r in records.list(10)] == [t3.id, t2.id, t1.id]


def test_list_rejects_non_positive_limit(records):
    with pytest.raises(ValueError):
        records.list(0)


def test_delete_removes_record(records):
    rec = _create(records)
    records.delete(rec.id)
    with pytest.raises(BackupNotFoundError):
        records.get(rec.id)


def test_stale_pending_records_are_swept(session_factory):
    clock = StepClock(step=dt.timedelta(minutes=30))
    records = BackupRecordManager(session_factory, clock=clock)
    old = records.create(created_by=1, name="old", file_name="old.json")  # T0
    done = records.create(created_by=1, name="done", file_name="done.json")  # T0 + 30m
    records.mark_completed(done.id, file_size=1, record_count=0, tables=[])
    fresh = records.create(created_by=1, name="fresh", file_name="fresh.json")  # T0 + 60m

    # Sweep runs at T0 + 90m with a 45 minute threshold: only `old` qualifies.
    assert records.fail_stale_pending(older_than=dt.timedelta(minutes=45)) == 1

    swept = records.get(old.id)
    assert swept.status == BackupStatus.FAILED
    assert "abandoned" in swept.error
    assert records.get(done.id).status == BackupStatus.COMPLETED
    assert records.get(fresh.id).status == BackupStatus.PENDING
    assert clock.now == T0 + dt.timedelta(minutes=120)


def test_sweep_racing_completion_leaves_single_terminal_state(session_factory):
    rec = BackupRecordManager(session_factory, clock=StepClock()).create(created_by=1, name="slow", file_name="slow.json")
    sweeper = BackupRecordManager(session_factory, clock=lambda: T0 + dt.timedelta(hours=2))

    def sweep_then_open():
        # The sweep commits after the export decided to complete, before its write lands.
        sweeper.fail_stale_pending(older_than=dt.timedelta(minutes=60))
        return session_factory()

    exporter_records = BackupRecordManager(sweep_then_open, clock=StepClock())
    with pytest.raises(BackupStateError):
        exporter_records.mark_completed(rec.id, file_size=10, record_count=2, tables=["users"])

    final = sweeper.get(rec.id)
    assert final.status == BackupStatus.FAILED
    assert final.error == "Export abandoned: still pending after 60 minutes"
    assert (final.file_size, final.record_count, final.tables) == (0, 0, [])
