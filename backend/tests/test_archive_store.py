import pytest

from dashboard.services.archive_store import ArchiveNotFoundError, ArchiveStore


def test_write_creates_directory_on_first_use(tmp_path):
    store = ArchiveStore(tmp_path / "nested" / "backups")
    store.write("backup-1.json", b'{"version": "1.0"}')
    assert (tmp_path / "nested" / "backups" / "backup-1.json").read_bytes() == b'{"version": "1.0"}'
    assert store.read("backup-1.json") == b'{"version": "1.0"}'
    assert store.exists("backup-1.json")


def test_write_leaves_no_temp_file(store):
    store.write("backup-1.json", b"{}")
    assert sorted(p.name for p in store.root.iterdir()) == ["backup-1.json"]


def test_read_missing_key_raises_not_found(store):
    with pytest.raises(ArchiveNotFoundError):
        store.read("backup-missing.json")
    # Still a FileNotFoundError for callers that only know the builtin.
    with pytest.raises(FileNotFoundError):
        store.read("backup-missing.json")


def test_delete_is_idempotent(store):
    store.write("backup-1.json", b"{}")
    assert store.delete("backup-1.json") is True
    assert store.delete("backup-1.json") is False
    assert not store.exists("backup-1.json")


def test_delete_before_directory_exists(store):
    assert store.delete("backup-1.json") is False


@pytest.mark.parametrize("key", ["", "..", "../etc/passwd", "a/b.json", "a\\b.json"])
def test_rejects_non_flat_keys(store, key):
    with pytest.raises(ValueError):
        store.write(key, b"{}")
