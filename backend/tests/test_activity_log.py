from dashboard.models.activity_log import ActivityLog
from dashboard.models.user import User
from dashboard.services.activity_log import log_activity


def _user(db):
    user = User(email="editor@example.com", name="Editor")
    db.add(user)
    db.commit()
    return user


def test_writes_entry_for_known_user(db):
    user = _user(db)
    entry = log_activity(
        db,
        action="created",
        entity_type="backup",
        entity_id="3f2a",
        user_id=user.id,
        description="Created backup with 4 records",
        details={"file_size": 120},
    )
    assert entry is not None
    assert entry.entity_id == "3f2a"
    assert entry.details == {"file_size": 120}
    assert db.query(ActivityLog).count() == 1


def test_integer_entity_id_is_stored_as_text(db):
    user = _user(db)
    entry = log_activity(db, action="login", entity_type="user", entity_id=user.id, user_id=user.id)
    assert entry.entity_id == str(user.id)


def test_unknown_or_missing_user_writes_nothing(db):
    assert log_activity(db, action="deleted", entity_type="backup", user_id=12345) is None
    assert log_activity(db, action="deleted", entity_type="backup") is None
    assert db.query(ActivityLog).count() == 0
