# Import every model module so Base.metadata knows all tables (create_all, alembic, backups).
from dashboard.models import activity_log, backup, billing, content, email, notification, setting, user  # noqa: F401
