"""backup records

Revision ID: 0002_backup_records
Revises: 0001_init
Create Date: 2026-10-02

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0002_backup_records"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        "DO $$ BEGIN CREATE TYPE backupstatus AS ENUM ('PENDING', 'COMPLETED', 'FAILED'); "
        "EXCEPTION WHEN duplicate_object THEN NULL; END $$"
    )
    op.create_table(
        "backup_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", postgresql.ENUM(name="backupstatus", create_type=False), nullable=False, server_default="PENDING"),
        sa.Column("record_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tables", sa.JSON(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_backup_records_status", "backup_records", ["status"])
    op.create_index("ix_backup_records_created_by", "backup_records", ["created_by"])
    op.create_index("ix_backup_records_created_at", "backup_records", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_backup_records_created_at", table_name="backup_records")
    op.drop_index("ix_backup_records_created_by", table_name="backup_records")
    op.drop_index("ix_backup_records_status", table_name="backup_records")
    op.drop_table("backup_records")
    op.execute("DROP TYPE IF EXISTS backupstatus")
