"""create messages table with change notifications

Revision ID: 5b1e2c9d7a40
Revises:
Create Date: 2025-11-03 09:12:44.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from rolling_paper.core.settings import settings
from rolling_paper.models.message import UPDATED_AT_TRIGGER_SQL, notify_trigger_sql

# revision identifiers, used by Alembic.
revision: str = "5b1e2c9d7a40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create ``messages`` and, on PostgreSQL, its triggers."""
    op.create_table(
        "messages",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("author", sa.String(length=255), nullable=False),
        sa.Column("group", sa.String(length=100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "NOT is_private OR password_hash IS NOT NULL",
            name="ck_messages_private_requires_password",
        ),
    )
    op.create_index("idx_messages_group", "messages", ["group"])
    op.create_index("idx_messages_timestamp", "messages", ["timestamp"])
    op.create_index("idx_messages_created_at", "messages", ["created_at"])

    if op.get_bind().dialect.name == "postgresql":
        op.execute(UPDATED_AT_TRIGGER_SQL)
        op.execute(notify_trigger_sql(settings.notify_channel))


def downgrade() -> None:
    """Drop ``messages`` and its trigger functions."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS messages_notify ON messages")
        op.execute("DROP TRIGGER IF EXISTS update_messages_updated_at ON messages")
        op.execute("DROP FUNCTION IF EXISTS notify_message_change()")
        op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")
    op.drop_index("idx_messages_created_at", table_name="messages")
    op.drop_index("idx_messages_timestamp", table_name="messages")
    op.drop_index("idx_messages_group", table_name="messages")
    op.drop_table("messages")
