# src/rolling_paper/models/message.py
"""The ``messages`` table and its PostgreSQL change-notification triggers."""

from datetime import datetime

from sqlalchemy import (
    DDL,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from rolling_paper.db.session import Base
from rolling_paper.db.time import utcnow


class Message(Base):
    """A note posted to one group board.

    ``timestamp`` is the client-visible creation time in epoch milliseconds;
    ``created_at``/``updated_at`` are audit columns maintained by the server.
    """

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    group: Mapped[str] = mapped_column("group", String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_messages_group", "group"),
        Index("idx_messages_timestamp", "timestamp"),
        Index("idx_messages_created_at", "created_at"),
        CheckConstraint(
            "NOT is_private OR password_hash IS NOT NULL",
            name="ck_messages_private_requires_password",
        ),
    )


UPDATED_AT_TRIGGER_SQL = """
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS update_messages_updated_at ON messages;
CREATE TRIGGER update_messages_updated_at
    BEFORE UPDATE ON messages
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""


def notify_trigger_sql(channel: str) -> str:
    """Return DDL emitting ``{"operation", "id"}`` on ``channel`` for every row change."""
    channel = channel.replace("'", "''")
    return f"""
CREATE OR REPLACE FUNCTION notify_message_change()
RETURNS TRIGGER AS $$
BEGIN
    PERFORM pg_notify('{channel}', json_build_object(
        'operation', TG_OP,
        'id', COALESCE(NEW.id, OLD.id)
    )::text);
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS messages_notify ON messages;
CREATE TRIGGER messages_notify
    AFTER INSERT OR UPDATE OR DELETE ON messages
    FOR EACH ROW
    EXECUTE FUNCTION notify_message_change();
"""


event.listen(
    Message.__table__,
    "after_create",
    DDL(UPDATED_AT_TRIGGER_SQL).execute_if(dialect="postgresql"),
)
