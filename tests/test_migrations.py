"""The alembic revision must build the same table as the ORM model."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from rolling_paper.models import Message

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def test_migration_matches_model_nullability(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'board.db'}"
    monkeypatch.setenv("ALEMBIC_URL", url)
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))

    command.upgrade(config, "head")

    engine = create_engine(url)
    try:
        columns = {column["name"]: column["nullable"] for column in inspect(engine).get_columns("messages")}
    finally:
        engine.dispose()
    expected = {column.name: column.nullable for column in Message.__table__.columns}
    assert columns == expected
    assert columns["created_at"] is False
    assert columns["updated_at"] is False
