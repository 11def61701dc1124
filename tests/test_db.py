"""Tests for app.db module and the ORM models."""

from sqlalchemy import func, inspect, select

from app.db import get_database_url, init_db
from app.models import Chat, ChatMessage, JobStatus


class TestInitDb:
    """Tests for database initialization."""

    def test_creates_database_file(self, temp_db):
        """init_db should create the database file."""
        db_path, engine, _ = temp_db
        assert db_path.exists()

    def test_creates_all_tables(self, temp_db):
        """init_db should create all defined tables."""
        _, engine, _ = temp_db

        tables = inspect(engine).get_table_names()

        assert "audio_jobs" in tables
        assert "chats" in tables
        assert "chat_messages" in tables

    def test_idempotent(self, temp_db):
        """init_db should be safe to call multiple times."""
        db_path, engine, _ = temp_db

        engine2, _ = init_db(db_path)

        assert "audio_jobs" in inspect(engine2).get_table_names()
        engine2.dispose()


class TestDatabaseUrl:
    def test_path_override(self, tmp_path):
        assert get_database_url(tmp_path / "x.db") == f"sqlite:///{tmp_path / 'x.db'}"

    def test_default_from_config(self):
        from app.config import DATABASE_URL

        assert get_database_url() == DATABASE_URL


class TestModels:
    """Tests for model defaults and relationships."""

    def test_job_status_values(self):
        assert [s.value for s in JobStatus] == [
            "uploaded",
            "processing",
            "transcribed",
            "error",
            "cleaned",
        ]

    def test_chat_messages_cascade_on_delete(self, db_session):
        """Deleting a chat should remove its messages."""
        chat = Chat(chat_id="c1", owner_id="alice", title="t")
        chat.messages.append(ChatMessage(role="user", text="hi"))
        db_session.add(chat)
        db_session.commit()

        db_session.delete(chat)
        db_session.commit()

        count = db_session.execute(select(func.count()).select_from(ChatMessage)).scalar()
        assert count == 0

    def test_messages_ordered_by_insertion(self, db_session):
        chat = Chat(chat_id="c1", owner_id="alice", title="t")
        for text in ("one", "two", "three"):
            chat.messages.append(ChatMessage(role="user", text=text))
        db_session.add(chat)
        db_session.commit()
        db_session.expire_all()

        loaded = db_session.execute(select(Chat)).scalar_one()
        assert [m.text for m in loaded.messages] == ["one", "two", "three"]
