"""Assistant Backend - Database engine and session management.

SQLAlchemy sync engine/session factory. SQLite by default; any SQLAlchemy URL
can be supplied through ASSISTANT_DATABASE_URL.
"""

from __future__ import annotations

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker

from app.config import DATABASE_URL
from app.models import Base


def get_database_url(db_path: str | None = None) -> str:
    """Get the database URL.

    Args:
        db_path: Optional SQLite file path override. Defaults to config.DATABASE_URL.

    Returns:
        SQLAlchemy connection URL string.
    """
    if db_path is not None:
        return f"sqlite:///{db_path}"
    return DATABASE_URL


def create_db_engine(db_path: str | None = None, echo: bool = False) -> Engine:
    """Create SQLAlchemy engine.

    Args:
        db_path: Optional SQLite file path override.
        echo: If True, log all SQL statements.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = get_database_url(db_path)
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    # Requests run in FastAPI's threadpool; each uses its own session.
    engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the given engine.

    Args:
        engine: SQLAlchemy Engine instance.

    Returns:
        Configured sessionmaker.
    """
    # - autoflush=False: store primitives flush explicitly
    # - expire_on_commit=False: rows stay readable after the orchestrator commits
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(db_path: str | None = None, echo: bool = False) -> tuple[Engine, sessionmaker]:
    """Initialize the database: create engine, session factory, and all tables.

    Idempotent - safe to call multiple times.

    Args:
        db_path: Optional SQLite file path override.
        echo: If True, log all SQL statements.

    Returns:
        Tuple of (engine, SessionFactory).
    """
    engine = create_db_engine(db_path, echo=echo)
    SessionFactory = create_session_factory(engine)

    Base.metadata.create_all(engine)

    return engine, SessionFactory
