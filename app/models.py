"""Assistant Backend - SQLAlchemy ORM models.

Tables:
1. audio_jobs     - one row per remote transcription job
2. chats          - chat header per owner
3. chat_messages  - append-only chat history
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class JobStatus(StrEnum):
    """Lifecycle stage of an audio job as last observed by the orchestrator."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    TRANSCRIBED = "transcribed"
    ERROR = "error"
    CLEANED = "cleaned"


class AudioJob(Base):
    """Local record of a job held by the remote transcription service.

    Keyed by the id the remote service issues at upload time. Rows are only
    written after the corresponding remote call reported success.
    """

    __tablename__ = "audio_jobs"

    # Remote-issued identifier
    job_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Requesting user (from the identity provider); immutable
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Staged file description (informational once the job leaves "uploaded")
    stored_name: Mapped[str] = mapped_column(Text, nullable=False)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=JobStatus.UPLOADED.value, index=True
    )

    # Opaque payload owned by the remote service; set once with "transcribed"
    transcription_result: Mapped[Any | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (Index("ix_audio_jobs_owner_created", "owner_id", "created_at"),)


class Chat(Base):
    """Chat conversation header."""

    __tablename__ = "chats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    messages: Mapped[list["ChatMessage"]] = relationship(
        back_populates="chat",
        order_by="ChatMessage.id",
        cascade="all, delete-orphan",
    )


class ChatMessage(Base):
    """One entry of a chat history. Rows are only ever appended."""

    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("chats.chat_id", ondelete="CASCADE"), nullable=False, index=True
    )

    # "user" or "model"
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    img: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    chat: Mapped[Chat] = relationship(back_populates="messages")
