"""Assistant Backend - Chat history log.

Simple append-only log of conversations, scoped to their owner. Messages are
never edited; a chat is removed as a whole.

Like the job store, these primitives flush but do not commit.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from app.config import CHAT_TITLE_MAX_CHARS
from app.errors import ChatNotFoundError, ValidationError
from app.models import Chat, ChatMessage

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

ROLE_USER = "user"
ROLE_MODEL = "model"


def generate_chat_id() -> str:
    """uuid4 hex (32 chars)."""
    return uuid.uuid4().hex


def create_chat(session: Session, owner_id: str, text: str) -> Chat:
    """Start a chat whose history opens with the user's message.

    Raises:
        ValidationError: If text is empty.
    """
    if not text or not text.strip():
        raise ValidationError("Chat text is required")

    chat = Chat(
        chat_id=generate_chat_id(),
        owner_id=owner_id,
        title=text[:CHAT_TITLE_MAX_CHARS],
    )
    chat.messages.append(ChatMessage(role=ROLE_USER, text=text))
    session.add(chat)
    session.flush()
    return chat


def list_user_chats(session: Session, owner_id: str) -> list[Chat]:
    """Chats of an owner, newest first."""
    stmt = (
        select(Chat)
        .where(Chat.owner_id == owner_id)
        .order_by(Chat.created_at.desc(), Chat.id.desc())
    )
    return list(session.execute(stmt).scalars())


def get_chat(session: Session, chat_id: str, owner_id: str) -> Chat:
    """Fetch a chat owned by owner_id.

    Raises:
        ChatNotFoundError: If missing or owned by someone else.
    """
    stmt = select(Chat).where(Chat.chat_id == chat_id, Chat.owner_id == owner_id)
    chat = session.execute(stmt).scalar_one_or_none()
    if chat is None:
        raise ChatNotFoundError(chat_id)
    return chat


def append_exchange(
    session: Session,
    chat_id: str,
    owner_id: str,
    answer: str,
    question: str | None = None,
    img: str | None = None,
) -> Chat:
    """Append a question/answer pair to a chat.

    The user message (with optional image reference) is only added when a
    question is given; the model answer is always added, after it.

    Raises:
        ChatNotFoundError: If missing or owned by someone else.
    """
    chat = get_chat(session, chat_id, owner_id)
    if question:
        chat.messages.append(ChatMessage(role=ROLE_USER, text=question, img=img or None))
    chat.messages.append(ChatMessage(role=ROLE_MODEL, text=answer or ""))
    session.flush()
    return chat


def delete_chat(session: Session, chat_id: str, owner_id: str) -> None:
    """Delete a chat and its history.

    Raises:
        ChatNotFoundError: If missing or owned by someone else.
    """
    chat = get_chat(session, chat_id, owner_id)
    session.delete(chat)
    session.flush()


def delete_all_chats(session: Session) -> tuple[int, int]:
    """Delete every chat and message.

    Returns:
        (chats_deleted, messages_deleted)
    """
    messages = session.execute(delete(ChatMessage)).rowcount
    chats = session.execute(delete(Chat)).rowcount
    return chats, messages
