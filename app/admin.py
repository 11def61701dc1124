"""Assistant Backend - Administrative bulk reset.

Wipes every audio job and chat record in one transaction. There is no
remote-side cleanup: jobs still held by the transcription service are left
there.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from app.chats import delete_all_chats
from app.errors import ForbiddenError, PersistenceError
from app.store import delete_all_jobs

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass
class ResetCounts:
    """Rows deleted per entity type."""

    audio_jobs: int
    chats: int
    chat_messages: int

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def check_admin_key(configured_key: str | None, supplied_key: str | None) -> None:
    """Verify the admin key.

    With no key configured the check passes (open endpoint).

    Raises:
        ForbiddenError: If a key is configured and the supplied one differs.
    """
    if configured_key is None:
        return
    if supplied_key is None or not hmac.compare_digest(
        configured_key.encode("utf-8"), supplied_key.encode("utf-8")
    ):
        raise ForbiddenError("Invalid or missing admin key")


def reset_all(session: Session) -> ResetCounts:
    """Delete all audio job and chat records and commit.

    Raises:
        PersistenceError: If the store rejects the delete (nothing is removed).
    """
    try:
        audio_jobs = delete_all_jobs(session)
        chats, chat_messages = delete_all_chats(session)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(str(e)) from e

    counts = ResetCounts(audio_jobs=audio_jobs, chats=chats, chat_messages=chat_messages)
    logger.warning("Administrative reset removed %s", counts.as_dict())
    return counts
