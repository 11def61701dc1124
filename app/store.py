"""Assistant Backend - Audio job record store.

Session-level primitives over the audio_jobs table. None of these commit:
they flush and leave the unit of work to the orchestrator, which commits
only after the triggering remote call has succeeded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from app.errors import JobAlreadyExistsError
from app.models import AudioJob, JobStatus, utc_now

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

# Columns that update_job() may change. job_id, owner_id and created_at are immutable.
_MUTABLE_FIELDS = frozenset({"stored_name", "original_name", "status", "last_updated"})


def create_job(
    session: Session,
    job_id: str,
    owner_id: str,
    stored_name: str,
    original_name: str,
) -> AudioJob:
    """Insert a new AudioJob with status "uploaded".

    Raises:
        JobAlreadyExistsError: If job_id is already present.
    """
    if session.get(AudioJob, job_id) is not None:
        raise JobAlreadyExistsError(job_id)

    now = utc_now()
    job = AudioJob(
        job_id=job_id,
        owner_id=owner_id,
        stored_name=stored_name,
        original_name=original_name,
        status=JobStatus.UPLOADED.value,
        created_at=now,
        last_updated=now,
    )
    session.add(job)
    try:
        session.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent insert of the same id
        session.rollback()
        raise JobAlreadyExistsError(job_id) from e
    return job


def get_job(session: Session, job_id: str) -> AudioJob | None:
    return session.get(AudioJob, job_id)


def update_job(session: Session, job_id: str, **fields: Any) -> AudioJob | None:
    """Apply a partial update to an existing job.

    Never creates a record. transcription_result is written only through
    record_transcription().

    Returns:
        The updated AudioJob, or None if no such job exists.

    Raises:
        ValueError: If a field is not updatable.
    """
    unknown = set(fields) - _MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {sorted(unknown)}")

    job = session.get(AudioJob, job_id)
    if job is None:
        return None

    for name, value in fields.items():
        setattr(job, name, value)
    if "last_updated" not in fields:
        job.last_updated = utc_now()
    session.flush()
    return job


def record_transcription(session: Session, job_id: str, result: Any) -> AudioJob | None:
    """Move a job to "transcribed" and store its result.

    The result is written only while the column is still empty, in the same
    UPDATE that moves the status, so the first stored result is kept even when
    two transcribe requests race. last_updated is stamped only when something
    changed; a repeated transcribe of a transcribed job leaves it alone.

    Returns:
        The refreshed AudioJob, or None if no such job exists.

    Raises:
        ValueError: If result is None (a transcribed job always has a result).
    """
    if result is None:
        raise ValueError("transcription result must not be None")

    now = utc_now()
    first_write = session.execute(
        update(AudioJob)
        .where(AudioJob.job_id == job_id, AudioJob.transcription_result.is_(None))
        .values(
            transcription_result=result,
            status=JobStatus.TRANSCRIBED.value,
            last_updated=now,
        ),
        execution_options={"synchronize_session": False},
    )
    if first_write.rowcount == 0:
        # Result already stored; only a status that drifted is brought back
        session.execute(
            update(AudioJob)
            .where(
                AudioJob.job_id == job_id,
                AudioJob.status != JobStatus.TRANSCRIBED.value,
            )
            .values(status=JobStatus.TRANSCRIBED.value, last_updated=now),
            execution_options={"synchronize_session": False},
        )

    session.flush()
    return session.get(AudioJob, job_id, populate_existing=True)


def delete_job(session: Session, job_id: str) -> bool:
    """Delete a job record.

    Returns:
        True iff a record existed and was removed.
    """
    result = session.execute(delete(AudioJob).where(AudioJob.job_id == job_id))
    return result.rowcount > 0


def list_jobs_by_owner(session: Session, owner_id: str) -> list[AudioJob]:
    """All jobs of an owner, most recent first."""
    stmt = (
        select(AudioJob)
        .where(AudioJob.owner_id == owner_id)
        .order_by(AudioJob.created_at.desc(), AudioJob.job_id.desc())
    )
    return list(session.execute(stmt).scalars())


def delete_all_jobs(session: Session) -> int:
    """Delete every job record.

    Returns:
        Number of rows removed.
    """
    result = session.execute(delete(AudioJob))
    return result.rowcount
