"""Assistant Backend - Audio job orchestrator.

Drives a job through the remote pipeline and keeps the local record in step
with what the transcription service has confirmed.

Stage progression: uploaded -> processing -> transcribed, cleanup from any
non-terminal stage.

Rules:
- One remote call per transition, no automatic retry.
- The local store is written only after the remote call succeeded, and is
  committed in the same step. A failed remote call leaves the record as it was.
- Staged uploads are released on every exit path.

Known limitations:
- Status probes return the remote view without touching the local record.
- Processing requests do not move the local record to "processing".
- No per-job lock. Concurrent transitions on one job race; the store keeps
  the first stored transcription result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from app import store
from app.errors import (
    AssistantError,
    GatewayError,
    JobNotFoundError,
    PersistenceError,
    ValidationError,
)
from app.models import AudioJob

if TYPE_CHECKING:
    from typing import BinaryIO

    from sqlalchemy.orm import Session

    from app.gateway import GatewayResponse, TranscriptionGateway
    from app.staging import StagingArea

logger = logging.getLogger(__name__)


# --- Result Types ---


@dataclass
class CreateResult:
    """Outcome of a successful create transition."""

    job: AudioJob
    remote: GatewayResponse


@dataclass
class TranscribeResult:
    """Outcome of a successful transcribe transition.

    job is None when the remote service knew the job but no local record exists.
    """

    remote: GatewayResponse
    job: AudioJob | None
    result_stored: bool


@dataclass
class CleanupResult:
    """Outcome of a cleanup that removed the local record."""

    job_id: str
    remote: GatewayResponse


@dataclass
class TranscriptView:
    """Read-only projection of a job's stored transcription."""

    job_id: str
    status: str
    ready: bool
    result: Any


# Stored in place of an empty transcription body, like any unparsed payload
EMPTY_RESULT_MARKER = {"raw": ""}


def _storable_result(remote: GatewayResponse) -> Any:
    if remote.payload is None:
        return dict(EMPTY_RESULT_MARKER)
    return remote.payload


# --- Orchestrator ---


class JobOrchestrator:
    """Runs job transitions for one request.

    Args:
        session: Database session for this request (unit of work).
        gateway: Shared transcription gateway.
        staging: Shared staging area.
    """

    def __init__(self, session: Session, gateway: TranscriptionGateway, staging: StagingArea):
        self.session = session
        self.gateway = gateway
        self.staging = staging

    # --- Transitions ---

    def create_job(
        self, stream: BinaryIO | None, filename: str | None, owner_id: str
    ) -> CreateResult:
        """Stage an upload, hand it to the remote service, record the job.

        Raises:
            ValidationError: Missing file or owner.
            GatewayError: Remote upload failed (no record created).
            JobAlreadyExistsError: Remote issued an id we already hold.
            PersistenceError: Record could not be written.
        """
        if stream is None:
            raise ValidationError("No file provided")
        if not owner_id:
            raise ValidationError("Owner is required")

        with self.staging.staged(stream, filename) as staged:
            remote = self.gateway.upload(staged)
            logger.info(
                "Uploaded %s for owner=%s as job_id=%s",
                staged.original_name,
                owner_id,
                remote.job_id,
            )

            try:
                job = store.create_job(
                    self.session,
                    job_id=remote.job_id,
                    owner_id=owner_id,
                    stored_name=staged.stored_name,
                    original_name=staged.original_name,
                )
                self.session.commit()
            except AssistantError:
                self.session.rollback()
                raise
            except SQLAlchemyError as e:
                self.session.rollback()
                self._discard_remote_orphan(remote.job_id)
                raise PersistenceError(str(e)) from e

        return CreateResult(job=job, remote=remote)

    def probe_status(self, job_id: str) -> GatewayResponse:
        """Return the remote status verbatim. Does not touch the local record."""
        return self.gateway.get_status(job_id)

    def request_processing(self, job_id: str, options: Any = None) -> GatewayResponse:
        """Forward a processing request. The local record is not updated."""
        remote = self.gateway.request_processing(job_id, options)
        logger.info("Processing requested for job_id=%s", job_id)
        return remote

    def transcribe(
        self, job_id: str, use_fallback: bool | str | None = None
    ) -> TranscribeResult:
        """Request transcription and persist the result.

        A later successful call is forwarded and returned, but never clears or
        replaces an already stored result.

        Raises:
            GatewayError: Remote transcription failed (no local change).
            PersistenceError: Result could not be written.
        """
        remote = self.gateway.request_transcription(job_id, use_fallback)

        try:
            existing = store.get_job(self.session, job_id)
            already_stored = existing is not None and existing.transcription_result is not None
            job = store.record_transcription(self.session, job_id, _storable_result(remote))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(str(e)) from e

        if job is None:
            logger.warning(
                "Transcribed job_id=%s has no local record; result not persisted", job_id
            )
            return TranscribeResult(remote=remote, job=None, result_stored=False)

        if already_stored:
            logger.info("job_id=%s already had a stored result; keeping it", job_id)
        else:
            logger.info("Stored transcription for job_id=%s", job_id)
        return TranscribeResult(remote=remote, job=job, result_stored=not already_stored)

    def cleanup(self, job_id: str) -> CleanupResult:
        """Clean up remotely, then delete the local record.

        Raises:
            GatewayError: Remote cleanup failed (record left untouched).
            JobNotFoundError: Remote cleanup succeeded but no local record existed.
            PersistenceError: Record could not be deleted.
        """
        remote = self.gateway.cleanup(job_id)

        try:
            deleted = store.delete_job(self.session, job_id)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(str(e)) from e

        if not deleted:
            logger.warning("Remote cleanup of job_id=%s succeeded but no local record", job_id)
            raise JobNotFoundError(job_id)

        logger.info("Cleaned up job_id=%s", job_id)
        return CleanupResult(job_id=job_id, remote=remote)

    # --- Reads ---

    def get_transcript(self, job_id: str) -> TranscriptView:
        """Project the stored transcription of a job.

        Raises:
            JobNotFoundError: No local record.
        """
        job = self._load(job_id)
        return TranscriptView(
            job_id=job.job_id,
            status=job.status,
            ready=job.transcription_result is not None,
            result=job.transcription_result,
        )

    def get_job(self, job_id: str) -> AudioJob:
        return self._load(job_id)

    def list_jobs(self, owner_id: str) -> list[AudioJob]:
        try:
            return store.list_jobs_by_owner(self.session, owner_id)
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e

    # --- Internal Helpers ---

    def _load(self, job_id: str) -> AudioJob:
        try:
            job = store.get_job(self.session, job_id)
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _discard_remote_orphan(self, job_id: str) -> None:
        """Best-effort remote cleanup of a job we failed to record."""
        try:
            self.gateway.cleanup(job_id)
            logger.info("Discarded unrecorded remote job_id=%s", job_id)
        except GatewayError:
            logger.warning(
                "Remote job_id=%s is orphaned (record write failed, cleanup failed)",
                job_id,
                exc_info=True,
            )


__all__ = [
    "CleanupResult",
    "CreateResult",
    "JobOrchestrator",
    "TranscribeResult",
    "TranscriptView",
]
