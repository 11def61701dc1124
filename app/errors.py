"""Assistant Backend - Error taxonomy.

Every error surfaced to API callers carries an error code and the HTTP status
it maps to. Remote failures keep the remote status and body.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Error codes returned in API error bodies."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    CHAT_NOT_FOUND = "CHAT_NOT_FOUND"
    JOB_EXISTS = "JOB_EXISTS"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AssistantError(Exception):
    """Base exception for errors reported to API callers."""

    status_code = 500

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}")


class ValidationError(AssistantError):
    """Client supplied an incomplete or malformed request."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(ErrorCode.VALIDATION_FAILED, message)


class AuthenticationError(AssistantError):
    """No caller identity was supplied by the identity provider."""

    status_code = 401

    def __init__(self, message: str = "Unauthenticated"):
        super().__init__(ErrorCode.UNAUTHENTICATED, message)


class ForbiddenError(AssistantError):
    """Caller is identified but not allowed to do this."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(ErrorCode.FORBIDDEN, message)


class GatewayError(AssistantError):
    """Remote transcription service returned non-2xx or was unreachable.

    Attributes:
        remote_status: HTTP status from the remote service, None for transport failures.
        remote_body: Parsed remote response body (or error text).
    """

    def __init__(self, operation: str, remote_status: int | None, remote_body: Any = None):
        self.operation = operation
        self.remote_status = remote_status
        self.remote_body = remote_body
        if remote_status is None:
            message = f"Transcription service unreachable during {operation}"
        else:
            message = f"Transcription service returned {remote_status} during {operation}"
        super().__init__(ErrorCode.GATEWAY_ERROR, message)

    @property
    def status_code(self) -> int:
        # Transport failures carry no remote status
        if self.remote_status is None:
            return 500
        # Unfollowed redirects are not relayable
        if self.remote_status < 400:
            return 502
        return self.remote_status


class NotFoundError(AssistantError):
    """Referenced record does not exist locally."""

    status_code = 404

    def __init__(self, error_code: str, message: str):
        super().__init__(error_code, message)


class JobNotFoundError(NotFoundError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(ErrorCode.JOB_NOT_FOUND, f"Audio job not found: {job_id}")


class ChatNotFoundError(NotFoundError):
    def __init__(self, chat_id: str):
        self.chat_id = chat_id
        super().__init__(ErrorCode.CHAT_NOT_FOUND, f"Chat not found: {chat_id}")


class JobAlreadyExistsError(AssistantError):
    """A record with the remote-issued id already exists."""

    status_code = 409

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(ErrorCode.JOB_EXISTS, f"Audio job already exists: {job_id}")


class PersistenceError(AssistantError):
    """Local store unavailable or the write failed."""

    status_code = 503

    def __init__(self, reason: str):
        super().__init__(ErrorCode.PERSISTENCE_FAILED, f"Persistence failed: {reason}")


class PartialUploadCleanupError(Exception):
    """Staged file could not be removed.

    Logged, never surfaced: it cannot affect job correctness.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to release staged file {path}: {reason}")
