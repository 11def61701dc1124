"""Assistant Backend - Remote transcription gateway.

Thin synchronous client over the external transcription service:

    POST   /upload                         (multipart, field "file")
    GET    /status/{job_id}
    POST   /process/{job_id}               (JSON options forwarded verbatim)
    POST   /transcribe/{job_id}[?use_fallback=true|false]
    DELETE /cleanup/{job_id}

No retries. Any non-2xx response or transport failure becomes a GatewayError
carrying the remote status (None for transport failures) and body.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from app.config import GATEWAY_TIMEOUT_SECONDS, UPLOAD_FIELD_NAME
from app.errors import GatewayError

if TYPE_CHECKING:
    from app.staging import StagedFile

logger = logging.getLogger(__name__)

# Keys the remote service may use for the id it assigns at upload
_JOB_ID_KEYS = ("audio_id", "job_id", "id")


class GatewayOperation(StrEnum):
    UPLOAD = "upload"
    STATUS = "status"
    PROCESS = "process"
    TRANSCRIBE = "transcribe"
    CLEANUP = "cleanup"


@dataclass
class GatewayResponse:
    """Successful response from the transcription service.

    The remote schema is not ours, so the body is kept as-is: parsed JSON when
    possible, otherwise {"raw": <text>} with parsed=False.
    """

    kind: GatewayOperation
    status_code: int
    payload: Any
    parsed: bool = True


@dataclass
class UploadResult(GatewayResponse):
    """Upload response plus the job id extracted from it."""

    job_id: str = field(default="")


def _decode_body(response: httpx.Response) -> tuple[Any, bool]:
    """Return (body, parsed) for a response."""
    if not response.content:
        return None, True
    try:
        return response.json(), True
    except ValueError:
        return {"raw": response.text}, False


def _job_path(endpoint: str, job_id: str) -> str:
    return f"/{endpoint}/{quote(job_id, safe='')}"


def _extract_job_id(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    for key in _JOB_ID_KEYS:
        value = payload.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def fallback_query_value(use_fallback: bool | str | None) -> str | None:
    """Coerce a use_fallback flag to the literal query value.

    None means "not supplied" and yields None (no query parameter). Strings
    are true only when they read "true" in any case.
    """
    if use_fallback is None:
        return None
    if isinstance(use_fallback, str):
        return "true" if use_fallback.strip().lower() == "true" else "false"
    return "true" if use_fallback else "false"


class TranscriptionGateway:
    """Client for the remote transcription service.

    One instance per process; httpx.Client is safe to share across threads.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = GATEWAY_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": "assistant-backend/0.1"},
        )

    def _send(
        self,
        operation: GatewayOperation,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> GatewayResponse:
        """Send one request and normalize the outcome.

        Raises:
            GatewayError: On transport failure or non-2xx status.
        """
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "Transcription service %s %s failed: %s", method, path, e
            )
            raise GatewayError(operation, None, str(e)) from e

        body, parsed = _decode_body(response)
        if not response.is_success:
            logger.error(
                "Transcription service %s %s returned %d: %s",
                method,
                path,
                response.status_code,
                body,
            )
            raise GatewayError(operation, response.status_code, body)

        logger.debug(
            "Transcription service %s %s returned %d", method, path, response.status_code
        )
        return GatewayResponse(
            kind=operation, status_code=response.status_code, payload=body, parsed=parsed
        )

    def upload(self, staged: StagedFile) -> UploadResult:
        """Upload a staged file. Returns the remote-issued job id.

        Raises:
            GatewayError: On failure, or if the response names no job id.
        """
        content_type = mimetypes.guess_type(staged.original_name)[0] or "application/octet-stream"
        with open(staged.path, "rb") as fh:
            result = self._send(
                GatewayOperation.UPLOAD,
                "POST",
                "/upload",
                files={UPLOAD_FIELD_NAME: (staged.original_name, fh, content_type)},
            )

        job_id = _extract_job_id(result.payload)
        if job_id is None:
            logger.error("Upload response has no job id: %s", result.payload)
            raise GatewayError(
                GatewayOperation.UPLOAD,
                502,
                {"error": "upload response missing job id", "response": result.payload},
            )

        return UploadResult(
            kind=result.kind,
            status_code=result.status_code,
            payload=result.payload,
            parsed=result.parsed,
            job_id=job_id,
        )

    def get_status(self, job_id: str) -> GatewayResponse:
        return self._send(GatewayOperation.STATUS, "GET", _job_path("status", job_id))

    def request_processing(self, job_id: str, options: Any = None) -> GatewayResponse:
        """Ask the remote service to process a job with caller-supplied options."""
        return self._send(
            GatewayOperation.PROCESS,
            "POST",
            _job_path("process", job_id),
            json=options if options is not None else {},
        )

    def request_transcription(
        self, job_id: str, use_fallback: bool | str | None = None
    ) -> GatewayResponse:
        """Ask the remote service to transcribe a job.

        The body is always empty JSON. use_fallback is only sent when supplied.
        """
        params = {}
        fallback = fallback_query_value(use_fallback)
        if fallback is not None:
            params["use_fallback"] = fallback
        return self._send(
            GatewayOperation.TRANSCRIBE,
            "POST",
            _job_path("transcribe", job_id),
            params=params or None,
            json={},
        )

    def cleanup(self, job_id: str) -> GatewayResponse:
        return self._send(GatewayOperation.CLEANUP, "DELETE", _job_path("cleanup", job_id))

    def close(self) -> None:
        self.client.close()
