"""Assistant Backend - Pydantic models for API validation.

Request/response bodies for the HTTP surface. Remote transcription payloads
are opaque and typed as Any.
"""

from datetime import datetime  # noqa: I001
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# --- Request Models ---


class CreateChatRequest(BaseModel):
    """Request payload for starting a chat."""

    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., min_length=1, description="Opening user message")


class AppendExchangeRequest(BaseModel):
    """Request payload for appending a question/answer pair to a chat."""

    model_config = ConfigDict(extra="forbid")

    question: str | None = Field(default=None, description="Optional user message")
    answer: str = Field(..., description="Model answer")
    img: str | None = Field(default=None, description="Optional image reference for the question")


# --- Response Models ---


class AudioJobResponse(BaseModel):
    """Audio job record as returned by the API."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    job_id: str = Field(..., description="Identifier issued by the transcription service")
    owner_id: str = Field(..., description="Owner identity")
    stored_name: str = Field(..., description="Staged file name")
    original_name: str = Field(..., description="Client-declared file name")
    status: str = Field(..., description="Last orchestrator-observed stage")
    transcription_result: Any = Field(default=None, description="Stored remote transcription")
    created_at: datetime = Field(..., description="When the record was created")
    last_updated: datetime = Field(..., description="Last successful transition")


class JobCreatedResponse(BaseModel):
    """Response for a successful upload."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="success", description="Operation status")
    job_id: str = Field(..., description="Identifier issued by the transcription service")
    job_status: str = Field(..., description="Local job status")
    original_name: str = Field(..., description="Client-declared file name")
    stored_name: str = Field(..., description="Staged file name")
    remote: Any = Field(default=None, description="Upload response from the transcription service")


class CleanupResponse(BaseModel):
    """Response for a completed cleanup."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="success", description="Operation status")
    job_id: str = Field(..., description="Cleaned job")
    deleted: bool = Field(default=True, description="Local record removed")
    remote: Any = Field(default=None, description="Cleanup response from the transcription service")


class TranscriptResponse(BaseModel):
    """Stored transcription projection.

    ready=False distinguishes "no result yet" from an unknown job (404).
    """

    model_config = ConfigDict(extra="forbid")

    job_id: str = Field(..., description="Job identifier")
    status: str = Field(..., description="Local job status")
    ready: bool = Field(..., description="True once a transcription result is stored")
    transcription_result: Any = Field(default=None, description="Stored remote transcription")


class ResetResponse(BaseModel):
    """Counts removed by the administrative reset."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="success", description="Operation status")
    deleted: dict[str, int] = Field(..., description="Rows deleted per entity type")


class ChatCreatedResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    chat_id: str


class ChatSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    chat_id: str
    title: str


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    role: str
    text: str
    img: str | None = None
    created_at: datetime


class ChatResponse(BaseModel):
    """Chat with its full history."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    chat_id: str
    owner_id: str
    title: str
    created_at: datetime
    history: list[ChatMessageResponse] = Field(default_factory=list)


class MessageResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str


class ErrorResponse(BaseModel):
    """Response for failed operations."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="error", description="Operation status")
    error_code: str = Field(..., description="Error taxonomy code")
    error_message: str = Field(..., description="Human-readable error description")
    remote_status: int | None = Field(
        default=None, description="Status returned by the transcription service, if any"
    )
    remote_body: Any = Field(
        default=None, description="Body returned by the transcription service, if any"
    )


__all__ = [
    "CreateChatRequest",
    "AppendExchangeRequest",
    "AudioJobResponse",
    "JobCreatedResponse",
    "CleanupResponse",
    "TranscriptResponse",
    "ResetResponse",
    "ChatCreatedResponse",
    "ChatSummary",
    "ChatMessageResponse",
    "ChatResponse",
    "MessageResponse",
    "ErrorResponse",
]
