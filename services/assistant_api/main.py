"""Assistant Backend - FastAPI application.

HTTP surface for the audio job lifecycle (upload, status, process,
transcribe, cleanup, transcript), the chat history log and the administrative
reset. Job transitions are delegated to app.orchestrator.JobOrchestrator.

Caller identity comes from the X-User-Id header, set by the upstream
identity provider. This service does not authenticate users itself.

Run with:
    uvicorn services.assistant_api.main:app --reload  # dev server only
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, File, Header, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import chats, config
from app.admin import check_admin_key, reset_all
from app.db import init_db
from app.errors import (
    AssistantError,
    AuthenticationError,
    ErrorCode,
    ForbiddenError,
    GatewayError,
    PersistenceError,
    ValidationError,
)
from app.gateway import GatewayResponse, TranscriptionGateway
from app.orchestrator import JobOrchestrator
from app.schemas import (
    AppendExchangeRequest,
    AudioJobResponse,
    ChatCreatedResponse,
    ChatMessageResponse,
    ChatResponse,
    ChatSummary,
    CleanupResponse,
    CreateChatRequest,
    ErrorResponse,
    JobCreatedResponse,
    MessageResponse,
    ResetResponse,
    TranscriptResponse,
)
from app.staging import StagingArea

logger = logging.getLogger(__name__)

# --- Process-wide Collaborators ---

# Initialized on startup (or injected by tests before startup)
_session_factory = None
_gateway: TranscriptionGateway | None = None
_staging_area: StagingArea | None = None


def get_session_factory():
    """Get the session factory.

    Raises:
        RuntimeError: If session factory not initialized (app lifespan not invoked).
    """
    if _session_factory is None:
        raise RuntimeError("Session factory not initialized. App lifespan not invoked?")
    return _session_factory


def get_db_session():
    """Dependency that provides a database session."""
    SessionFactory = get_session_factory()
    session = SessionFactory()
    try:
        yield session
    finally:
        session.close()


def get_gateway() -> TranscriptionGateway:
    if _gateway is None:
        raise RuntimeError("Transcription gateway not initialized. App lifespan not invoked?")
    return _gateway


def get_staging_area() -> StagingArea:
    if _staging_area is None:
        raise RuntimeError("Staging area not initialized. App lifespan not invoked?")
    return _staging_area


def get_orchestrator(
    session: Annotated[Session, Depends(get_db_session)],
    gateway: Annotated[TranscriptionGateway, Depends(get_gateway)],
    staging: Annotated[StagingArea, Depends(get_staging_area)],
) -> JobOrchestrator:
    return JobOrchestrator(session, gateway, staging)


def get_current_user(
    x_user_id: Annotated[str | None, Header(description="Caller identity")] = None,
) -> str:
    """Caller identity asserted by the identity provider.

    Raises:
        AuthenticationError: If the header is missing or blank.
    """
    if x_user_id is None or not x_user_id.strip():
        raise AuthenticationError()
    return x_user_id.strip()


def require_admin_key(
    x_admin_key: Annotated[str | None, Header(description="Admin key")] = None,
) -> None:
    check_admin_key(config.ADMIN_API_KEY, x_admin_key)


# --- Lifespan ---


def _cleanup_orphan_staging_files_safe(staging: StagingArea) -> None:
    """Remove temp files left in the staging area by a previous run (best-effort).

    Never crashes startup.
    """
    try:
        removed = staging.cleanup_orphans()
        if removed > 0:
            logger.info("Startup cleanup: removed %d orphan staging temp files", removed)
    except Exception:
        logger.warning("Startup staging cleanup failed (non-fatal)", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Builds the process-wide collaborators from configuration once. Anything
    already injected (tests) is left in place.
    """
    global _session_factory, _gateway, _staging_area

    owns_gateway = False
    if _session_factory is None:
        config.DATA_DIR.mkdir(parents=True, exist_ok=True)
        _, _session_factory = init_db()
    if _gateway is None:
        _gateway = TranscriptionGateway(config.TRANSCRIPTION_SERVER_URL)
        owns_gateway = True
    if _staging_area is None:
        _staging_area = StagingArea(config.STAGING_DIR)

    _cleanup_orphan_staging_files_safe(_staging_area)

    if config.ADMIN_API_KEY is None:
        logger.warning(
            "ASSISTANT_ADMIN_KEY is not set: DELETE /admin/reset is unauthenticated"
        )

    yield

    if owns_gateway:
        _gateway.close()
        _gateway = None


# --- FastAPI App ---


app = FastAPI(
    title="Assistant Backend",
    description="Audio transcription job orchestration and chat history.",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Error Handling ---


def make_error_response(error: AssistantError) -> JSONResponse:
    """Create a JSON error response for a domain error."""
    remote_status = None
    remote_body = None
    if isinstance(error, GatewayError):
        remote_status = error.remote_status
        remote_body = error.remote_body
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(
            error_code=error.error_code,
            error_message=error.message,
            remote_status=remote_status,
            remote_body=remote_body,
        ).model_dump(),
    )


@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return make_error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid request")
    if location:
        message = f"{location}: {message}"
    return make_error_response(ValidationError(message))


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error during %s %s", request.method, request.url.path)
    return make_error_response(PersistenceError("database error"))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Log full exception server-side, return generic message to client
    logger.exception("Unexpected error during %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error_code=ErrorCode.INTERNAL_ERROR,
            error_message="An unexpected error occurred",
        ).model_dump(),
    )


_BODYLESS_STATUSES = frozenset({204, 304})


def proxied(remote: GatewayResponse) -> Response:
    """Relay a transcription service response to the caller verbatim.

    Empty remote bodies, and statuses that forbid a body, are relayed bodyless.
    """
    if remote.payload is None or remote.status_code in _BODYLESS_STATUSES:
        return Response(status_code=remote.status_code)
    return JSONResponse(status_code=remote.status_code, content=remote.payload)


_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    401: {"model": ErrorResponse, "description": "Missing caller identity"},
    404: {"model": ErrorResponse, "description": "Job not found"},
    500: {"model": ErrorResponse, "description": "Transcription service unreachable"},
    503: {"model": ErrorResponse, "description": "Local store unavailable"},
}


# --- Audio Job Endpoints ---


@app.post(
    "/jobs",
    status_code=201,
    response_model=JobCreatedResponse,
    responses={**_ERROR_RESPONSES, 409: {"model": ErrorResponse, "description": "Duplicate id"}},
    summary="Upload an audio file and create a job",
)
def create_job(
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    user_id: Annotated[str, Depends(get_current_user)],
    file: Annotated[UploadFile | None, File(description="Audio file")] = None,
):
    """Stage the upload, forward it to the transcription service, record the job.

    The staged copy is removed before the response is sent, whatever happens.
    """
    result = orchestrator.create_job(
        file.file if file is not None else None,
        file.filename if file is not None else None,
        owner_id=user_id,
    )
    return JobCreatedResponse(
        job_id=result.job.job_id,
        job_status=result.job.status,
        original_name=result.job.original_name,
        stored_name=result.job.stored_name,
        remote=result.remote.payload,
    )


@app.get(
    "/jobs",
    response_model=list[AudioJobResponse],
    responses=_ERROR_RESPONSES,
    summary="List audio jobs of an owner",
)
def list_jobs(
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    user_id: Annotated[str, Depends(get_current_user)],
    owner: Annotated[str | None, Query(description="Owner id (defaults to caller)")] = None,
):
    """Jobs of the owner, most recent first. Callers may only list their own."""
    if owner is not None and owner != user_id:
        raise ForbiddenError("Cannot list jobs of another owner")
    jobs = orchestrator.list_jobs(user_id)
    return [AudioJobResponse.model_validate(job) for job in jobs]


@app.get(
    "/jobs/{job_id}",
    response_model=AudioJobResponse,
    responses=_ERROR_RESPONSES,
    summary="Get the local record of a job",
)
def get_job(
    job_id: str,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    _user_id: Annotated[str, Depends(get_current_user)],
):
    return AudioJobResponse.model_validate(orchestrator.get_job(job_id))


@app.get(
    "/jobs/{job_id}/status",
    responses=_ERROR_RESPONSES,
    summary="Probe remote job status",
)
def job_status(
    job_id: str,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    _user_id: Annotated[str, Depends(get_current_user)],
):
    """Remote status, relayed as-is. The local record is not updated."""
    return proxied(orchestrator.probe_status(job_id))


@app.post(
    "/jobs/{job_id}/process",
    responses=_ERROR_RESPONSES,
    summary="Request remote processing",
)
def process_job(
    job_id: str,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    _user_id: Annotated[str, Depends(get_current_user)],
    options: Annotated[Any, Body(description="Options forwarded verbatim")] = None,
):
    return proxied(orchestrator.request_processing(job_id, options))


@app.post(
    "/jobs/{job_id}/transcribe",
    responses=_ERROR_RESPONSES,
    summary="Request transcription and store the result",
)
def transcribe_job(
    job_id: str,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    _user_id: Annotated[str, Depends(get_current_user)],
    use_fallback: Annotated[
        str | None, Query(alias="useFallback", description="Use the fallback engine")
    ] = None,
    use_fallback_legacy: Annotated[
        str | None, Query(alias="use_fallback", include_in_schema=False)
    ] = None,
):
    """Relay the remote transcription and persist it on the local record.

    The flag is only forwarded when supplied; any value other than "true"
    (case-insensitive) is sent as false.
    """
    flag = use_fallback if use_fallback is not None else use_fallback_legacy
    result = orchestrator.transcribe(job_id, flag)
    return proxied(result.remote)


@app.delete(
    "/jobs/{job_id}",
    response_model=CleanupResponse,
    responses=_ERROR_RESPONSES,
    summary="Clean up a job remotely and delete its record",
)
def cleanup_job(
    job_id: str,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    _user_id: Annotated[str, Depends(get_current_user)],
):
    result = orchestrator.cleanup(job_id)
    return CleanupResponse(job_id=result.job_id, remote=result.remote.payload)


@app.get(
    "/jobs/{job_id}/transcript",
    response_model=TranscriptResponse,
    responses=_ERROR_RESPONSES,
    summary="Get the stored transcription",
)
def get_transcript(
    job_id: str,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    _user_id: Annotated[str, Depends(get_current_user)],
):
    """Stored result. ready=false means the job exists but has no result yet."""
    view = orchestrator.get_transcript(job_id)
    return TranscriptResponse(
        job_id=view.job_id,
        status=view.status,
        ready=view.ready,
        transcription_result=view.result,
    )


# --- Chat History Endpoints ---


def _chat_response(chat) -> ChatResponse:
    return ChatResponse(
        chat_id=chat.chat_id,
        owner_id=chat.owner_id,
        title=chat.title,
        created_at=chat.created_at,
        history=[ChatMessageResponse.model_validate(m) for m in chat.messages],
    )


@app.post("/chats", status_code=201, response_model=ChatCreatedResponse, summary="Start a chat")
def create_chat(
    request: CreateChatRequest,
    session: Annotated[Session, Depends(get_db_session)],
    user_id: Annotated[str, Depends(get_current_user)],
):
    chat = chats.create_chat(session, user_id, request.text)
    session.commit()
    return ChatCreatedResponse(chat_id=chat.chat_id)


@app.get("/userchats", response_model=list[ChatSummary], summary="List the caller's chats")
def list_user_chats(
    session: Annotated[Session, Depends(get_db_session)],
    user_id: Annotated[str, Depends(get_current_user)],
):
    return [ChatSummary.model_validate(c) for c in chats.list_user_chats(session, user_id)]


@app.get("/chats/{chat_id}", response_model=ChatResponse, summary="Get a chat with history")
def get_chat(
    chat_id: str,
    session: Annotated[Session, Depends(get_db_session)],
    user_id: Annotated[str, Depends(get_current_user)],
):
    return _chat_response(chats.get_chat(session, chat_id, user_id))


@app.put("/chats/{chat_id}", response_model=MessageResponse, summary="Append to a chat")
def append_to_chat(
    chat_id: str,
    request: AppendExchangeRequest,
    session: Annotated[Session, Depends(get_db_session)],
    user_id: Annotated[str, Depends(get_current_user)],
):
    chats.append_exchange(
        session,
        chat_id,
        user_id,
        answer=request.answer,
        question=request.question,
        img=request.img,
    )
    session.commit()
    return MessageResponse(message="Conversation updated")


@app.delete("/userchats/{chat_id}", response_model=MessageResponse, summary="Delete a chat")
def delete_chat(
    chat_id: str,
    session: Annotated[Session, Depends(get_db_session)],
    user_id: Annotated[str, Depends(get_current_user)],
):
    chats.delete_chat(session, chat_id, user_id)
    session.commit()
    return MessageResponse(message="Chat deleted")


# --- Administrative Endpoints ---


@app.delete(
    "/admin/reset",
    response_model=ResetResponse,
    responses={403: {"model": ErrorResponse, "description": "Invalid admin key"}},
    summary="Delete all audio job and chat records",
)
def admin_reset(
    session: Annotated[Session, Depends(get_db_session)],
    _admin: Annotated[None, Depends(require_admin_key)],
):
    counts = reset_all(session)
    return ResetResponse(deleted=counts.as_dict())


@app.get("/health", summary="Health check")
def health_check():
    """Simple health check endpoint."""
    return {"status": "ok"}


# --- For testing: allow injecting collaborators ---


def override_session_factory(factory):
    """Override the session factory for testing."""
    global _session_factory
    _session_factory = factory


def override_gateway(gateway: TranscriptionGateway | None):
    """Override the transcription gateway for testing."""
    global _gateway
    _gateway = gateway


def override_staging_area(staging: StagingArea | None):
    """Override the staging area for testing."""
    global _staging_area
    _staging_area = staging


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8080)
