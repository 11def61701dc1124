"""Shared pytest fixtures for Assistant Backend tests.

This module contains common fixtures used across multiple test files,
reducing duplication and improving test maintainability.

The remote transcription service is replaced by FakeTranscriptionService,
served through httpx.MockTransport. It records every request it receives.
"""

import tempfile
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from app.db import init_db
from app.gateway import TranscriptionGateway
from app.orchestrator import JobOrchestrator
from app.staging import StagingArea
from services.assistant_api.main import (
    app,
    get_db_session,
    override_gateway,
    override_session_factory,
    override_staging_area,
)

FAKE_BASE_URL = "http://transcription.test"


class FakeTranscriptionService:
    """In-process stand-in for the remote transcription service.

    Default responses:
        POST   /upload          -> 200 {"audio_id": "job-<n>"}
        GET    /status/{id}     -> 200 {"job_id": id, "status": "uploaded"}
        POST   /process/{id}    -> 202 {"job_id": id, "status": "processing"}
        POST   /transcribe/{id} -> 200 {"text": "hello"}
        DELETE /cleanup/{id}    -> 200 {"job_id": id, "status": "cleaned"}

    Use respond() to script a different response and fail() to simulate a
    transport failure for one operation.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self._next_id = 1
        self._overrides: dict[str, dict | Exception] = {}

    def respond(self, operation: str, status_code: int, json=None, text: str | None = None):
        """Script the response for every later call of an operation."""
        if text is not None:
            self._overrides[operation] = {"status_code": status_code, "text": text}
        else:
            self._overrides[operation] = {"status_code": status_code, "json": json}

    def fail(self, operation: str):
        """Make every later call of an operation fail at the transport level."""
        self._overrides[operation] = httpx.ConnectError("connection refused")

    def requests_for(self, operation: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.split("/")[1] == operation]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(request.read())

        parts = request.url.path.strip("/").split("/")
        operation = parts[0]
        job_id = parts[1] if len(parts) > 1 else None

        override = self._overrides.get(operation)
        if isinstance(override, Exception):
            raise override
        if override is not None:
            return httpx.Response(**override)

        if operation == "upload":
            job_id = f"job-{self._next_id}"
            self._next_id += 1
            return httpx.Response(200, json={"audio_id": job_id})
        if operation == "status":
            return httpx.Response(200, json={"job_id": job_id, "status": "uploaded"})
        if operation == "process":
            return httpx.Response(202, json={"job_id": job_id, "status": "processing"})
        if operation == "transcribe":
            return httpx.Response(200, json={"text": "hello"})
        if operation == "cleanup":
            return httpx.Response(200, json={"job_id": job_id, "status": "cleaned"})
        return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture
def temp_db():
    """Create a temporary database for testing.

    Creates an isolated SQLite database in a temporary directory.
    The database is cleaned up after the test completes.

    Yields:
        tuple: (db_path, engine, SessionFactory)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        engine, SessionFactory = init_db(db_path)
        yield db_path, engine, SessionFactory
        engine.dispose()


@pytest.fixture
def db_session(temp_db):
    """Session bound to the temporary database."""
    _, _, SessionFactory = temp_db
    session = SessionFactory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def staging_dir():
    """Empty temporary staging directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "staging"
        path.mkdir()
        yield path


@pytest.fixture
def staging(staging_dir):
    return StagingArea(staging_dir)


@pytest.fixture
def remote():
    """Fake remote transcription service."""
    return FakeTranscriptionService()


@pytest.fixture
def gateway(remote):
    """Gateway wired to the fake remote service."""
    gw = TranscriptionGateway(FAKE_BASE_URL, transport=httpx.MockTransport(remote.handler))
    yield gw
    gw.close()


@pytest.fixture
def orchestrator(db_session, gateway, staging):
    return JobOrchestrator(db_session, gateway, staging)


@pytest.fixture
def client(temp_db, gateway, staging):
    """Create a FastAPI test client with temp database and fake remote.

    Overrides the database dependency to use the temporary test database and
    injects the fake gateway and staging area before startup.

    Yields:
        tuple: (test_client, SessionFactory)
    """
    db_path, engine, SessionFactory = temp_db
    override_session_factory(SessionFactory)
    override_gateway(gateway)
    override_staging_area(staging)

    # Override the dependency
    def get_test_session():
        session = SessionFactory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = get_test_session

    with TestClient(app) as client:
        yield client, SessionFactory

    # Clean up overrides
    app.dependency_overrides.clear()
    override_session_factory(None)
    override_gateway(None)
    override_staging_area(None)


@pytest.fixture
def sample_audio_file():
    """Create a small fake MP3 file for testing.

    Content is opaque to this service; only the bytes are forwarded.

    Yields:
        Path: Path to the temporary file.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "a.mp3"
        path.write_bytes(b"ID3" + b"\x00" * 1024)
        yield path
