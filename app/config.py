"""Assistant Backend - Configuration constants.

Plain module-level settings, resolved once at import time from environment
variables. No external config libraries. Paths default to locations under the
repository root.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Repository root (parent of app/)
REPO_ROOT = Path(__file__).parent.parent.resolve()

# Data directory for the default SQLite database and staged uploads
DATA_DIR = REPO_ROOT / "data"


def _get_path(env_name: str, default: Path) -> Path:
    """Get a directory path from the environment or use the default."""
    env_val = os.environ.get(env_name)
    if env_val:
        return Path(env_val).expanduser()
    return default


def _get_positive_float(env_name: str, default: float) -> float:
    """Get a positive float from the environment or use the default.

    Invalid or non-positive values are ignored with a warning.

    Returns:
        The parsed value, or default.
    """
    env_val = os.environ.get(env_name)
    if env_val:
        try:
            value = float(env_val)
            if value > 0:
                return value
        except ValueError:
            pass
        logger.warning("Ignoring invalid %s=%r, using %s", env_name, env_val, default)
    return default


# Ephemeral staging area for uploaded blobs (one file per in-flight request)
STAGING_DIR = _get_path("ASSISTANT_STAGING_DIR", DATA_DIR / "staging")

# Persistence layer address (SQLAlchemy URL)
DB_PATH = DATA_DIR / "assistant.db"
DATABASE_URL = os.environ.get("ASSISTANT_DATABASE_URL") or f"sqlite:///{DB_PATH}"

# Remote transcription service base address
TRANSCRIPTION_SERVER_URL = os.environ.get(
    "ASSISTANT_TRANSCRIPTION_URL", "http://localhost:8000"
).rstrip("/")

# Timeout (seconds) applied to every call to the transcription service
GATEWAY_TIMEOUT_SECONDS = _get_positive_float("ASSISTANT_GATEWAY_TIMEOUT_SEC", 30.0)

# Shared secret for the administrative reset. Unset means the endpoint is open.
ADMIN_API_KEY = os.environ.get("ASSISTANT_ADMIN_KEY") or None

# Multipart field name expected by the remote /upload endpoint
UPLOAD_FIELD_NAME = "file"

# Read size when staging upload streams
STAGING_CHUNK_SIZE = 65536

# Chat titles are the first N characters of the opening message
CHAT_TITLE_MAX_CHARS = 40
