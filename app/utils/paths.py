"""Assistant Backend - Staging path utilities.

Returns Paths only. Does NOT create directories; that is the staging
area's job.
"""

import re
import time
from pathlib import Path, PureWindowsPath

_UNSAFE_CHARS = re.compile(r"[^\w.\- ]")


def safe_basename(declared_name: str) -> str:
    """Reduce a client-declared filename to a safe basename.

    Strips directory components (POSIX and Windows separators) and replaces
    anything other than word characters, dots, dashes and spaces with
    underscores.

    Returns:
        The sanitized basename, or "" if nothing usable remains.
    """
    name = PureWindowsPath(declared_name).name
    name = Path(name).name
    name = _UNSAFE_CHARS.sub("_", name).strip(" .")
    return name


def staged_name(declared_name: str, timestamp_ns: int | None = None) -> str:
    """Build the unique on-disk name for a staged upload.

    Args:
        declared_name: Original filename supplied by the client.
        timestamp_ns: Optional nanosecond timestamp (defaults to now).

    Returns:
        "{timestamp_ns}-{safe_basename}"
    """
    ts = timestamp_ns if timestamp_ns is not None else time.time_ns()
    return f"{ts}-{safe_basename(declared_name) or 'upload'}"


def staged_path(staging_dir: str | Path, name: str) -> Path:
    """Path of a staged file inside the staging directory."""
    return Path(staging_dir) / name
