"""Assistant Backend - Utility modules."""

from app.utils.atomic_io import (
    atomic_stream_to_file,
    cleanup_orphan_temp_files,
    remove_if_exists,
)
from app.utils.paths import safe_basename, staged_name, staged_path

__all__ = [
    # atomic_io
    "atomic_stream_to_file",
    "cleanup_orphan_temp_files",
    "remove_if_exists",
    # paths
    "safe_basename",
    "staged_name",
    "staged_path",
]
