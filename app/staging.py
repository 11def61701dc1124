"""Assistant Backend - Blob staging area.

Holds uploaded audio on local disk for the lifetime of one request, long
enough to forward it to the transcription service.

Rules:
- Every staged file gets a unique, timestamp-prefixed name.
- release() is idempotent and never raises; removal failures are logged.
- Callers use staged() so the file is released on every exit path.

Collisions between concurrent requests are statistically negligible
(nanosecond timestamp plus basename), not impossible.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from app.config import STAGING_CHUNK_SIZE
from app.errors import PartialUploadCleanupError, ValidationError
from app.utils.atomic_io import (
    atomic_stream_to_file,
    cleanup_orphan_temp_files,
    remove_if_exists,
)
from app.utils.paths import staged_name, staged_path

if TYPE_CHECKING:
    from typing import BinaryIO

logger = logging.getLogger(__name__)


@dataclass
class StagedFile:
    """Handle to a staged upload."""

    path: Path
    stored_name: str
    original_name: str
    size_bytes: int

    @property
    def exists(self) -> bool:
        return self.path.exists()


class StagingArea:
    """Ephemeral on-disk store for uploads in flight."""

    def __init__(self, root_dir: str | Path, chunk_size: int = STAGING_CHUNK_SIZE):
        self.root_dir = Path(root_dir)
        self.chunk_size = chunk_size

    def stage(self, stream: BinaryIO, declared_name: str | None) -> StagedFile:
        """Write an upload stream to a fresh staged file.

        Args:
            stream: Readable binary stream.
            declared_name: Filename declared by the client.

        Returns:
            StagedFile handle. The caller owns it and must release it.

        Raises:
            ValidationError: If no filename was declared.
            OSError: If the file could not be written (nothing is left behind).
        """
        if not declared_name or not declared_name.strip():
            raise ValidationError("Uploaded file has no filename")

        name = staged_name(declared_name)
        path = staged_path(self.root_dir, name)
        size = atomic_stream_to_file(stream, path, chunk_size=self.chunk_size)
        logger.debug("Staged %s (%d bytes) at %s", declared_name, size, path)

        return StagedFile(
            path=path,
            stored_name=name,
            original_name=declared_name,
            size_bytes=size,
        )

    def release(self, handle: StagedFile) -> bool:
        """Remove a staged file.

        Safe to call repeatedly. Never raises.

        Returns:
            True if a file was removed by this call.
        """
        try:
            removed = remove_if_exists(handle.path)
        except OSError as e:
            err = PartialUploadCleanupError(str(handle.path), str(e))
            logger.warning("%s", err, exc_info=True)
            return False
        if removed:
            logger.debug("Released staged file %s", handle.path)
        return removed

    @contextmanager
    def staged(self, stream: BinaryIO, declared_name: str | None) -> Iterator[StagedFile]:
        """Stage an upload for the duration of a with-block.

        The staged file is released when the block exits, whether it
        returns normally or raises.
        """
        handle = self.stage(stream, declared_name)
        try:
            yield handle
        finally:
            self.release(handle)

    def cleanup_orphans(self) -> int:
        """Remove temp files left by interrupted writes.

        Returns:
            Number of files removed.
        """
        return cleanup_orphan_temp_files(self.root_dir)
