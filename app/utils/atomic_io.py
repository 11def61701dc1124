"""Assistant Backend - Atomic file I/O helpers.

Staged uploads are published with the usual rule:
1. Write to a temp path in the same directory
2. Flush + fsync
3. Rename temp -> final

A staged path therefore either holds the complete upload or does not exist.
Interrupted writes leave only `*.tmp` files, which are swept at startup.
"""

import os
from pathlib import Path

TEMP_SUFFIX = ".tmp"


def _write_all(fd: int, data: bytes) -> None:
    """Write every byte of data to fd, retrying short writes and EINTR.

    Raises:
        OSError: If the write fails or makes no progress.
    """
    view = memoryview(data)
    while view:
        try:
            written = os.write(fd, view)
        except InterruptedError:
            continue
        if written == 0:
            raise OSError("os.write() made no progress")
        view = view[written:]


def atomic_stream_to_file(
    stream,
    final_path: str | Path,
    chunk_size: int = 65536,
) -> int:
    """Copy a readable stream into final_path atomically.

    Args:
        stream: File-like object with read(n). Text chunks are UTF-8 encoded.
        final_path: Target path. Parent directories are created.
        chunk_size: Read size.

    Returns:
        Total bytes written.

    Raises:
        OSError: If writing or renaming fails. The temp file is removed first.
    """
    final_path = Path(final_path)
    temp_path = final_path.with_name(final_path.name + TEMP_SUFFIX)
    final_path.parent.mkdir(parents=True, exist_ok=True)

    total = 0
    fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        while chunk := stream.read(chunk_size):
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            _write_all(fd, chunk)
            total += len(chunk)
        os.fsync(fd)
    except BaseException:
        os.close(fd)
        remove_if_exists(temp_path)
        raise
    os.close(fd)

    os.replace(temp_path, final_path)
    return total


def remove_if_exists(path: str | Path) -> bool:
    """Remove a file, treating "already gone" as success.

    Returns:
        True if a file was removed, False if it did not exist.

    Raises:
        OSError: For failures other than the file being absent.
    """
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True


def cleanup_orphan_temp_files(directory: str | Path, temp_suffix: str = TEMP_SUFFIX) -> int:
    """Remove leftover temp files from interrupted writes.

    Args:
        directory: Directory to scan (non-recursive).
        temp_suffix: Suffix identifying temp files.

    Returns:
        Number of files removed.
    """
    directory = Path(directory)
    if not directory.exists():
        return 0

    removed = 0
    for temp_file in directory.glob(f"*{temp_suffix}"):
        try:
            temp_file.unlink()
            removed += 1
        except OSError:
            pass  # Best-effort
    return removed
