"""File handler module: encoding-aware reads and atomic writes for documents.

Sync functions do the actual I/O; async wrappers push them onto a worker
thread via run_sync() so the worker pool never blocks the event loop.
"""

import os
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

from mdait_sync.core.async_utils import run_sync

# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    # Plain UTF-8 is by far the common case for Markdown sources
    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # Normalize ascii to utf-8 (ascii is a strict subset of utf-8)
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file atomically, creating parent directories as needed.

    The content goes to a temporary file in the same directory which then
    replaces *path*, so readers never observe a half-written document.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up temp file on any failure.
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)


# =============================================================================
# Async Wrappers
# =============================================================================


async def read_file_async(path: Path) -> tuple[str, str]:
    """Async wrapper around ``read_file_with_encoding``."""
    return await run_sync(read_file_with_encoding, path)


async def write_file_async(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Async wrapper around ``write_file``."""
    return await run_sync(write_file, path, content, encoding)
