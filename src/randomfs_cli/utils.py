"""Utility functions for randomfs-cli."""

import contextlib
import hashlib
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def compute_digest(data: bytes) -> str:
    """SHA256 hex digest of a byte string."""
    return hashlib.sha256(data).hexdigest()


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_timestamp(ts: int) -> str:
    """Render epoch seconds as a UTC date, e.g. "2025-08-26 02:51:17 UTC"."""
    try:
        dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "out of range"
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def atomic_write_bytes(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Write bytes so that readers see either the old file or the complete new one.

    Content goes to a temp file in the destination directory, then is renamed
    into place. On failure the temp file is removed and nothing is left at
    ``path``.

    Raises:
        OSError: If the directory is missing or not writable
    """
    path = Path(path)
    with tempfile.NamedTemporaryFile(
        prefix=".rfs-",
        dir=str(path.parent),
        delete=False
    ) as tmp:
        tmppath = Path(tmp.name)

    try:
        with open(tmppath, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmppath, mode)
        os.replace(str(tmppath), str(path))
    except BaseException:
        with contextlib.suppress(OSError):
            tmppath.unlink()
        raise
    logger.debug("Wrote %d bytes to %s", len(data), path)
