"""Scoped temporary files for parsers that need a real path on disk.

Several ingestions can run at once against the same temp directory, so
every file name combines a nanosecond timestamp with a random token.  The
file is removed when the ``with`` block exits, whether it exits normally,
via an exception, or via task cancellation.
"""

from __future__ import annotations

import os
import re
import secrets
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

logger = structlog.get_logger(logger_name=__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_NAME_LENGTH = 80


def _safe_name(filename: str) -> str:
    """Reduce an uploaded filename to a short, path-safe suffix."""
    base = os.path.basename(filename or "") or "upload"
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._") or "upload"
    return cleaned[-_MAX_NAME_LENGTH:]


def unique_temp_name(filename: str) -> str:
    """Return a collision-resistant file name derived from *filename*."""
    return f"{time.time_ns()}-{secrets.token_hex(8)}-{_safe_name(filename)}"


@contextmanager
def scoped_temp_file(
    data: bytes,
    filename: str,
    directory: str | Path | None = None,
) -> Iterator[Path]:
    """Write *data* to a uniquely named temp file and yield its path.

    Parameters
    ----------
    data:
        Bytes to write.
    filename:
        Original upload name; only used (sanitised) as a readable suffix.
    directory:
        Target directory.  ``None`` or ``""`` uses the system temp dir.

    Yields
    ------
    Path
        Path of the written file.  It no longer exists once the block exits.
    """
    target_dir = Path(directory) if directory else Path(tempfile.gettempdir())
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / unique_temp_name(filename)

    # "xb" refuses to overwrite, so a name clash surfaces as an error
    # instead of two runs sharing one file.  Ownership starts once open succeeds.
    fh = open(path, "xb")  # noqa: SIM115
    try:
        with fh:
            fh.write(data)
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("temp_file_cleanup_failed", path=str(path), error=str(exc))
            raise
