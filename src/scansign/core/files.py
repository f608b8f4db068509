"""Filesystem helpers for pipeline artifacts."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from ..errors import NotFoundError, StorageError

__all__ = ["atomic_write", "read_file", "remove_artifacts"]

_logger = logging.getLogger(__name__)


def read_file(path: str | Path, what: str = "File") -> bytes:
    """Read a whole file, mapping filesystem errors onto scansign errors."""
    p = Path(path)
    if not p.is_file():
        raise NotFoundError(f"{what} not found: {p}")
    try:
        return p.read_bytes()
    except OSError as e:
        raise StorageError(f"Cannot read {p}: {e}") from e


def atomic_write(path: str | Path, data: bytes) -> None:
    """Write data to a file atomically using temp file + rename.

    Prevents partial writes from leaving corrupt output files if
    the process is interrupted mid-write (e.g., disk full, Ctrl-C).
    An existing file at ``path`` is replaced.

    Raises:
        StorageError: if the file cannot be written.
    """
    target = Path(path)
    try:
        fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
    except OSError as e:
        raise StorageError(f"Cannot write {target}: {e}") from e
    tmp = Path(tmp_path)
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        fd = -1
        tmp.replace(target)
    except OSError as e:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise StorageError(f"Cannot write {target}: {e}") from e


def remove_artifacts(paths: list[Path]) -> list[Path]:
    """Delete intermediate files, logging (not raising) on failure.

    Missing files are skipped silently.

    Returns:
        Paths that could not be removed.
    """
    leftover: list[Path] = []
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:  # noqa: PERF203 -- one failed delete must not stop the rest
            _logger.warning("Cannot delete intermediate file %s: %s", path, e)
            leftover.append(path)
        else:
            _logger.debug("Deleted intermediate file %s", path)
    return leftover
