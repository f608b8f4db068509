"""
Low-level config file I/O for scansign.

Handles reading, writing, and validating the on-disk config.json.
Used by both config.py and credentials.py -- shared storage layer
that neither module owns privately.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "ConfigDict",
    "load_config",
    "load_raw_config",
    "save_config",
]

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypedDict, cast

from ..constants import MAX_SIGNATURE_CAPACITY, MIN_SIGNATURE_CAPACITY

_logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".scansign"
CONFIG_FILE = CONFIG_DIR / "config.json"

_STR_KEYS = ("cert_path", "signer_name", "tax_id", "reason", "font_path", "repository_root")


class ConfigDict(TypedDict, total=False):
    """Type definition for the config file structure."""

    cert_path: str
    signer_name: str
    tax_id: str
    reason: str
    capacity: int
    font_path: str
    repository_root: str


def load_raw_config() -> dict[str, object]:
    """Load raw config dict from disk, preserving all keys.

    Used for merge-and-save operations to preserve unknown keys.
    """
    try:
        data: Any = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return cast("dict[str, object]", data)
    except FileNotFoundError:
        pass
    except json.JSONDecodeError as e:
        _logger.warning("Config file corrupted, ignoring: %s", e)
    except OSError as e:
        _logger.warning("Cannot read config file: %s", e)
    return {}


def _validate_config_dict(data: dict[str, object]) -> ConfigDict:
    """Pick only known keys with correct types."""
    result: ConfigDict = {}
    for key in _STR_KEYS:
        val = data.get(key)
        if isinstance(val, str) and val:
            result[key] = val  # type: ignore[literal-required]  # dynamic key from known set
    capacity = data.get("capacity")
    if isinstance(capacity, int) and not isinstance(capacity, bool):
        if MIN_SIGNATURE_CAPACITY <= capacity <= MAX_SIGNATURE_CAPACITY:
            result["capacity"] = capacity
        else:
            _logger.warning(
                "Config capacity=%d out of range [%d, %d], ignoring",
                capacity,
                MIN_SIGNATURE_CAPACITY,
                MAX_SIGNATURE_CAPACITY,
            )
    return result


def load_config() -> ConfigDict:
    """Load config from disk, returning only known typed keys."""
    return _validate_config_dict(load_raw_config())


def save_config(config: dict[str, object]) -> None:
    """Save config to disk with restricted permissions (0600).

    Uses atomic write (temp file + rename) to prevent corruption
    if the process is interrupted mid-write.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)
    if os.name != "nt":
        try:
            CONFIG_DIR.chmod(0o700)
        except OSError:
            _logger.warning("Failed to set restrictive permissions on %s", CONFIG_DIR)
    content = json.dumps(config, indent=2, ensure_ascii=False) + "\n"
    fd, tmp_path = tempfile.mkstemp(dir=CONFIG_DIR, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        fd = -1  # closed by the context manager
        if os.name != "nt":
            try:
                tmp.chmod(0o600)
            except OSError:
                _logger.exception("Failed to set restrictive permissions on %s", tmp)
        tmp.replace(CONFIG_FILE)
    except BaseException:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise
