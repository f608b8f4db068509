"""
Configuration management for scansign.

Stores certificate location, signer identity, and the scan repository root
in ~/.scansign/config.json. Passphrase handling lives in ``credentials.py``.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "Settings",
    "reset_all",
    "resolve_settings",
    "save_settings",
]

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..constants import (
    DEFAULT_REASON,
    DEFAULT_SIGNATURE_CAPACITY,
    ENV_CAPACITY,
    ENV_CERT_PATH,
    ENV_FONT,
    ENV_REPOSITORY,
    ENV_SIGNER_NAME,
    ENV_TAX_ID,
)
from ..core.pdf.builder import validate_capacity
from ..errors import ConfigError
from ._storage import CONFIG_DIR, CONFIG_FILE, load_config, load_raw_config, save_config

if TYPE_CHECKING:
    from collections.abc import Mapping

_logger = logging.getLogger(__name__)

_PATH_FIELDS = frozenset(("cert_path", "font_path", "repository_root"))

_ENV_VARS = {
    "cert_path": ENV_CERT_PATH,
    "signer_name": ENV_SIGNER_NAME,
    "tax_id": ENV_TAX_ID,
    "capacity": ENV_CAPACITY,
    "font_path": ENV_FONT,
    "repository_root": ENV_REPOSITORY,
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved pipeline configuration.

    Attributes:
        cert_path: PKCS#12 file with the signing key.
        signer_name: Name drawn on the signature image; the certificate
            CN is used when unset.
        tax_id: CNPJ/CPF drawn on the signature image.
        reason: /Reason of the signature dictionary.
        capacity: Bytes reserved for the DER signature.
        font_path: TrueType font for the signature image.
        repository_root: Directory holding <scanner>/<user> scan folders.
    """

    cert_path: Path | None = None
    signer_name: str | None = None
    tax_id: str = ""
    reason: str = DEFAULT_REASON
    capacity: int = DEFAULT_SIGNATURE_CAPACITY
    font_path: Path | None = None
    repository_root: Path | None = None

    def scan_directory(self, scanner: str, user: str) -> Path:
        """Resolve the scan folder of a scanner/user pair under the repository root."""
        if self.repository_root is None:
            raise ConfigError(f"Repository root is not configured (set {ENV_REPOSITORY})")
        for part in (scanner, user):
            if not part or part in (".", "..") or "/" in part or "\\" in part:
                raise ConfigError(f"Invalid scanner/user path component: {part!r}")
        return self.repository_root / scanner / user


def _parse_capacity(value: object, source: str) -> int:
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ConfigError(f"Invalid capacity {value!r} from {source}") from None
    return validate_capacity(value)  # type: ignore[arg-type]


def _coerce(key: str, value: object, source: str) -> object:
    if key == "capacity":
        return _parse_capacity(value, source)
    if key in _PATH_FIELDS:
        return Path(str(value)).expanduser()
    return value


def resolve_settings(overrides: Mapping[str, object] | None = None) -> Settings:
    """
    Build Settings from every configuration source.

    Priority: explicit overrides > env vars > config file > defaults.
    Override values of None are ignored.

    Raises:
        ConfigError: if a capacity value is not an integer in range.
    """
    config = load_config()
    values: dict[str, object] = {}
    sources: dict[str, str] = {}

    for field in dataclasses.fields(Settings):
        key = field.name
        if overrides is not None and overrides.get(key) is not None:
            values[key] = _coerce(key, overrides[key], "override")
            sources[key] = "override"
            continue
        env_name = _ENV_VARS.get(key)
        env_val = os.environ.get(env_name, "").strip() if env_name else ""
        if env_val:
            values[key] = _coerce(key, env_val, env_name)  # type: ignore[arg-type]
            sources[key] = "env"
        elif key in config:
            values[key] = _coerce(key, config[key], str(CONFIG_FILE))  # type: ignore[literal-required]
            sources[key] = "config"

    _logger.debug("resolve_settings: sources=%s", sources)
    return Settings(**values)  # type: ignore[arg-type]


def save_settings(**fields: object) -> None:
    """Merge the given fields into the config file.

    A value of None removes the key. Unknown keys already in the file
    are preserved.
    """
    known = {f.name for f in dataclasses.fields(Settings)}
    unknown = set(fields) - known
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

    config = load_raw_config()
    for key, value in fields.items():
        if value is None:
            config.pop(key, None)
        elif key == "capacity":
            config[key] = _parse_capacity(value, "setup")
        else:
            config[key] = str(value)
    save_config(config)


def reset_all() -> None:
    """Clear the saved passphrase and every config entry."""
    from .credentials import clear_passphrase

    cert_path = load_config().get("cert_path")
    if cert_path:
        clear_passphrase(cert_path)
    save_config({})
