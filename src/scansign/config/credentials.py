"""
Certificate passphrase management for scansign.

Passphrases are never stored in the config file. They come from the
SCANSIGN_CERT_PASS environment variable or from the system keychain
(keyring), keyed by the absolute certificate path.
"""

from __future__ import annotations

__all__ = [
    "clear_passphrase",
    "get_credential_storage_info",
    "resolve_passphrase",
    "save_passphrase",
]

import logging
import os
from pathlib import Path

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..constants import ENV_CERT_PASS
from ..errors import ConfigError

# Keyring service name for passphrase storage
_KEYRING_SERVICE = "scansign"

_logger = logging.getLogger(__name__)


def _account(cert_path: str | Path) -> str:
    """Keyring account name for a certificate: its absolute path."""
    return str(Path(cert_path).expanduser().resolve())


def resolve_passphrase(cert_path: str | Path | None) -> str | None:
    """Resolve the passphrase for a certificate.

    Priority: env var > keyring entry for ``cert_path``.

    Returns:
        The passphrase, or None if no source provides one.
    """
    env_pass = os.environ.get(ENV_CERT_PASS)
    if env_pass:
        _logger.debug("resolve_passphrase: source=env")
        return env_pass
    if cert_path is None:
        return None
    try:
        stored = keyring.get_password(_KEYRING_SERVICE, _account(cert_path))
    except (KeyringError, OSError, RuntimeError) as e:
        _logger.warning("Keyring lookup failed: %s", e)
        return None
    _logger.debug("resolve_passphrase: source=%s", "keyring" if stored else "none")
    return stored


def save_passphrase(cert_path: str | Path, passphrase: str) -> None:
    """Store a certificate passphrase in the system keychain.

    Raises:
        ConfigError: if no usable keyring backend is available.
    """
    try:
        keyring.set_password(_KEYRING_SERVICE, _account(cert_path), passphrase)
    except (KeyringError, OSError, RuntimeError) as e:
        raise ConfigError(
            f"Cannot store passphrase in {get_credential_storage_info()}: {e}\n"
            f"Set {ENV_CERT_PASS} instead."
        ) from e
    _logger.info("Passphrase saved to %s", get_credential_storage_info())


def clear_passphrase(cert_path: str | Path) -> None:
    """Delete the keyring entry for a certificate (best-effort)."""
    try:
        keyring.delete_password(_KEYRING_SERVICE, _account(cert_path))
        _logger.debug("Deleted keyring entry")
    except PasswordDeleteError:
        pass  # entry doesn't exist
    except (KeyringError, OSError, RuntimeError) as e:
        _logger.debug("Keyring delete failed: %s", e)


def get_credential_storage_info() -> str:
    """Return a human-readable name of the keyring backend in use."""
    backend = keyring.get_keyring()
    module = type(backend).__module__ or ""
    if "macOS" in module:
        return "macOS Keychain"
    if "Windows" in module or "WinVault" in module:
        return "Windows Credential Manager"
    if "SecretService" in module:
        return "Linux Secret Service"
    if "KWallet" in module:
        return "KDE Wallet"
    return f"System keychain ({type(backend).__name__})"
