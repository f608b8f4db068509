"""
Configuration and passphrase management.

Unified API for config-related functionality. Instead of importing
from individual submodules (config, credentials), import from this
package directly.
"""

from __future__ import annotations

from .config import (
    CONFIG_DIR,
    CONFIG_FILE,
    Settings,
    reset_all,
    resolve_settings,
    save_settings,
)
from .credentials import (
    clear_passphrase,
    get_credential_storage_info,
    resolve_passphrase,
    save_passphrase,
)

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "Settings",
    "clear_passphrase",
    "get_credential_storage_info",
    "reset_all",
    "resolve_passphrase",
    "resolve_settings",
    "save_passphrase",
    "save_settings",
]
