"""scansign error types."""

from __future__ import annotations

__all__ = [
    "AuthorizationError",
    "CapacityExceededError",
    "ConfigError",
    "CredentialError",
    "DecodeError",
    "NotFoundError",
    "RenderError",
    "ScanSignError",
    "StorageError",
    "StructuralError",
]


class ScanSignError(Exception):
    """Base error for scansign operations."""


class NotFoundError(ScanSignError):
    """A source image, raster, PDF, or directory does not exist."""


class DecodeError(ScanSignError):
    """Raster bytes are not a valid image of the declared format."""


class StructuralError(ScanSignError):
    """PDF structure, parsing, or placeholder error."""


class CredentialError(ScanSignError):
    """PKCS#12 container could not be opened (bad passphrase, bad certificate)."""


class CapacityExceededError(ScanSignError):
    """Encoded signature does not fit in the reserved placeholder.

    Args:
        message: Human-readable error description.
        required: Hex characters needed by the encoded signature.
        available: Hex characters reserved in the document.
    """

    def __init__(self, message: str, *, required: int = 0, available: int = 0) -> None:
        super().__init__(message)
        self.required = required
        self.available = available

    def __reduce__(self) -> tuple[type[CapacityExceededError], tuple[str], dict[str, int]]:
        """Preserve sizes across pickle/unpickle."""
        return (type(self), (str(self),), {"required": self.required, "available": self.available})

    def __setstate__(self, state: dict[str, int] | None) -> None:
        if state is None:
            return
        self.required = state.get("required", 0)
        self.available = state.get("available", 0)


class RenderError(ScanSignError):
    """Signature image could not be rendered (font or canvas failure)."""


class StorageError(ScanSignError):
    """Filesystem failure while reading, writing, or deleting an artifact."""


class ConfigError(ScanSignError):
    """Configuration validation error."""


class AuthorizationError(ScanSignError):
    """Signer tax ID is not in the authorized list."""
