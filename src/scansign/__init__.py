"""
scansign -- turn scanned images into digitally signed PDFs.

Each .jpg/.png in a directory is wrapped in a PDF, stamped with a visible
signer block, and signed with a PKCS#7 detached signature from a PKCS#12
certificate.
"""

from __future__ import annotations

from .config import Settings, resolve_settings
from .constants import __version__
from .core.appearance import render_signature_image, write_signature_image
from .core.credential import Credential, load_credential
from .core.identity import SignerIdentity
from .core.pdf import (
    add_signature_placeholder,
    composite_signature_image,
    compute_byterange_digest,
    embed_image_as_pdf,
)
from .core.signing import sign_prepared_pdf
from .errors import (
    AuthorizationError,
    CapacityExceededError,
    ConfigError,
    CredentialError,
    DecodeError,
    NotFoundError,
    RenderError,
    ScanSignError,
    StorageError,
    StructuralError,
)
from .pipeline import BatchReport, RunOutcome, RunState, SigningPipeline, discover_source_images

__all__ = [
    "AuthorizationError",
    "BatchReport",
    "CapacityExceededError",
    "ConfigError",
    "Credential",
    "CredentialError",
    "DecodeError",
    "NotFoundError",
    "RenderError",
    "RunOutcome",
    "RunState",
    "ScanSignError",
    "Settings",
    "SignerIdentity",
    "SigningPipeline",
    "StorageError",
    "StructuralError",
    "__version__",
    "add_signature_placeholder",
    "composite_signature_image",
    "compute_byterange_digest",
    "discover_source_images",
    "embed_image_as_pdf",
    "load_credential",
    "render_signature_image",
    "resolve_settings",
    "sign_prepared_pdf",
    "write_signature_image",
]
