"""
Application-wide constants for scansign.

Page layout, placeholder sizes, artifact naming, and environment variable
names are centralized here for easy maintenance and configuration.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("scansign")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "ARTIFACT_COMPOSITED_PREFIX",
    "ARTIFACT_PROCESSED_PREFIX",
    "ARTIFACT_SIGNATURE_PREFIX",
    "ARTIFACT_SIGNED_PREFIX",
    "DEFAULT_DIGEST",
    "DEFAULT_REASON",
    "DEFAULT_SIGNATURE_CAPACITY",
    "ENV_CAPACITY",
    "ENV_CERT_PASS",
    "ENV_CERT_PATH",
    "ENV_FONT",
    "ENV_REPOSITORY",
    "ENV_SIGNER_NAME",
    "ENV_TAX_ID",
    "MAX_SIGNATURE_CAPACITY",
    "MIN_SIGNATURE_CAPACITY",
    "OVERLAY_SCALE",
    "OVERLAY_X",
    "OVERLAY_Y",
    "PAGE_IMAGE_X",
    "PAGE_IMAGE_Y",
    "PAGE_PAD_H",
    "PAGE_PAD_W",
    "PDF_MAGIC",
    "SIGNATURE_CANVAS_HEIGHT",
    "SIGNATURE_CANVAS_WIDTH",
    "SIGNATURE_FONT_SIZE",
    "SIGNATURE_LINE_HEIGHT",
    "SIGNATURE_TEXT_X",
    "SIGNATURE_TEXT_Y",
    "SOURCE_IMAGE_SUFFIXES",
    "__version__",
]

# ── Scanned page layout (PDF points, 1 image px = 1 pt) ──────────────

# Extra page width/height around the embedded scan
PAGE_PAD_W = 100
PAGE_PAD_H = 150

# Lower-left corner of the scan on the page
PAGE_IMAGE_X = 50
PAGE_IMAGE_Y = 100


# ── Signature raster ─────────────────────────────────────────────────

SIGNATURE_CANVAS_WIDTH = 1600
SIGNATURE_CANVAS_HEIGHT = 400
SIGNATURE_FONT_SIZE = 40
SIGNATURE_LINE_HEIGHT = 40

# Baseline of the first text line
SIGNATURE_TEXT_X = 50
SIGNATURE_TEXT_Y = 100


# ── Overlay placement ────────────────────────────────────────────────

OVERLAY_SCALE = 0.8
OVERLAY_X = 100
OVERLAY_Y = 100


# ── Signature placeholder ────────────────────────────────────────────

# Bytes reserved for the DER-encoded CMS (hex-encoded in the PDF, so the
# /Contents string is twice as long)
DEFAULT_SIGNATURE_CAPACITY = 16384

MIN_SIGNATURE_CAPACITY = 1024
MAX_SIGNATURE_CAPACITY = 1024 * 1024

DEFAULT_REASON = "Assinatura Digital"
DEFAULT_DIGEST = "sha256"

# PDF file magic bytes
PDF_MAGIC = b"%PDF-"


# ── Artifact naming ──────────────────────────────────────────────────

SOURCE_IMAGE_SUFFIXES = frozenset((".jpg", ".jpeg", ".png"))

ARTIFACT_PROCESSED_PREFIX = "processed_"
ARTIFACT_SIGNATURE_PREFIX = "signature_"
ARTIFACT_COMPOSITED_PREFIX = "with_signature_image_"
ARTIFACT_SIGNED_PREFIX = "signed_"


# ── Environment variable names ──────────────────────────────────────

ENV_CERT_PATH = "SCANSIGN_CERT_PATH"
ENV_CERT_PASS = "SCANSIGN_CERT_PASS"
ENV_SIGNER_NAME = "SCANSIGN_SIGNER_NAME"
ENV_TAX_ID = "SCANSIGN_TAX_ID"
ENV_CAPACITY = "SCANSIGN_CAPACITY"
ENV_FONT = "SCANSIGN_FONT"
ENV_REPOSITORY = "SCANSIGN_REPOSITORY"
