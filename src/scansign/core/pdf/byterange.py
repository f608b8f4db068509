"""ByteRange parsing and digesting for placeholder-bearing PDFs."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

from ...errors import ConfigError, StructuralError

__all__ = [
    "BYTERANGE_PATTERN",
    "SignaturePlaceholder",
    "compute_byterange_digest",
    "locate_placeholder",
    "signed_data",
]

# Regex pattern to find ByteRange arrays in PDF
BYTERANGE_PATTERN = rb"/ByteRange\s*\[\s*(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s*\]"

_HEX_DIGITS = re.compile(rb"\A[0-9A-Fa-f]*\Z")


@dataclass(frozen=True)
class SignaturePlaceholder:
    """Reserved /Contents region described by a ByteRange array.

    Attributes:
        byte_range: The four ByteRange values (off1, len1, off2, len2).
        hex_start: Offset of the first hex digit (just after '<').
        hex_len: Number of reserved hex digits.
    """

    byte_range: tuple[int, int, int, int]
    hex_start: int
    hex_len: int

    @property
    def capacity(self) -> int:
        """Reserved size in DER bytes."""
        return self.hex_len // 2


def locate_placeholder(pdf_bytes: bytes) -> SignaturePlaceholder:
    """Find and validate the last ByteRange in a PDF.

    ByteRange structure: [0 len1 off2 len2]. The gap between the spans
    is exactly the ``<hex>`` /Contents string, brackets included, and the
    second span runs to end of file.

    Raises:
        StructuralError: if there is no ByteRange or it is inconsistent.
    """
    br_matches = list(re.finditer(BYTERANGE_PATTERN, pdf_bytes))
    if not br_matches:
        raise StructuralError("No /ByteRange found in PDF -- placeholder missing?")
    m = br_matches[-1]
    off1, len1, off2, len2 = (int(m.group(i)) for i in range(1, 5))

    if off1 != 0:
        raise StructuralError(f"ByteRange offset1 should be 0, got {off1}")
    if len1 <= 0:
        raise StructuralError(f"Invalid ByteRange: len1 must be positive, got {len1}")
    if off2 <= len1 + 1:
        raise StructuralError(f"ByteRange offset2 ({off2}) leaves no room after len1 ({len1})")
    if off2 + len2 != len(pdf_bytes):
        raise StructuralError(
            f"ByteRange does not end at EOF: {off2}+{len2} != {len(pdf_bytes)}"
        )
    if pdf_bytes[len1 : len1 + 1] != b"<":
        raise StructuralError(
            f"Expected '<' at offset {len1}, got {pdf_bytes[len1 : len1 + 1]!r}"
        )
    if pdf_bytes[off2 - 1 : off2] != b">":
        raise StructuralError(
            f"Expected '>' at offset {off2 - 1}, got {pdf_bytes[off2 - 1 : off2]!r}"
        )

    hex_start = len1 + 1
    hex_len = off2 - 1 - hex_start
    if hex_len % 2:
        raise StructuralError(f"Contents placeholder has odd length {hex_len}")
    if not _HEX_DIGITS.match(pdf_bytes[hex_start : hex_start + hex_len]):
        raise StructuralError("Contents placeholder contains non-hex characters")

    return SignaturePlaceholder((off1, len1, off2, len2), hex_start, hex_len)


def signed_data(pdf_bytes: bytes, placeholder: SignaturePlaceholder) -> bytes:
    """Concatenate the two ByteRange spans (everything but ``<hex>``)."""
    off1, len1, off2, len2 = placeholder.byte_range
    return pdf_bytes[off1 : off1 + len1] + pdf_bytes[off2 : off2 + len2]


def compute_byterange_digest(pdf_bytes: bytes, algorithm: str = "sha256") -> bytes:
    """Digest the spans declared by the document's ByteRange.

    The reserved /Contents bytes are never part of the digest, so the
    value is the same before and after the signature is inserted.
    """
    placeholder = locate_placeholder(pdf_bytes)
    off1, len1, off2, len2 = placeholder.byte_range
    try:
        h = hashlib.new(algorithm)
    except ValueError as e:
        raise ConfigError(f"Unsupported digest algorithm: {algorithm}") from e
    h.update(pdf_bytes[off1 : off1 + len1])
    h.update(pdf_bytes[off2 : off2 + len2])
    return h.digest()
