"""Signature placeholder injection and CMS insertion.

High-level API for reserving a signature dictionary in a PDF and, once the
CMS exists, writing it into the reserved /Contents string.

Low-level PDF object building is in objects.py.
Structure analysis and incremental update assembly is in incremental.py.
ByteRange parsing and digesting is in byterange.py.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...constants import (
    DEFAULT_REASON,
    DEFAULT_SIGNATURE_CAPACITY,
    MAX_SIGNATURE_CAPACITY,
    MIN_SIGNATURE_CAPACITY,
)
from ...errors import CapacityExceededError, ConfigError, StructuralError
from .document import open_pdf
from .incremental import (
    assemble_incremental_update,
    find_form_fields,
    find_page_obj_num,
    find_prev_startxref,
    find_root_obj_num,
    patch_byterange,
)
from .objects import (
    allocate_sig_objects,
    build_catalog_override,
    build_page_override,
    build_sig_dict,
    build_sig_widget,
)

if TYPE_CHECKING:
    from datetime import datetime

__all__ = ["add_signature_placeholder", "insert_cms", "validate_capacity"]

_logger = logging.getLogger(__name__)


def _to_bytes(raw: str | bytes) -> bytes:
    """Convert a raw PDF object (str or bytes) to bytes."""
    return raw if isinstance(raw, bytes) else raw.encode("latin-1")


def validate_capacity(capacity: int) -> int:
    """Check a placeholder capacity (DER bytes) against sane bounds."""
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise ConfigError(f"Signature capacity must be an integer, got {capacity!r}")
    if not MIN_SIGNATURE_CAPACITY <= capacity <= MAX_SIGNATURE_CAPACITY:
        raise ConfigError(
            f"Signature capacity {capacity} out of range "
            f"[{MIN_SIGNATURE_CAPACITY}, {MAX_SIGNATURE_CAPACITY}]"
        )
    return capacity


def add_signature_placeholder(
    pdf_bytes: bytes,
    reason: str = DEFAULT_REASON,
    name: str | None = None,
    capacity: int = DEFAULT_SIGNATURE_CAPACITY,
    signing_time: datetime | None = None,
) -> tuple[bytes, int, int]:
    """
    Reserve a signature dictionary and zero-filled /Contents in a PDF.

    Uses a TRUE incremental update: the original PDF bytes are preserved
    exactly, and new objects are appended after the original %%EOF:
    the /Sig dictionary, an invisible signature widget on page 1, and
    overrides of the page (/Annots) and catalog (/AcroForm).

    The ByteRange is patched before returning, so the offsets describe the
    final layout. Any later edit to the document invalidates them.

    Args:
        pdf_bytes: Raw PDF content.
        reason: Human-readable signing reason (/Reason).
        name: Optional signer display name (/Name).
        capacity: Bytes reserved for the DER-encoded signature; the
            /Contents string holds twice as many hex digits.
        signing_time: Value for /M; defaults to now.

    Returns:
        (pdf_bytes, contents_hex_offset, contents_hex_length)

    Raises:
        StructuralError: if the input is not a well-formed PDF.
        ConfigError: if capacity is out of range.
    """
    hex_len = validate_capacity(capacity) * 2

    # ── Read-only analysis of the original PDF ──────────────────
    with open_pdf(pdf_bytes) as pdf:
        root_obj_num, root_gen = find_root_obj_num(pdf_bytes)
        page_obj_num, existing_annots = find_page_obj_num(pdf, 0)
        existing_fields = find_form_fields(pdf)
        prev_xref, prev_size, trailer_extra = find_prev_startxref(pdf_bytes, pdf)

        obj_nums = allocate_sig_objects(prev_size)
        annots_list = " ".join([*existing_annots, f"{obj_nums['annot']} 0 R"])
        page_override = build_page_override(pdf, page_obj_num, annots_list)
        catalog_override = build_catalog_override(
            pdf, root_obj_num, obj_nums["annot"], existing_fields
        )

    sig_dict_raw = build_sig_dict(obj_nums["sig"], reason, name, hex_len, signing_time)
    widget_raw = build_sig_widget(obj_nums, page_obj_num)

    raw_objects = [
        (_to_bytes(sig_dict_raw), obj_nums["sig"]),
        (_to_bytes(widget_raw), obj_nums["annot"]),
        (_to_bytes(page_override), page_obj_num),
        (_to_bytes(catalog_override), root_obj_num),
    ]

    # ── Assemble incremental update ────────────────────────────
    full_pdf = assemble_incremental_update(
        pdf_bytes=pdf_bytes,
        raw_objects=raw_objects,
        new_size=obj_nums["new_size"],
        prev_xref=prev_xref,
        root_obj_num=root_obj_num,
        root_gen=root_gen,
        trailer_extra=trailer_extra,
    )

    # ── Patch the ByteRange and return offsets ─────────────────
    prepared, hex_start, hex_len = patch_byterange(full_pdf, len(pdf_bytes), hex_len)
    _logger.debug(
        "Placeholder injected: %d -> %d bytes, hex_start=%d, capacity=%d",
        len(pdf_bytes),
        len(prepared),
        hex_start,
        capacity,
    )
    return prepared, hex_start, hex_len


def insert_cms(pdf_bytes: bytes, hex_start: int, hex_len: int, cms_der: bytes) -> bytes:
    """Insert the CMS DER bytes as a hex string into the reserved Contents.

    The hex is right-padded with '0' to fill the reservation exactly, so
    the document length and every other byte are unchanged.

    Raises:
        CapacityExceededError: if the encoded CMS does not fit.
        StructuralError: if the range does not point at a placeholder.
    """
    end = hex_start + hex_len
    if hex_start <= 0 or end + 1 > len(pdf_bytes):
        raise StructuralError(
            f"Invalid hex range: start={hex_start}, len={hex_len}, pdf_size={len(pdf_bytes)}"
        )
    if pdf_bytes[hex_start - 1 : hex_start] != b"<":
        raise StructuralError("Malformed Contents field: expected '<' before hex data")
    if pdf_bytes[end : end + 1] != b">":
        raise StructuralError("Malformed Contents field: expected '>' after hex data")

    cms_hex = cms_der.hex()
    if len(cms_hex) > hex_len:
        raise CapacityExceededError(
            f"Signature too large: {len(cms_hex)} hex chars > {hex_len} reserved "
            f"({len(cms_der)} > {hex_len // 2} bytes)",
            required=len(cms_hex),
            available=hex_len,
        )
    cms_hex_padded = cms_hex + "0" * (hex_len - len(cms_hex))

    result = bytearray(pdf_bytes)
    result[hex_start:end] = cms_hex_padded.encode("ascii")
    return bytes(result)
