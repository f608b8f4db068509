"""Stamp the signature image onto the first page of an existing PDF."""

from __future__ import annotations

import logging
from pathlib import Path

from ...constants import OVERLAY_SCALE, OVERLAY_X, OVERLAY_Y
from ...errors import StructuralError
from ..appearance import prepare_pdf_image, read_source_image
from ..files import atomic_write, read_file
from .document import draw_image, embed_image_xobject, open_pdf, serialize_pdf

__all__ = ["composite_signature_image", "overlay_image_on_first_page"]

_logger = logging.getLogger(__name__)


def overlay_image_on_first_page(
    pdf_bytes: bytes,
    image_path: str | Path,
    scale: float = OVERLAY_SCALE,
    x: float = OVERLAY_X,
    y: float = OVERLAY_Y,
) -> bytes:
    """Draw a PNG raster on page 1, above existing content.

    The raster keeps its aspect ratio and is scaled by ``scale`` (1 px = 1 pt
    before scaling). Other pages are left untouched. The result is saved
    without object streams so byte offsets can be patched later.

    Raises:
        NotFoundError: if the raster does not exist.
        DecodeError: if the raster bytes are not valid PNG.
        StructuralError: if the PDF cannot be parsed or saved.
    """
    if scale <= 0:
        raise StructuralError(f"Overlay scale must be positive, got {scale}")

    # The raster is always PNG-encoded, whatever its file suffix says
    source = read_source_image(image_path, fmt="PNG")
    img_data = prepare_pdf_image(source)
    width = img_data["width"] * scale
    height = img_data["height"] * scale

    with open_pdf(pdf_bytes) as pdf:
        page = pdf.pages[0]
        image = embed_image_xobject(pdf, img_data)
        draw_image(pdf, page, image, x, y, width, height)
        result = serialize_pdf(pdf)

    _logger.debug(
        "Overlay %s at (%.1f, %.1f) size %.1fx%.1f: %d -> %d bytes",
        source.name,
        x,
        y,
        width,
        height,
        len(pdf_bytes),
        len(result),
    )
    return result


def composite_signature_image(
    pdf_path: str | Path,
    image_path: str | Path,
    output_path: str | Path,
    scale: float = OVERLAY_SCALE,
    x: float = OVERLAY_X,
    y: float = OVERLAY_Y,
) -> bytes:
    """Read a PDF, stamp the signature raster on page 1, write the result.

    Returns:
        The composited PDF bytes (also written to ``output_path``).
    """
    pdf_bytes = read_file(pdf_path, "PDF")
    result = overlay_image_on_first_page(pdf_bytes, image_path, scale, x, y)
    atomic_write(output_path, result)
    _logger.info("Signature image added to PDF: %s", output_path)
    return result
