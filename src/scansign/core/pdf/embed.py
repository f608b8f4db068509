"""Wrap a scanned raster image into a new single-page PDF."""

from __future__ import annotations

import logging
from pathlib import Path

from ...constants import PAGE_IMAGE_X, PAGE_IMAGE_Y, PAGE_PAD_H, PAGE_PAD_W
from .. import require_pikepdf as _require_pikepdf
from ..appearance import SourceImage, prepare_pdf_image, read_source_image
from ..files import atomic_write
from .document import draw_image, embed_image_xobject, serialize_pdf

__all__ = ["build_image_pdf", "embed_image_as_pdf", "page_size_for_image"]

_logger = logging.getLogger(__name__)


def page_size_for_image(width: int, height: int) -> tuple[int, int]:
    """Page dimensions (points) for a scan of the given pixel size."""
    return width + PAGE_PAD_W, height + PAGE_PAD_H


def build_image_pdf(source: SourceImage) -> bytes:
    """Build a one-page PDF showing ``source`` at its natural size.

    The page is the image plus a 100 pt horizontal and 150 pt vertical
    margin; the image's lower-left corner sits at (50, 100).

    Raises:
        DecodeError: if the image bytes are invalid.
        StructuralError: if the PDF cannot be serialized.
    """
    img_data = prepare_pdf_image(source)
    width, height = img_data["width"], img_data["height"]
    page_w, page_h = page_size_for_image(width, height)

    pikepdf = _require_pikepdf()
    with pikepdf.Pdf.new() as pdf:
        pdf.add_blank_page(page_size=(page_w, page_h))
        page = pdf.pages[0]
        image = embed_image_xobject(pdf, img_data)
        draw_image(pdf, page, image, PAGE_IMAGE_X, PAGE_IMAGE_Y, width, height)
        pdf_bytes = serialize_pdf(pdf)

    _logger.debug(
        "Embedded %s (%s, %dx%d) into %dx%d page: %d bytes",
        source.name or "image",
        source.format,
        width,
        height,
        page_w,
        page_h,
        len(pdf_bytes),
    )
    return pdf_bytes


def embed_image_as_pdf(image_path: str | Path, output_path: str | Path) -> bytes:
    """Read a JPEG/PNG scan, wrap it in a PDF, and write it to ``output_path``.

    Returns:
        The serialized PDF bytes (also written to disk).

    Raises:
        NotFoundError: if the image does not exist.
        DecodeError: if the bytes are not a valid image of the declared format.
        StorageError: if the PDF cannot be written.
    """
    source = read_source_image(image_path)
    pdf_bytes = build_image_pdf(source)
    atomic_write(output_path, pdf_bytes)
    _logger.info("PDF created with image: %s", output_path)
    return pdf_bytes
