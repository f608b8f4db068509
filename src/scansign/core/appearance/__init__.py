"""Raster handling: scanned page images and the signature image."""

from .image import PdfImageData, SourceImage, prepare_pdf_image, read_source_image
from .synthesis import load_font, render_signature_image, write_signature_image

__all__ = [
    "PdfImageData",
    "SourceImage",
    "load_font",
    "prepare_pdf_image",
    "read_source_image",
    "render_signature_image",
    "write_signature_image",
]
