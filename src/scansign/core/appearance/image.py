# pyright: reportUnknownMemberType=false
"""
Raster loading and preparation for PDF image XObjects.

Reads JPEG/PNG files, checks that the bytes really are the declared format,
and returns pixel data ready for embedding: JPEGs pass through untouched
(/DCTDecode), everything else is deflate-compressed with the alpha channel
split into a soft mask.
"""

from __future__ import annotations

import io
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, TypedDict

from ...errors import DecodeError, NotFoundError, StorageError

if TYPE_CHECKING:
    from PIL import Image

__all__ = [
    "PdfImageData",
    "SourceImage",
    "prepare_pdf_image",
    "read_source_image",
]


@dataclass(frozen=True)
class SourceImage:
    """Raw image bytes plus the format they claim to be ("JPEG" or "PNG")."""

    data: bytes
    format: str
    name: str = ""


class PdfImageData(TypedDict):
    """Data returned by prepare_pdf_image."""

    samples: bytes  # Encoded pixel data (JPEG stream or deflated samples)
    filter: str  # "/DCTDecode" or "/FlateDecode"
    colorspace: str  # "/DeviceRGB" or "/DeviceGray"
    smask: bytes | None  # Deflate-compressed alpha channel, or None if opaque
    width: int  # Pixel width
    height: int  # Pixel height
    bpc: int  # Bits per component (always 8)


_SUFFIX_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
}

_SUPPORTED_FORMATS = frozenset(_SUFFIX_FORMATS.values())

# JPEG color modes a PDF reader can decode straight from the DCT stream
_PASSTHROUGH_MODES = {"RGB": "/DeviceRGB", "L": "/DeviceGray"}


def read_source_image(image_path: str | Path, fmt: str | None = None) -> SourceImage:
    """Read an image file and tag it with its declared format.

    Args:
        image_path: Path to a JPEG or PNG file.
        fmt: Declared format ("JPEG" or "PNG"). If None, derived from
            the file suffix.

    Raises:
        NotFoundError: if image_path does not exist.
        DecodeError: if the format is unsupported or the file is empty.
        StorageError: if the file exists but cannot be read.
    """
    path = Path(image_path)
    if not path.is_file():
        raise NotFoundError(f"Image file not found: {path}")

    declared = fmt.upper() if fmt else _SUFFIX_FORMATS.get(path.suffix.lower())
    if declared not in _SUPPORTED_FORMATS:
        raise DecodeError(
            f"Unsupported image type for {path.name}. "
            f"Supported: {', '.join(sorted(_SUPPORTED_FORMATS))}"
        )

    try:
        data = path.read_bytes()
    except OSError as e:
        raise StorageError(f"Cannot read image {path}: {e}") from e
    if not data:
        raise DecodeError(f"Image file is empty: {path.name}")

    return SourceImage(data=data, format=declared, name=path.name)


def prepare_pdf_image(source: SourceImage) -> PdfImageData:
    """Decode a source image and prepare it for a PDF image XObject.

    The bytes are fully decoded even for pass-through JPEGs, so truncated
    or corrupt files fail here rather than inside a PDF viewer.

    Raises:
        DecodeError: if the bytes are not a valid image of the declared format.
    """
    from PIL import Image

    try:
        img = Image.open(io.BytesIO(source.data))
    except (OSError, Image.DecompressionBombError) as exc:
        # PIL raises UnidentifiedImageError (subclass of OSError) for unknown formats
        raise DecodeError(f"Cannot decode {source.name or 'image'}: {exc}") from exc

    try:
        if img.format != source.format:
            raise DecodeError(
                f"{source.name or 'Image'} is declared {source.format} "
                f"but contains {img.format or 'unknown'} data"
            )
        try:
            img.load()
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Corrupt {source.format} data in {source.name or 'image'}: {exc}") from exc

        if source.format == "JPEG" and img.mode in _PASSTHROUGH_MODES:
            return {
                "samples": source.data,
                "filter": "/DCTDecode",
                "colorspace": _PASSTHROUGH_MODES[img.mode],
                "smask": None,
                "width": img.width,
                "height": img.height,
                "bpc": 8,
            }

        try:
            return _deflate_image(img)
        except ValueError as exc:
            raise DecodeError(f"Unsupported pixel mode {img.mode} in {source.name or 'image'}") from exc
    finally:
        img.close()


def _deflate_image(img: Image.Image) -> PdfImageData:
    """Convert any Pillow image into deflated RGB (or gray) samples plus alpha."""
    smask_data = None
    if img.mode == "P" and "transparency" in img.info:
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA", "PA"):
        alpha = img.split()[-1]
        smask_data = zlib.compress(alpha.tobytes())
        img = img.convert("RGB")
    elif img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    colorspace = "/DeviceGray" if img.mode == "L" else "/DeviceRGB"
    return {
        "samples": zlib.compress(img.tobytes()),
        "filter": "/FlateDecode",
        "colorspace": colorspace,
        "smask": smask_data,
        "width": img.width,
        "height": img.height,
        "bpc": 8,
    }
