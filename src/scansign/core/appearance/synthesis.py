# pyright: reportUnknownMemberType=false
"""
Signature image synthesis.

Renders the signer identity onto a transparent 1600x400 canvas:

  +------------------------------------------------------------+
  |                                                            |
  |  Assinado por: SALES DISTRIBUIDORA LTDA                    |
  |  CNPJ: 47.978.428/0001-77                                  |
  |  Data: 19/10/2026 14:03:12                                 |
  |                                                            |
  +------------------------------------------------------------+

The image is later scaled and stamped onto the first page of the scan.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from ...constants import (
    SIGNATURE_CANVAS_HEIGHT,
    SIGNATURE_CANVAS_WIDTH,
    SIGNATURE_FONT_SIZE,
    SIGNATURE_LINE_HEIGHT,
    SIGNATURE_TEXT_X,
    SIGNATURE_TEXT_Y,
)
from ...errors import RenderError, StorageError

if TYPE_CHECKING:
    from PIL import Image, ImageFont

    from ..identity import SignerIdentity

__all__ = ["load_font", "render_signature_image", "write_signature_image"]

_logger = logging.getLogger(__name__)

_TEXT_COLOR = (0, 0, 0, 255)
_TRANSPARENT = (255, 255, 255, 0)

# Outline width that thickens glyphs to a bold weight
_BOLD_STROKE = 1


def load_font(
    font_path: str | Path | None = None, size: int = SIGNATURE_FONT_SIZE
) -> ImageFont.FreeTypeFont:
    """Load the TrueType font used for signature text.

    Falls back to Pillow's bundled scalable font when no path is given.

    Raises:
        RenderError: if the font file is missing or unreadable.
    """
    from PIL import ImageFont

    try:
        if font_path is not None:
            return ImageFont.truetype(str(font_path), size)
        font = ImageFont.load_default(size=size)
    except (OSError, ValueError) as exc:
        raise RenderError(f"Cannot load signature font {font_path or '(default)'}: {exc}") from exc

    if not isinstance(font, ImageFont.FreeTypeFont):
        raise RenderError("Pillow was built without FreeType; a scalable font is required.")
    return font


def render_signature_image(
    identity: SignerIdentity, font_path: str | Path | None = None
) -> Image.Image:
    """Render the identity lines onto a transparent RGBA canvas.

    Each line's baseline starts at (50, 100) and advances 40 px.

    Raises:
        RenderError: on font or canvas initialization failure.
    """
    from PIL import Image, ImageDraw

    font = load_font(font_path)
    try:
        canvas = Image.new("RGBA", (SIGNATURE_CANVAS_WIDTH, SIGNATURE_CANVAS_HEIGHT), _TRANSPARENT)
        draw = ImageDraw.Draw(canvas)
        for index, line in enumerate(identity.display_lines()):
            draw.text(
                (SIGNATURE_TEXT_X, SIGNATURE_TEXT_Y + index * SIGNATURE_LINE_HEIGHT),
                line,
                font=font,
                fill=_TEXT_COLOR,
                anchor="ls",
                stroke_width=_BOLD_STROKE,
                stroke_fill=_TEXT_COLOR,
            )
    except (OSError, ValueError, MemoryError) as exc:
        raise RenderError(f"Cannot render signature image: {exc}") from exc
    return canvas


def write_signature_image(
    identity: SignerIdentity,
    output_path: str | Path,
    font_path: str | Path | None = None,
) -> Path:
    """Render the signature image and write it as PNG.

    Returns only after the bytes are flushed and fsync'ed, so the caller
    can read the file immediately. The data is PNG regardless of the
    file suffix (alpha must survive).

    Raises:
        RenderError: on rendering failure.
        StorageError: if the file cannot be written.
    """
    path = Path(output_path)
    image = render_signature_image(identity, font_path)
    try:
        with path.open("wb") as fh:
            image.save(fh, format="PNG")
            fh.flush()
            os.fsync(fh.fileno())
    except OSError as exc:
        path.unlink(missing_ok=True)
        raise StorageError(f"Cannot write signature image {path}: {exc}") from exc
    finally:
        image.close()

    _logger.info("Signature image written: %s", path)
    return path
