"""Opening, serializing, and drawing images into pikepdf documents."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from ...constants import PDF_MAGIC
from ...errors import StructuralError
from .. import require_pikepdf as _require_pikepdf

if TYPE_CHECKING:
    import pikepdf

    from ..appearance import PdfImageData

__all__ = ["draw_image", "embed_image_xobject", "open_pdf", "serialize_pdf"]


def open_pdf(pdf_bytes: bytes) -> pikepdf.Pdf:
    """Open PDF bytes with pikepdf.

    Uses BytesIO for in-memory PDF access (no temp files). The caller
    owns the returned Pdf and should close it.

    Raises:
        StructuralError: if the bytes are not a readable PDF.
    """
    if not pdf_bytes or not pdf_bytes.startswith(PDF_MAGIC):
        raise StructuralError("Input does not appear to be a PDF file.")
    pikepdf = _require_pikepdf()
    try:
        pdf = pikepdf.open(io.BytesIO(pdf_bytes))
    except (pikepdf.PdfError, ValueError, OSError) as e:
        raise StructuralError(f"Cannot parse PDF: {e}") from e
    if len(pdf.pages) == 0:
        pdf.close()
        raise StructuralError("PDF has no pages.")
    return pdf


def serialize_pdf(pdf: pikepdf.Pdf) -> bytes:
    """Save a Pdf to bytes without object streams.

    Every object is written uncompressed at top level with a classic xref
    table, which keeps later byte-offset patching straightforward.
    """
    pikepdf = _require_pikepdf()
    buf = io.BytesIO()
    try:
        pdf.save(buf, object_stream_mode=pikepdf.ObjectStreamMode.disable)
    except (pikepdf.PdfError, ValueError) as e:
        raise StructuralError(f"Cannot serialize PDF: {e}") from e
    return buf.getvalue()


def embed_image_xobject(pdf: pikepdf.Pdf, img_data: PdfImageData) -> pikepdf.Stream:
    """Add an image XObject (plus soft mask, if any) to the document."""
    pikepdf = _require_pikepdf()
    name = pikepdf.Name

    extra: dict[str, pikepdf.Object] = {}
    smask_bytes = img_data["smask"]
    if smask_bytes is not None:
        smask = pikepdf.Stream(
            pdf,
            smask_bytes,
            Type=name.XObject,
            Subtype=name.Image,
            Width=img_data["width"],
            Height=img_data["height"],
            ColorSpace=name.DeviceGray,
            BitsPerComponent=img_data["bpc"],
            Filter=name.FlateDecode,
        )
        extra["SMask"] = pdf.make_indirect(smask)

    image = pikepdf.Stream(
        pdf,
        img_data["samples"],
        Type=name.XObject,
        Subtype=name.Image,
        Width=img_data["width"],
        Height=img_data["height"],
        ColorSpace=name(img_data["colorspace"]),
        BitsPerComponent=img_data["bpc"],
        Filter=name(img_data["filter"]),
        **extra,
    )
    return pdf.make_indirect(image)


def draw_image(
    pdf: pikepdf.Pdf,
    page: pikepdf.Page,
    image: pikepdf.Stream,
    x: float,
    y: float,
    width: float,
    height: float,
) -> None:
    """Draw an image XObject on top of the page's existing content.

    Existing content is wrapped in ``q ... Q`` so a graphics state left
    dirty by the page cannot leak into the placement.
    """
    pikepdf = _require_pikepdf()
    res_name = page.add_resource(image, pikepdf.Name.XObject, prefix="Im")

    if "/Contents" in page.obj:
        page.contents_add(pdf.make_stream(b"q\n"), prepend=True)
        page.contents_add(pdf.make_stream(b"\nQ\n"), prepend=False)
    ops = f"q {width:.4f} 0 0 {height:.4f} {x:.4f} {y:.4f} cm {res_name} Do Q\n"
    page.contents_add(pdf.make_stream(ops.encode("latin-1")), prepend=False)
