"""PDF structure analysis and incremental update assembly.

Functions for reading existing PDF structure (finding objects, xref offsets)
and building incremental updates (xref tables, trailers, ByteRange patching).

Object-level construction (types, allocation, overrides) is in objects.py.
High-level placeholder API is in builder.py.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ...errors import StructuralError
from .. import require_pikepdf as _require_pikepdf
from .objects import BYTERANGE_PLACEHOLDER

if TYPE_CHECKING:
    import pikepdf

__all__ = [
    "assemble_incremental_update",
    "build_xref_and_trailer",
    "find_form_fields",
    "find_page_obj_num",
    "find_prev_startxref",
    "find_root_obj_num",
    "patch_byterange",
]

# ── PDF structure analysis ───────────────────────────────────────────


def find_root_obj_num(pdf_bytes: bytes) -> tuple[int, int]:
    """Find the catalog /Root object number from the trailer.

    Uses the LAST match -- PDFs with incremental updates may redefine
    /Root in later trailers, and the last one is always authoritative.
    """
    matches = list(re.finditer(rb"/Root\s+(\d+)\s+(\d+)\s+R", pdf_bytes))
    if not matches:
        raise StructuralError("Cannot find /Root reference in PDF trailer.")
    m = matches[-1]
    return int(m.group(1)), int(m.group(2))


def find_page_obj_num(pdf: pikepdf.Pdf, page_idx: int = 0) -> tuple[int, list[str]]:
    """Find the object number of a page and its existing annotations.

    Indirect annotations come back as "N G R" references, direct ones as
    their inline dictionary so the page override keeps them.
    """
    if not 0 <= page_idx < len(pdf.pages):
        raise StructuralError(f"Page {page_idx} out of range (document has {len(pdf.pages)})")
    page_obj = pdf.pages[page_idx].obj
    if not page_obj.is_indirect:
        raise StructuralError("Page object is not indirect; cannot override it.")
    existing_annots: list[str] = []
    if "/Annots" in page_obj:
        annots = page_obj["/Annots"]
        for i in range(len(annots)):
            ref = annots[i]
            if ref.is_indirect:
                existing_annots.append(f"{ref.objgen[0]} {ref.objgen[1]} R")
            else:
                existing_annots.append(ref.unparse().decode("latin-1"))
    return page_obj.objgen[0], existing_annots


def find_form_fields(pdf: pikepdf.Pdf) -> list[str]:
    """Return indirect refs of fields already present in /AcroForm."""
    root = pdf.Root
    if "/AcroForm" not in root or "/Fields" not in root.AcroForm:
        return []
    fields = root.AcroForm.Fields
    return [f"{f.objgen[0]} {f.objgen[1]} R" for f in fields if f.is_indirect]


def find_prev_startxref(pdf_bytes: bytes, pdf: pikepdf.Pdf) -> tuple[int, int, list[str]]:
    """Find the last startxref offset, max object number, and trailer entries.

    Returns:
        (prev_xref, max_size, trailer_extra) where trailer_extra is a list
        of raw trailer lines to carry forward (like /Info and /ID).
    """
    # Find the LAST startxref in the file -- PDFs with incremental updates
    # have multiple startxref/%%EOF pairs; the last one is authoritative.
    matches = list(re.finditer(rb"startxref\s+(\d+)\s+%%EOF", pdf_bytes))
    if not matches:
        raise StructuralError("Cannot find startxref in PDF.")
    prev_xref = int(matches[-1].group(1))

    # pikepdf resolves xref streams and hybrid files, where a regex on
    # /Size would pick the wrong trailer.
    pikepdf = _require_pikepdf()
    try:
        max_size = int(pdf.trailer["/Size"])
    except (pikepdf.PdfError, KeyError) as e:
        raise StructuralError(f"Cannot determine /Size from PDF trailer: {e}") from e

    return prev_xref, max_size, _extract_trailer_entries(pdf_bytes, pdf)


def _extract_trailer_entries(pdf_bytes: bytes, pdf: pikepdf.Pdf) -> list[str]:
    """Extract /Info and /ID entries from the trailer.

    Per ISO 32000, incremental update trailers must contain all entries
    from the previous trailer (except /Prev and /Size which are updated).
    Traditional trailers are read by regex; cross-reference stream PDFs
    fall back to pikepdf.
    """
    trailer_extra: list[str] = []
    all_trailers = list(re.finditer(rb"trailer\s*<<(.*?)>>", pdf_bytes, re.DOTALL))
    if all_trailers:
        trailer_content = all_trailers[-1].group(1)
        info_m = re.search(rb"/Info\s+\d+\s+\d+\s+R", trailer_content)
        if info_m:
            trailer_extra.append(info_m.group(0).decode("latin-1"))
        id_m = re.search(rb"/ID\s*\[.*?\]", trailer_content, re.DOTALL)
        if id_m:
            trailer_extra.append(id_m.group(0).decode("latin-1"))
        if trailer_extra:
            return trailer_extra

    pikepdf = _require_pikepdf()
    trailer = pdf.trailer
    if "/Info" in trailer:
        info_obj = trailer["/Info"]
        if isinstance(info_obj, pikepdf.Object) and info_obj.is_indirect:
            trailer_extra.append(f"/Info {info_obj.objgen[0]} {info_obj.objgen[1]} R")
    if "/ID" in trailer:
        id_array = trailer["/ID"]
        trailer_extra.append(f"/ID {id_array.unparse(resolved=True).decode('latin-1')}")
    return trailer_extra


# ── Incremental update assembly ─────────────────────────────────────


def assemble_incremental_update(
    pdf_bytes: bytes,
    raw_objects: list[tuple[bytes, int]],
    new_size: int,
    prev_xref: int,
    root_obj_num: int,
    root_gen: int,
    trailer_extra: list[str],
) -> bytes:
    """Assemble the full PDF with incremental update appended."""
    base = pdf_bytes
    if not base.endswith(b"\n"):
        base = base + b"\n"

    update_start = len(base)

    objects_raw: list[bytes] = []
    xref_entries: dict[int, int] = {}

    running_offset = update_start
    for raw_bytes, obj_num in raw_objects:
        xref_entries[obj_num] = running_offset
        objects_raw.append(raw_bytes)
        running_offset += len(raw_bytes)

    all_objects = b"".join(objects_raw)

    xref_offset = update_start + len(all_objects)
    xref_data = build_xref_and_trailer(
        xref_entries=xref_entries,
        new_size=new_size,
        prev_xref=prev_xref,
        root_obj_num=root_obj_num,
        root_gen=root_gen,
        trailer_extra=trailer_extra,
        xref_offset=xref_offset,
    )

    return base + all_objects + xref_data


def patch_byterange(full_pdf: bytes, original_len: int, hex_len: int) -> tuple[bytes, int, int]:
    """Patch the ByteRange placeholder and return (pdf, hex_start, hex_len).

    The signed spans exclude the whole ``<hex>`` string, angle brackets
    included: ``[0, lt, gt + 1, len - gt - 1]``.
    """
    contents_marker = b"/Contents <" + b"0" * hex_len + b">"

    # Search from where the incremental update starts
    contents_pos = full_pdf.find(contents_marker, original_len)
    if contents_pos == -1:
        raise StructuralError("Cannot find Contents placeholder in prepared PDF.")

    lt = contents_pos + len(b"/Contents ")
    hex_start = lt + 1
    gt = hex_start + hex_len

    br_before_len = lt
    br_after_start = gt + 1
    br_after_len = len(full_pdf) - br_after_start

    byterange_value = (
        f"/ByteRange [{0:>10d} {br_before_len:>10d} {br_after_start:>10d} {br_after_len:>10d}]"
    ).encode("latin-1")
    if len(byterange_value) != len(BYTERANGE_PLACEHOLDER):
        raise StructuralError("Document too large for a fixed-width ByteRange.")

    # Positional replacement inside the incremental update only, so a
    # placeholder-like string in the original PDF is never touched.
    br_pos = full_pdf.find(BYTERANGE_PLACEHOLDER, original_len)
    if br_pos == -1 or br_pos > contents_pos:
        raise StructuralError("Cannot find ByteRange placeholder in incremental update.")
    full_pdf = full_pdf[:br_pos] + byterange_value + full_pdf[br_pos + len(BYTERANGE_PLACEHOLDER) :]

    return full_pdf, hex_start, hex_len


# ── Xref table builder ──────────────────────────────────────────────


def build_xref_and_trailer(
    xref_entries: dict[int, int],
    new_size: int,
    prev_xref: int,
    root_obj_num: int,
    root_gen: int,
    trailer_extra: list[str],
    xref_offset: int,
) -> bytes:
    """Build an xref table and trailer for an incremental update.

    Args:
        xref_entries: Mapping of object number to byte offset.
        new_size: Total object count (/Size value).
        prev_xref: Previous xref offset (/Prev value).
        root_obj_num: Catalog object number for /Root reference.
        root_gen: Catalog generation number.
        trailer_extra: Extra trailer entries to carry forward (/Info, /ID).
        xref_offset: Byte offset where this xref table starts.

    Returns:
        Raw bytes of the xref table, trailer, and %%EOF.
    """
    if not xref_entries:
        raise StructuralError("Cannot build xref table: no objects to reference.")

    xref_lines = ["xref"]

    # Group consecutive object numbers for compact xref sections
    sorted_nums = sorted(xref_entries.keys())
    groups: list[list[int]] = []
    current_group = [sorted_nums[0]]
    for n in sorted_nums[1:]:
        if n == current_group[-1] + 1:
            current_group.append(n)
        else:
            groups.append(current_group)
            current_group = [n]
    groups.append(current_group)

    for group in groups:
        xref_lines.append(f"{group[0]} {len(group)}")
        # Each xref entry is exactly 20 bytes including EOL:
        # "oooooooooo ggggg n\r" + the "\n" from the join below.
        xref_lines.extend(f"{xref_entries[obj_num]:010d} 00000 n\r" for obj_num in group)

    xref_lines.append("trailer")
    xref_lines.append("<<")
    xref_lines.append(f"  /Size {new_size}")
    xref_lines.append(f"  /Prev {prev_xref}")
    xref_lines.append(f"  /Root {root_obj_num} {root_gen} R")
    xref_lines.extend(f"  {extra}" for extra in trailer_extra)
    xref_lines.append(">>")
    xref_lines.append("startxref")
    xref_lines.append(str(xref_offset))
    xref_lines.append("%%EOF")
    xref_lines.append("")  # trailing newline

    return "\n".join(xref_lines).encode("latin-1")
