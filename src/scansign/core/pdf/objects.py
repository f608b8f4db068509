"""Low-level PDF object construction.

Types, constants, and helpers for building the raw PDF objects appended by
the signature incremental update: the signature dictionary with its
ByteRange / Contents placeholder, the signature widget, and overrides of
the page and catalog objects.

PDF structure analysis and incremental update assembly is in incremental.py.
High-level placeholder API is in builder.py.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TypedDict

from ...constants import __version__
from .. import require_pikepdf as _require_pikepdf

if TYPE_CHECKING:
    import pikepdf

__all__ = [
    "ANNOT_FLAGS_SIG_WIDGET",
    "BYTERANGE_PLACEHOLDER",
    "BYTERANGE_PLACEHOLDER_STR",
    "SigObjectNums",
    "allocate_sig_objects",
    "build_catalog_override",
    "build_object_override",
    "build_page_override",
    "build_sig_dict",
    "build_sig_widget",
    "pdf_date",
    "pdf_string",
]

_logger = logging.getLogger(__name__)


class SigObjectNums(TypedDict):
    """Object numbers allocated for the signature PDF objects."""

    sig: int  # /Type /Sig dictionary (holds ByteRange + Contents)
    annot: int  # signature field widget
    new_size: int  # trailer /Size after the update


# ── Constants ────────────────────────────────────────────────────────

# Fixed-width ByteRange: four right-aligned 10-digit slots, patched in place
# once the final layout is known.
BYTERANGE_PLACEHOLDER = b"/ByteRange [         0          0          0          0]"
BYTERANGE_PLACEHOLDER_STR = BYTERANGE_PLACEHOLDER.decode("ascii")

# PDF annotation flags for signature widget (/F entry).
# Print flag is 4, Locked flag is 128; combined value is 132.
# See PDF Reference 1.7, Table 165 -- Annotation flags.
_ANNOT_FLAG_PRINT = 4
_ANNOT_FLAG_LOCKED = 128
ANNOT_FLAGS_SIG_WIDGET = _ANNOT_FLAG_PRINT | _ANNOT_FLAG_LOCKED  # 132

# AcroForm /SigFlags: SignaturesExist (1) | AppendOnly (2)
_SIG_FLAGS = 3


# ── PDF string/object helpers ────────────────────────────────────────


def pdf_string(text: str) -> str:
    """Escape text for a PDF literal string.

    Handles backslash, parentheses, control characters, and non-Latin1
    characters (replaced with '?' since PDFDocEncoding has limited
    Unicode support). Portuguese accents are Latin-1 and survive.
    """
    result: list[str] = []
    replaced_count = 0
    for char in text:
        code = ord(char)
        if char == "\\":
            result.append("\\\\")
        elif char == "(":
            result.append("\\(")
        elif char == ")":
            result.append("\\)")
        elif char == "\n":
            result.append("\\n")
        elif char == "\r":
            result.append("\\r")
        elif char == "\t":
            result.append("\\t")
        elif code < 0x20 or code == 0x7F:
            result.append(f"\\{code:03o}")
        elif code > 0xFF:
            result.append("?")
            replaced_count += 1
        else:
            result.append(char)
    if replaced_count > 0:
        _logger.warning(
            "pdf_string: %d non-Latin1 character(s) replaced with '?' in: %r", replaced_count, text
        )
    return "".join(result)


def pdf_date(moment: datetime | None = None) -> str:
    """Format an instant as a PDF date string in UTC: D:YYYYMMDDHHMMSS+00'00'."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("D:%Y%m%d%H%M%S+00'00'")


def _serialize_pikepdf_obj(obj: None | bool | int | float | pikepdf.Object) -> str:
    """Serialize a pikepdf object to a raw PDF string for embedding.

    Uses pikepdf's built-in unparse() for correct PDF syntax, with
    special handling for indirect references (emitted as "N G R")
    and plain Python types that pikepdf may return.
    """
    if obj is None:
        return "null"
    if isinstance(obj, bool):
        return "true" if obj else "false"
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, float):
        return str(int(obj)) if obj % 1 == 0.0 else f"{obj:.6f}"
    pikepdf = _require_pikepdf()
    if isinstance(obj, pikepdf.Object) and obj.is_indirect:
        return f"{obj.objgen[0]} {obj.objgen[1]} R"
    return obj.unparse(resolved=True).decode("latin-1")


# ── Object override builders ─────────────────────────────────────────


def build_object_override(
    pdf: pikepdf.Pdf,
    obj_num: int,
    skip_key: str,
    new_entry: str,
) -> str:
    """Build a raw override of a PDF object with a new/replaced entry.

    Extracts all entries from the target object (skipping skip_key),
    appends new_entry, and returns the raw PDF object string.

    Args:
        pdf: Open document to read the current object from.
        obj_num: Target object number.
        skip_key: Key to omit from the original object (e.g., "/Annots").
        new_entry: New entry to append (e.g., "  /Annots [5 0 R]").

    Returns:
        str -- Raw PDF object definition.
    """
    obj = pdf.get_object((obj_num, 0))
    # pikepdf dict requires .keys() -- __iter__ yields values, not keys
    entries = [
        f"  {key} {_serialize_pikepdf_obj(obj[key])}" for key in list(obj.keys()) if key != skip_key
    ]
    entries.append(new_entry)
    body = "\n".join(entries)
    return f"{obj_num} 0 obj\n<<\n{body}\n>>\nendobj\n"


def build_page_override(pdf: pikepdf.Pdf, page_obj_num: int, annots_list: str) -> str:
    """Build a raw override of the page object that adds /Annots."""
    return build_object_override(
        pdf,
        page_obj_num,
        skip_key="/Annots",
        new_entry=f"  /Annots [{annots_list}]",
    )


def build_catalog_override(
    pdf: pikepdf.Pdf, root_obj_num: int, annot_obj_num: int, existing_fields: list[str]
) -> str:
    """Build a raw override of the catalog that adds /AcroForm.

    Fields of an existing form are kept ahead of the new signature field,
    and its other entries (/DR, /DA, /NeedAppearances, ...) are carried over.
    """
    fields = " ".join([*existing_fields, f"{annot_obj_num} 0 R"])
    carried = ""
    root = pdf.get_object((root_obj_num, 0))
    if "/AcroForm" in root:
        form = root["/AcroForm"]
        carried = "".join(
            f" {key} {_serialize_pikepdf_obj(form[key])}"
            for key in list(form.keys())
            if key not in ("/Fields", "/SigFlags")
        )
    return build_object_override(
        pdf,
        root_obj_num,
        skip_key="/AcroForm",
        new_entry=f"  /AcroForm << /Fields [{fields}] /SigFlags {_SIG_FLAGS}{carried} >>",
    )


# ── Signature objects ────────────────────────────────────────────────


def build_sig_dict(
    obj_num: int,
    reason: str,
    name: str | None,
    hex_len: int,
    signing_time: datetime | None = None,
) -> str:
    """Build the /Type /Sig dictionary with a zero-filled /Contents placeholder."""
    contents_zeros = "0" * hex_len
    name_entry = f"  /Name ({pdf_string(name)})\n" if name else ""
    prop_build = (
        f"  /Prop_Build << /App << /Name /scansign /REx ({__version__}) >> "
        f"/Filter << /Name /Adobe.PPKLite >> >>\n"
    )
    return (
        f"{obj_num} 0 obj\n"
        f"<<\n"
        f"  /Type /Sig\n"
        f"  /Filter /Adobe.PPKLite\n"
        f"  /SubFilter /adbe.pkcs7.detached\n"
        f"  {BYTERANGE_PLACEHOLDER_STR}\n"
        f"  /Contents <{contents_zeros}>\n"
        f"  /M ({pdf_date(signing_time)})\n"
        f"  /Reason ({pdf_string(reason)})\n"
        f"{name_entry}"
        f"{prop_build}"
        f">>\n"
        f"endobj\n"
    )


def build_sig_widget(obj_nums: SigObjectNums, page_obj_num: int) -> str:
    """Build an invisible signature widget (/Rect [0 0 0 0], no /AP).

    The visible stamp is already part of the page content, so the field
    itself carries no appearance.
    """
    sig = obj_nums["sig"]
    annot = obj_nums["annot"]
    return (
        f"{annot} 0 obj\n"
        f"<<\n"
        f"  /Type /Annot\n"
        f"  /Subtype /Widget\n"
        f"  /FT /Sig\n"
        f"  /Rect [0 0 0 0]\n"
        f"  /V {sig} 0 R\n"
        f"  /T (Signature{annot})\n"
        f"  /F {ANNOT_FLAGS_SIG_WIDGET}\n"
        f"  /P {page_obj_num} 0 R\n"
        f"  /Border [0 0 0]\n"
        f">>\n"
        f"endobj\n"
    )


# ── Object number allocation ────────────────────────────────────────


def allocate_sig_objects(prev_size: int) -> SigObjectNums:
    """Allocate object numbers for the signature dictionary and widget.

    New objects start at the previous trailer /Size (first free number).
    """
    return {"sig": prev_size, "annot": prev_size + 1, "new_size": prev_size + 2}
