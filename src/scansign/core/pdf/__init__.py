"""PDF assembly: image embedding, overlay, and signature placeholders."""

from .builder import add_signature_placeholder, insert_cms, validate_capacity
from .byterange import (
    BYTERANGE_PATTERN,
    SignaturePlaceholder,
    compute_byterange_digest,
    locate_placeholder,
    signed_data,
)
from .document import draw_image, embed_image_xobject, open_pdf, serialize_pdf
from .embed import build_image_pdf, embed_image_as_pdf, page_size_for_image
from .incremental import (
    assemble_incremental_update,
    build_xref_and_trailer,
    find_form_fields,
    find_page_obj_num,
    find_prev_startxref,
    find_root_obj_num,
    patch_byterange,
)
from .objects import (
    ANNOT_FLAGS_SIG_WIDGET,
    BYTERANGE_PLACEHOLDER_STR,
    SigObjectNums,
    allocate_sig_objects,
    build_catalog_override,
    build_page_override,
    pdf_string,
)
from .overlay import composite_signature_image, overlay_image_on_first_page

__all__ = [
    "ANNOT_FLAGS_SIG_WIDGET",
    "BYTERANGE_PATTERN",
    "BYTERANGE_PLACEHOLDER_STR",
    "SigObjectNums",
    "SignaturePlaceholder",
    "add_signature_placeholder",
    "allocate_sig_objects",
    "assemble_incremental_update",
    "build_catalog_override",
    "build_image_pdf",
    "build_page_override",
    "build_xref_and_trailer",
    "composite_signature_image",
    "compute_byterange_digest",
    "draw_image",
    "embed_image_as_pdf",
    "embed_image_xobject",
    "find_form_fields",
    "find_page_obj_num",
    "find_prev_startxref",
    "find_root_obj_num",
    "insert_cms",
    "locate_placeholder",
    "open_pdf",
    "overlay_image_on_first_page",
    "page_size_for_image",
    "patch_byterange",
    "pdf_string",
    "serialize_pdf",
    "signed_data",
    "validate_capacity",
]
