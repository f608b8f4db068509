"""
Detached CMS signing of prepared PDFs.

A prepared PDF carries a zero-filled /Contents placeholder and a patched
ByteRange (see pdf.builder). Signing digests the two ByteRange spans,
builds a PKCS#7 detached signature with the credential's key, and writes
the DER hex into the placeholder. Every other byte, and the file length,
stays the same.
"""

from __future__ import annotations

__all__ = [
    "build_detached_cms",
    "sign_prepared_pdf",
]

import logging
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding, pkcs7

from ..constants import DEFAULT_DIGEST, PDF_MAGIC
from ..errors import ConfigError, StructuralError
from .pdf import insert_cms, locate_placeholder, signed_data

if TYPE_CHECKING:
    from .credential import Credential

_logger = logging.getLogger(__name__)

_DIGESTS: dict[str, type[hashes.HashAlgorithm]] = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

_SIGN_OPTIONS = [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary]


def _hash_for(digest: str) -> hashes.HashAlgorithm:
    try:
        return _DIGESTS[digest.lower()]()
    except KeyError:
        raise ConfigError(
            f"Unsupported digest algorithm: {digest} (use one of {', '.join(_DIGESTS)})"
        ) from None


def build_detached_cms(data: bytes, credential: Credential, digest: str = DEFAULT_DIGEST) -> bytes:
    """Sign ``data`` and return a DER-encoded detached CMS SignedData.

    The signer certificate and any chain certificates from the PKCS#12
    container are embedded. Data is signed as-is (no MIME line-ending
    canonicalization).
    """
    builder = pkcs7.PKCS7SignatureBuilder().set_data(data).add_signer(
        credential.certificate, credential.private_key, _hash_for(digest)
    )
    for cert in credential.chain:
        builder = builder.add_certificate(cert)
    return builder.sign(Encoding.DER, _SIGN_OPTIONS)


def sign_prepared_pdf(
    pdf_bytes: bytes, credential: Credential, digest: str = DEFAULT_DIGEST
) -> bytes:
    """Fill the signature placeholder of a prepared PDF.

    Args:
        pdf_bytes: PDF with a patched ByteRange and zero-filled /Contents.
        credential: Signing key and certificates.
        digest: Message digest algorithm ("sha256", "sha384", "sha512").

    Returns:
        The signed PDF, same length as the input.

    Raises:
        StructuralError: if the input is not a prepared PDF, or the
            placeholder already holds a signature.
        CapacityExceededError: if the CMS is larger than the reservation.
        ConfigError: if the digest algorithm is unsupported.
    """
    if not pdf_bytes.startswith(PDF_MAGIC):
        raise StructuralError("Input does not appear to be a PDF file.")

    placeholder = locate_placeholder(pdf_bytes)
    reserved = pdf_bytes[placeholder.hex_start : placeholder.hex_start + placeholder.hex_len]
    if reserved.strip(b"0"):
        raise StructuralError("Signature placeholder is already filled.")

    cms_der = build_detached_cms(signed_data(pdf_bytes, placeholder), credential, digest)
    _logger.debug(
        "CMS built: %d bytes of %d reserved (%s)", len(cms_der), placeholder.capacity, digest
    )

    signed = insert_cms(pdf_bytes, placeholder.hex_start, placeholder.hex_len, cms_der)
    if len(signed) != len(pdf_bytes):
        raise StructuralError(
            f"Signed PDF length changed: {len(pdf_bytes)} -> {len(signed)} bytes"
        )
    return signed
