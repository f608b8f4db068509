# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false
"""
PKCS#12 credential loading.

Opens a .pfx/.p12 container with ``cryptography`` and exposes the private
key, signing certificate, and chain. Subject fields are read with
``asn1crypto``, which tolerates the BMPString-encoded names some
Brazilian ICP authorities issue.
"""

from __future__ import annotations

__all__ = [
    "Credential",
    "certificate_subject",
    "estimate_signature_capacity",
    "load_credential",
    "load_credential_bytes",
]

import datetime
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Union

from asn1crypto import x509 as asn1_x509
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import Encoding, pkcs12

from ..errors import CredentialError, NotFoundError, StorageError

if TYPE_CHECKING:
    from cryptography import x509

_logger = logging.getLogger(__name__)

SigningKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]

# OIDs for common subject fields
_OID_CN = "2.5.4.3"
_OID_ORG = "2.5.4.10"
_OID_SERIAL = "2.5.4.5"

# CMS bytes that are neither certificates nor the raw signature value:
# ContentInfo/SignedData wrappers, algorithm identifiers, issuer+serial,
# and the signed attributes (content type, signing time, digest, caps).
_CMS_OVERHEAD = 1024


@dataclass(frozen=True)
class Credential:
    """Signing key and certificates from a PKCS#12 container. Read-only."""

    private_key: SigningKey
    certificate: x509.Certificate
    chain: tuple[x509.Certificate, ...] = ()
    source: str = ""

    @property
    def all_certificates(self) -> tuple[x509.Certificate, ...]:
        return (self.certificate, *self.chain)


def load_credential_bytes(pfx_bytes: bytes, passphrase: str, source: str = "") -> Credential:
    """Open PKCS#12 bytes with the given passphrase.

    Raises:
        CredentialError: on a wrong passphrase, an unparsable container,
            a missing key/certificate, or an unsupported key type.
    """
    password = passphrase.encode("utf-8") if passphrase else None
    try:
        key, cert, extra = pkcs12.load_key_and_certificates(pfx_bytes, password)
    except (ValueError, TypeError) as e:
        raise CredentialError(
            f"Cannot open PKCS#12 {source or 'container'}: wrong passphrase or corrupt file"
        ) from e

    if key is None:
        raise CredentialError(f"PKCS#12 {source or 'container'} has no private key")
    if cert is None:
        raise CredentialError(f"PKCS#12 {source or 'container'} has no certificate")
    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise CredentialError(
            f"Unsupported key type {type(key).__name__}; RSA or EC keys are required"
        )

    _warn_validity(cert)
    return Credential(private_key=key, certificate=cert, chain=tuple(extra), source=source)


def load_credential(pfx_path: str | Path, passphrase: str) -> Credential:
    """Read and open a PKCS#12 file.

    Raises:
        NotFoundError: if the file does not exist.
        StorageError: if the file cannot be read.
        CredentialError: see load_credential_bytes().
    """
    path = Path(pfx_path)
    if not path.is_file():
        raise NotFoundError(f"Certificate file not found: {path}")
    try:
        data = path.read_bytes()
    except OSError as e:
        raise StorageError(f"Cannot read certificate {path}: {e}") from e

    credential = load_credential_bytes(data, passphrase, source=path.name)
    _logger.info("Loaded credential %s (%s)", path.name, credential.certificate.subject.rfc4514_string())
    return credential


def _warn_validity(cert: x509.Certificate) -> None:
    """Log a warning for expired or not-yet-valid certificates."""
    now = datetime.datetime.now(datetime.timezone.utc)
    not_before = cert.not_valid_before_utc
    not_after = cert.not_valid_after_utc
    if now < not_before:
        _logger.warning("Certificate is not yet valid (notBefore: %s)", not_before)
    elif now > not_after:
        _logger.warning("Certificate has expired (notAfter: %s)", not_after)


def certificate_subject(credential: Credential) -> dict[str, str | None]:
    """Extract CN, organization, serial number, and full DN of the signer."""
    cert = asn1_x509.Certificate.load(credential.certificate.public_bytes(Encoding.DER))
    fields: dict[str, str | None] = {"name": None, "organization": None, "serial_number": None}
    oid_map = {_OID_CN: "name", _OID_ORG: "organization", _OID_SERIAL: "serial_number"}

    for rdn in cert.subject.chosen:
        for attr in rdn:
            oid = attr["type"].dotted
            if oid in oid_map:
                fields[oid_map[oid]] = attr["value"].native

    fields["dn"] = cert.subject.human_friendly
    return fields


def estimate_signature_capacity(credential: Credential) -> int:
    """Upper-bound estimate of the DER CMS size this credential produces."""
    key = credential.private_key
    if isinstance(key, rsa.RSAPrivateKey):
        sig_size = (key.key_size + 7) // 8
    else:
        # DER ECDSA-Sig-Value: two integers, each up to key size + 1 byte
        sig_size = 2 * ((key.curve.key_size + 7) // 8 + 3) + 3
    certs_size = sum(len(c.public_bytes(Encoding.DER)) for c in credential.all_certificates)
    return certs_size + sig_size + _CMS_OVERHEAD
