"""Shared test fixtures for scansign test suite."""

from __future__ import annotations

import datetime
import hashlib
import io

import pytest

PFX_PASSPHRASE = "s3nha-Forte!"
SIGNER_NAME = "SALES DISTRIBUIDORA LTDA"
TAX_ID = "47.978.428/0001-77"

# Fake CMS blob that satisfies length checks (~1792 bytes).
FAKE_CMS = b"\x30\x82\x07\x00" + b"\xab" * 1788


def make_certificate(key, common_name: str = SIGNER_NAME):
    """Self-signed certificate valid from yesterday for 30 days."""
    from cryptography import x509
    from cryptography.hazmat.primitives import hashes
    from cryptography.x509.oid import NameOID

    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "ICP-Brasil Teste"),
        ]
    )
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def rsa_key():
    from cryptography.hazmat.primitives.asymmetric import rsa

    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(rsa_key):
    return make_certificate(rsa_key)


@pytest.fixture(scope="session")
def pfx_bytes(rsa_key, certificate):
    """PKCS#12 container protected by PFX_PASSPHRASE."""
    from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12

    return pkcs12.serialize_key_and_certificates(
        b"test",
        rsa_key,
        certificate,
        None,
        BestAvailableEncryption(PFX_PASSPHRASE.encode()),
    )


@pytest.fixture
def pfx_path(tmp_path, pfx_bytes):
    path = tmp_path / "certificado.pfx"
    path.write_bytes(pfx_bytes)
    return path


@pytest.fixture
def credential(pfx_bytes):
    from scansign.core.credential import load_credential_bytes

    return load_credential_bytes(pfx_bytes, PFX_PASSPHRASE, source="certificado.pfx")


@pytest.fixture
def settings(pfx_path):
    from scansign.config import Settings

    return Settings(cert_path=pfx_path, signer_name=SIGNER_NAME, tax_id=TAX_ID)


@pytest.fixture
def identity():
    from scansign.core.identity import SignerIdentity

    return SignerIdentity(
        SIGNER_NAME, TAX_ID, datetime.datetime(2024, 3, 5, 14, 3, 12)
    )


def write_jpeg(path, size=(200, 120), color=(200, 30, 30)):
    from PIL import Image

    Image.new("RGB", size, color).save(path, format="JPEG", quality=90)
    return path


def write_png(path, size=(160, 90), color=(20, 80, 200, 128)):
    from PIL import Image

    Image.new("RGBA", size, color).save(path, format="PNG")
    return path


@pytest.fixture
def jpeg_path(tmp_path):
    return write_jpeg(tmp_path / "scan.jpg")


@pytest.fixture
def png_path(tmp_path):
    return write_png(tmp_path / "scan.png")


@pytest.fixture
def valid_pdf_bytes():
    """Create a minimal valid PDF using pikepdf."""
    import pikepdf

    pdf = pikepdf.Pdf.new()
    pdf.add_blank_page(page_size=(612, 792))
    buf = io.BytesIO()
    pdf.save(buf)
    return buf.getvalue()


@pytest.fixture
def multipage_pdf_bytes():
    """Three blank pages."""
    import pikepdf

    pdf = pikepdf.Pdf.new()
    for _ in range(3):
        pdf.add_blank_page(page_size=(612, 792))
    buf = io.BytesIO()
    pdf.save(buf)
    return buf.getvalue()


def verify_embedded_cms(pdf_bytes: bytes) -> str:
    """Independently check the detached signature of a signed PDF.

    Returns the signer certificate's common name. Raises AssertionError
    or cryptography's InvalidSignature on mismatch.
    """
    from asn1crypto import cms
    from cryptography import x509
    from cryptography.hazmat.primitives import hashes
    from cryptography.hazmat.primitives.asymmetric import padding

    from scansign.core.pdf import locate_placeholder, signed_data

    placeholder = locate_placeholder(pdf_bytes)
    hex_data = pdf_bytes[placeholder.hex_start : placeholder.hex_start + placeholder.hex_len]
    content_info = cms.ContentInfo.load(bytes.fromhex(hex_data.decode("ascii")))
    assert content_info["content_type"].native == "signed_data"
    sd = content_info["content"]
    assert sd["encap_content_info"]["content"].native is None  # detached

    signer = sd["signer_infos"][0]
    assert signer["digest_algorithm"]["algorithm"].native == "sha256"
    attrs = signer["signed_attrs"]
    digest = next(a["values"][0].native for a in attrs if a["type"].native == "message_digest")
    assert digest == hashlib.sha256(signed_data(pdf_bytes, placeholder)).digest()

    cert = x509.load_der_x509_certificate(sd["certificates"][0].chosen.dump())
    # Signed attributes are signed as a SET, not with their [0] implicit tag
    attrs_der = b"\x31" + attrs.dump()[1:]
    cert.public_key().verify(
        signer["signature"].native, attrs_der, padding.PKCS1v15(), hashes.SHA256()
    )
    return sd["certificates"][0].chosen.subject.native["common_name"]


_ENV_NAMES = (
    "SCANSIGN_CERT_PATH",
    "SCANSIGN_CERT_PASS",
    "SCANSIGN_SIGNER_NAME",
    "SCANSIGN_TAX_ID",
    "SCANSIGN_CAPACITY",
    "SCANSIGN_FONT",
    "SCANSIGN_REPOSITORY",
)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temp dir and clear scansign env vars."""
    from scansign.config import _storage

    config_dir = tmp_path / "home" / ".scansign"
    monkeypatch.setattr(_storage, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(_storage, "CONFIG_FILE", config_dir / "config.json")
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return config_dir / "config.json"
