"""Tests for credential loading and detached CMS signing."""

from __future__ import annotations

import datetime
import logging

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12

from scansign.core.credential import (
    Credential,
    certificate_subject,
    estimate_signature_capacity,
    load_credential,
    load_credential_bytes,
)
from scansign.core.pdf import add_signature_placeholder, compute_byterange_digest, insert_cms
from scansign.core.signing import build_detached_cms, sign_prepared_pdf
from scansign.errors import (
    CapacityExceededError,
    ConfigError,
    CredentialError,
    NotFoundError,
    StructuralError,
)

from .conftest import FAKE_CMS, PFX_PASSPHRASE, SIGNER_NAME, make_certificate, verify_embedded_cms

# ── Credential loading ───────────────────────────────────────────────


def test_load_credential(pfx_path, certificate):
    cred = load_credential(pfx_path, PFX_PASSPHRASE)
    assert cred.certificate == certificate
    assert cred.chain == ()
    assert cred.source == "certificado.pfx"


def test_load_credential_wrong_passphrase_by_one_char(pfx_path):
    with pytest.raises(CredentialError, match="wrong passphrase"):
        load_credential(pfx_path, PFX_PASSPHRASE[:-1] + "?")


def test_load_credential_empty_passphrase(pfx_path):
    with pytest.raises(CredentialError):
        load_credential(pfx_path, "")


def test_load_credential_missing_file(tmp_path):
    with pytest.raises(NotFoundError, match="Certificate file not found"):
        load_credential(tmp_path / "nope.pfx", PFX_PASSPHRASE)


def test_load_credential_corrupt_container():
    with pytest.raises(CredentialError, match="corrupt"):
        load_credential_bytes(b"\x30\x03\x02\x01\x03", PFX_PASSPHRASE)


def test_load_credential_without_key(certificate):
    pfx = pkcs12.serialize_key_and_certificates(
        b"certs-only", None, None, [certificate], BestAvailableEncryption(b"pw")
    )
    with pytest.raises(CredentialError, match="no private key"):
        load_credential_bytes(pfx, "pw")


def test_load_credential_warns_on_expired(rsa_key, caplog):
    from cryptography import x509
    from cryptography.hazmat.primitives import hashes

    now = datetime.datetime.now(datetime.timezone.utc)
    subject = make_certificate(rsa_key).subject
    expired = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(rsa_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=60))
        .not_valid_after(now - datetime.timedelta(days=1))
        .sign(rsa_key, hashes.SHA256())
    )
    pfx = pkcs12.serialize_key_and_certificates(
        b"old", rsa_key, expired, None, BestAvailableEncryption(b"pw")
    )
    with caplog.at_level(logging.WARNING, logger="scansign.core.credential"):
        load_credential_bytes(pfx, "pw")
    assert "expired" in caplog.text


def test_certificate_subject(credential):
    subject = certificate_subject(credential)
    assert subject["name"] == SIGNER_NAME
    assert subject["organization"] == "ICP-Brasil Teste"
    assert subject["serial_number"] is None
    assert SIGNER_NAME in subject["dn"]


def test_estimate_capacity_fits_default(credential):
    estimate = estimate_signature_capacity(credential)
    assert 1024 < estimate < 16384


def test_estimate_capacity_grows_with_chain(credential):
    bulky = Credential(
        credential.private_key, credential.certificate, (credential.certificate,) * 3
    )
    assert estimate_signature_capacity(bulky) > estimate_signature_capacity(credential)


# ── CMS construction ─────────────────────────────────────────────────


def test_build_detached_cms_is_der(credential):
    from asn1crypto import cms

    der = build_detached_cms(b"hello", credential)
    info = cms.ContentInfo.load(der)
    assert info["content_type"].native == "signed_data"
    assert info["content"]["encap_content_info"]["content"].native is None
    assert len(info["content"]["certificates"]) == 1


def test_build_detached_cms_includes_chain(credential):
    from asn1crypto import cms

    extra_key = ec.generate_private_key(ec.SECP256R1())
    ca = make_certificate(extra_key, "AC Teste")
    cred = Credential(credential.private_key, credential.certificate, (ca,))
    info = cms.ContentInfo.load(build_detached_cms(b"hello", cred))
    assert len(info["content"]["certificates"]) == 2


def test_build_detached_cms_unknown_digest(credential):
    with pytest.raises(ConfigError, match="Unsupported digest"):
        build_detached_cms(b"hello", credential, "md5")


def test_build_detached_cms_ec_key():
    from asn1crypto import cms

    key = ec.generate_private_key(ec.SECP256R1())
    cred = Credential(key, make_certificate(key))
    info = cms.ContentInfo.load(build_detached_cms(b"hello", cred, "sha384"))
    signer = info["content"]["signer_infos"][0]
    assert signer["digest_algorithm"]["algorithm"].native == "sha384"
    assert estimate_signature_capacity(cred) >= len(info.dump())


# ── PDF signing ──────────────────────────────────────────────────────


def test_sign_then_verify(valid_pdf_bytes, credential):
    prepared, _, _ = add_signature_placeholder(valid_pdf_bytes)
    signed = sign_prepared_pdf(prepared, credential)
    assert verify_embedded_cms(signed) == SIGNER_NAME


def test_sign_changes_only_placeholder(valid_pdf_bytes, credential):
    prepared, hex_start, hex_len = add_signature_placeholder(valid_pdf_bytes)
    signed = sign_prepared_pdf(prepared, credential)
    assert len(signed) == len(prepared)
    assert signed[:hex_start] == prepared[:hex_start]
    assert signed[hex_start + hex_len :] == prepared[hex_start + hex_len :]
    assert compute_byterange_digest(signed) == compute_byterange_digest(prepared)


def test_tampered_pdf_fails_verification(valid_pdf_bytes, credential):
    prepared, _, _ = add_signature_placeholder(valid_pdf_bytes)
    signed = bytearray(sign_prepared_pdf(prepared, credential))
    # Flip a byte inside the first signed span (the PDF header comment)
    signed[1] = ord("X")
    with pytest.raises(AssertionError):
        verify_embedded_cms(bytes(signed))


def test_sign_capacity_exceeded(valid_pdf_bytes, credential):
    bulky = Credential(
        credential.private_key, credential.certificate, (credential.certificate,) * 3
    )
    prepared, _, hex_len = add_signature_placeholder(valid_pdf_bytes, capacity=1024)
    with pytest.raises(CapacityExceededError) as exc_info:
        sign_prepared_pdf(prepared, bulky)
    assert exc_info.value.available == hex_len
    assert exc_info.value.required > hex_len


def test_sign_requires_placeholder(valid_pdf_bytes, credential):
    with pytest.raises(StructuralError, match="No /ByteRange"):
        sign_prepared_pdf(valid_pdf_bytes, credential)


def test_sign_rejects_non_pdf(credential):
    with pytest.raises(StructuralError, match="PDF"):
        sign_prepared_pdf(b"hello", credential)


def test_sign_rejects_filled_placeholder(valid_pdf_bytes, credential):
    prepared, hex_start, hex_len = add_signature_placeholder(valid_pdf_bytes)
    filled = insert_cms(prepared, hex_start, hex_len, FAKE_CMS)
    with pytest.raises(StructuralError, match="already filled"):
        sign_prepared_pdf(filled, credential)
