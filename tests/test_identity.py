"""Tests for scansign.core.identity."""

from datetime import datetime

from scansign.core.identity import (
    SignerIdentity,
    format_timestamp,
    is_authorized,
    normalize_tax_id,
)

from .conftest import SIGNER_NAME, TAX_ID


def test_display_lines(identity):
    assert identity.display_lines() == [
        f"Assinado por: {SIGNER_NAME}",
        f"CNPJ: {TAX_ID}",
        "Data: 05/03/2024 14:03:12",
    ]


def test_timestamp_defaults_to_now():
    before = datetime.now().astimezone()
    ident = SignerIdentity("A", "1")
    after = datetime.now().astimezone()
    assert before <= ident.timestamp <= after


def test_stamped_refreshes_timestamp(identity):
    fresh = identity.stamped()
    assert fresh.name == identity.name
    assert fresh.tax_id == identity.tax_id
    assert fresh.timestamp > identity.timestamp.astimezone()


def test_format_timestamp_zero_pads():
    assert format_timestamp(datetime(2025, 1, 2, 3, 4, 5)) == "02/01/2025 03:04:05"


def test_normalize_tax_id():
    assert normalize_tax_id("47.978.428/0001-77") == "47978428000177"
    assert normalize_tax_id(" 479 ") == "479"


def test_is_authorized_ignores_formatting():
    assert is_authorized(TAX_ID, ["47978428000177"])
    assert is_authorized("47978428000177", ["11.111.111/0001-11", TAX_ID])


def test_is_authorized_rejects_unknown():
    assert not is_authorized(TAX_ID, ["11.111.111/0001-11"])
    assert not is_authorized(TAX_ID, [])


def test_is_authorized_rejects_empty_tax_id():
    assert not is_authorized("", [""])
    assert not is_authorized("--", ["00"])
