"""Tests for the scansign command-line interface."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from scansign.constants import __version__
from scansign.errors import ConfigError
from scansign.ui.cli import build_parser, main
from scansign.ui.helpers import format_outcome

from .conftest import PFX_PASSPHRASE, SIGNER_NAME, TAX_ID, write_jpeg, write_png

pytestmark = pytest.mark.usefixtures("isolated_config")


@pytest.fixture
def scans(tmp_path):
    directory = tmp_path / "repo" / "scanner1" / "maria"
    directory.mkdir(parents=True)
    write_jpeg(directory / "a.jpg")
    write_png(directory / "b.png")
    return directory


@pytest.fixture
def cert_env(isolated_config, monkeypatch, pfx_path):
    monkeypatch.setenv("SCANSIGN_CERT_PATH", str(pfx_path))
    monkeypatch.setenv("SCANSIGN_CERT_PASS", PFX_PASSPHRASE)
    monkeypatch.setenv("SCANSIGN_TAX_ID", TAX_ID)


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["-V"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
    assert "usage: scansign" in capsys.readouterr().out


def test_parser_repeatable_authorized_ids():
    args = build_parser().parse_args(
        ["sign", "dir", "--authorized-tax-id", "1", "--authorized-tax-id", "2"]
    )
    assert args.authorized_tax_id == ["1", "2"]
    assert args.unique_intermediates is False


def test_parser_rejects_bad_capacity(capsys):
    with pytest.raises(SystemExit):
        build_parser().parse_args(["sign", "dir", "--capacity", "big"])
    assert "invalid capacity" in capsys.readouterr().err


@pytest.mark.usefixtures("cert_env")
def test_sign_directory(scans, capsys):
    main(["sign", str(scans)])
    out = capsys.readouterr().out
    assert "Done: 2 file(s) signed." in out
    assert {p.name for p in scans.iterdir()} == {"a.jpg", "b.png", "signed_a.pdf", "signed_b.pdf"}


@pytest.mark.usefixtures("cert_env")
def test_sign_scanner_user(scans, monkeypatch, capsys):
    monkeypatch.setenv("SCANSIGN_REPOSITORY", str(scans.parent.parent))
    main(["sign", "--scanner", "scanner1", "--user", "maria", "--name", "Outro Nome"])
    out = capsys.readouterr().out
    assert "as Outro Nome" in out
    assert (scans / "signed_a.pdf").exists()


@pytest.mark.usefixtures("cert_env")
def test_sign_partial_failure_exits_1(scans, capsys):
    (scans / "b.png").write_bytes(b"garbage")
    with pytest.raises(SystemExit) as exc_info:
        main(["sign", str(scans)])
    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "FAILED  b.png" in out
    assert "1 of 2 signed, 1 failed" in out


@pytest.mark.usefixtures("cert_env")
def test_sign_unauthorized(scans, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["sign", str(scans), "--authorized-tax-id", "11.111.111/0001-11"])
    assert exc_info.value.code == 1
    assert "not authorized" in capsys.readouterr().err


@pytest.mark.usefixtures("cert_env")
def test_sign_wrong_passphrase(scans, monkeypatch, capsys):
    monkeypatch.setenv("SCANSIGN_CERT_PASS", PFX_PASSPHRASE + "x")
    with pytest.raises(SystemExit) as exc_info:
        main(["sign", str(scans)])
    assert exc_info.value.code == 1
    assert "wrong passphrase" in capsys.readouterr().err


@pytest.mark.usefixtures("cert_env")
def test_sign_missing_directory(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["sign", str(tmp_path / "nope")])
    assert exc_info.value.code == 1
    assert "Directory not found" in capsys.readouterr().err


@pytest.mark.usefixtures("cert_env")
def test_sign_directory_and_scanner_conflict(scans, capsys):
    with pytest.raises(SystemExit):
        main(["sign", str(scans), "--scanner", "s", "--user", "u"])
    assert "not both" in capsys.readouterr().err


def test_sign_without_certificate(scans, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["sign", str(scans)])
    assert exc_info.value.code == 1
    assert "No certificate configured" in capsys.readouterr().err


def test_sign_without_passphrase(scans, pfx_path, capsys):
    with (
        patch("scansign.ui.cli.sign.resolve_passphrase", return_value=None),
        patch("scansign.ui.cli.sign.prompt_passphrase", return_value=None),
        pytest.raises(SystemExit),
    ):
        main(["sign", str(scans), "--cert", str(pfx_path)])
    assert "No passphrase available" in capsys.readouterr().err


def test_reset(capsys):
    with patch("scansign.config.reset_all") as reset:
        main(["reset"])
    reset.assert_called_once_with()
    assert "All configuration cleared" in capsys.readouterr().out


def test_format_outcome_failure(tmp_path):
    from scansign.pipeline import RunOutcome, RunState

    outcome = RunOutcome(
        source=tmp_path / "b.png",
        state=RunState.FAILED,
        failed_at=RunState.COMPOSITED,
        error_message="boom",
        leftover=(tmp_path / "processed_b.pdf",),
    )
    text = format_outcome(outcome)
    assert "FAILED  b.png (at composited): boom" in text
    assert "processed_b.pdf" in text


# ── setup ────────────────────────────────────────────────────────────


@pytest.fixture
def setup_io():
    """Stub the terminal prompts and keyring calls of the setup wizard."""
    target = "scansign.ui.cli.setup"
    with (
        patch(f"{target}.prompt_passphrase", return_value=PFX_PASSPHRASE) as prompt,
        patch(f"{target}.confirm_choice", return_value=True) as confirm,
        patch(f"{target}.save_passphrase") as save_pw,
        patch(f"{target}.safe_input") as ask,
        patch(f"{target}.get_credential_storage_info", return_value="Test keyring"),
    ):
        yield SimpleNamespace(prompt=prompt, confirm=confirm, save_pw=save_pw, ask=ask)


def _saved(isolated_config) -> dict:
    return json.loads(isolated_config.read_text())


def test_setup_with_arguments(isolated_config, setup_io, pfx_path, tmp_path, capsys):
    main(
        [
            "setup",
            "--cert", str(pfx_path),
            "--name", "Outro Nome",
            "--tax-id", TAX_ID,
            "--repository", str(tmp_path / "repo"),
        ]
    )

    assert _saved(isolated_config) == {
        "cert_path": str(pfx_path.resolve()),
        "signer_name": "Outro Nome",
        "tax_id": TAX_ID,
        "repository_root": str(tmp_path / "repo"),
    }
    setup_io.ask.assert_not_called()
    setup_io.save_pw.assert_called_once_with(pfx_path, PFX_PASSPHRASE)
    out = capsys.readouterr().out
    assert SIGNER_NAME in out
    assert "Passphrase saved." in out


def test_setup_prompts_for_missing_values(isolated_config, setup_io, pfx_path):
    # name: keep the certificate CN, tax ID typed, repository left blank
    setup_io.ask.side_effect = ["", "12.345.678/0001-90", ""]
    main(["setup", "--cert", str(pfx_path)])

    assert _saved(isolated_config) == {
        "cert_path": str(pfx_path.resolve()),
        "signer_name": SIGNER_NAME,
        "tax_id": "12.345.678/0001-90",
    }
    assert setup_io.ask.call_count == 3


def test_setup_keeps_unrelated_entries(isolated_config, setup_io, pfx_path):
    isolated_config.parent.mkdir(parents=True)
    isolated_config.write_text(json.dumps({"reason": "Conferido", "capacity": 8192}))
    main(["setup", "--cert", str(pfx_path), "--name", "N", "--tax-id", "1", "--repository", "/r"])

    saved = _saved(isolated_config)
    assert saved["reason"] == "Conferido"
    assert saved["capacity"] == 8192
    assert saved["tax_id"] == "1"


def test_setup_declines_keyring(isolated_config, setup_io, pfx_path):
    setup_io.confirm.return_value = False
    main(["setup", "--cert", str(pfx_path), "--name", "N", "--tax-id", "1", "--repository", "/r"])

    setup_io.save_pw.assert_not_called()
    assert _saved(isolated_config)["tax_id"] == "1"


def test_setup_keyring_unavailable(isolated_config, setup_io, pfx_path, capsys):
    setup_io.save_pw.side_effect = ConfigError("No keyring backend; set SCANSIGN_CERT_PASS")
    main(["setup", "--cert", str(pfx_path), "--name", "N", "--tax-id", "1", "--repository", "/r"])

    assert "Warning: No keyring backend" in capsys.readouterr().err
    assert isolated_config.exists()


def test_setup_wrong_passphrase(isolated_config, setup_io, pfx_path, capsys):
    setup_io.prompt.return_value = PFX_PASSPHRASE + "x"
    with pytest.raises(SystemExit) as exc_info:
        main(["setup", "--cert", str(pfx_path)])
    assert exc_info.value.code == 1
    assert "wrong passphrase" in capsys.readouterr().err
    assert not isolated_config.exists()
    setup_io.save_pw.assert_not_called()


def test_setup_without_terminal(isolated_config, setup_io, pfx_path, capsys):
    setup_io.prompt.return_value = None
    with pytest.raises(SystemExit) as exc_info:
        main(["setup", "--cert", str(pfx_path)])
    assert exc_info.value.code == 1
    assert "no terminal" in capsys.readouterr().err
    assert not isolated_config.exists()


def test_setup_cancelled_at_prompt(isolated_config, setup_io, pfx_path):
    setup_io.ask.return_value = None
    with pytest.raises(SystemExit) as exc_info:
        main(["setup", "--cert", str(pfx_path)])
    assert exc_info.value.code == 1
    assert not isolated_config.exists()


def test_setup_missing_certificate(isolated_config, setup_io, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["setup", "--cert", str(tmp_path / "nope.pfx")])
    assert exc_info.value.code == 1
    assert "Certificate file not found" in capsys.readouterr().err
