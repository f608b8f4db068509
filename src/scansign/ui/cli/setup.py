"""
Interactive setup for scansign CLI.

Saves certificate location, signer identity, and repository root, and
stores the certificate passphrase in the system keychain.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ...config import (
    CONFIG_FILE,
    get_credential_storage_info,
    resolve_settings,
    save_passphrase,
    save_settings,
)
from ...core.credential import certificate_subject, load_credential
from ...errors import ScanSignError
from ..helpers import confirm_choice, prompt_passphrase, safe_input

if TYPE_CHECKING:
    import argparse


def _ask(label: str, current: str | None) -> str | None:
    """Prompt for a value, keeping ``current`` on empty input."""
    hint = f" [{current}]" if current else ""
    answer = safe_input(f"{label}{hint}: ")
    if answer is None:
        sys.exit(1)
    return answer or current


def cmd_setup(args: argparse.Namespace) -> None:
    """Walk through certificate, identity, and repository configuration."""
    try:
        current = resolve_settings()
    except ScanSignError:
        current = None

    saved_cert = str(current.cert_path) if current and current.cert_path else None
    cert = args.cert or _ask("Certificate (.pfx/.p12)", saved_cert)
    if not cert:
        print("A certificate is required.", file=sys.stderr)
        sys.exit(1)
    cert_path = Path(cert).expanduser()

    passphrase = prompt_passphrase()
    if passphrase is None:
        print("Cannot read the passphrase (no terminal).", file=sys.stderr)
        sys.exit(1)

    try:
        credential = load_credential(cert_path, passphrase)
    except ScanSignError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    subject = certificate_subject(credential)
    print(f"\nCertificate: {subject['dn']}")

    saved_name = current.signer_name if current else None
    name = args.name or _ask("Signer name", saved_name or subject["name"])
    tax_id = args.tax_id or _ask("CNPJ/CPF", current.tax_id if current else None)
    repository = args.repository or _ask(
        "Scan repository root (optional)",
        str(current.repository_root) if current and current.repository_root else None,
    )

    save_settings(
        cert_path=str(cert_path.resolve()),
        signer_name=name,
        tax_id=tax_id,
        repository_root=repository,
    )
    print(f"\nSettings saved to {CONFIG_FILE}")

    if confirm_choice(f"Save the passphrase to {get_credential_storage_info()}?"):
        try:
            save_passphrase(cert_path, passphrase)
        except ScanSignError as e:
            print(f"Warning: {e}", file=sys.stderr)
        else:
            print("Passphrase saved.")
