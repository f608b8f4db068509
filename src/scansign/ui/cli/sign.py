"""Signing command handler for scansign CLI."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ...config import resolve_passphrase, resolve_settings
from ...constants import ENV_CERT_PASS, ENV_CERT_PATH
from ...core.credential import load_credential
from ...errors import ScanSignError
from ...pipeline import SigningPipeline
from ..helpers import format_outcome, prompt_passphrase

if TYPE_CHECKING:
    import argparse

    from ...config import Settings


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {
        "cert_path": args.cert,
        "signer_name": args.name,
        "tax_id": args.tax_id,
        "reason": args.reason,
        "capacity": args.capacity,
        "font_path": args.font,
    }
    return resolve_settings(overrides)


def _resolve_directory(args: argparse.Namespace, settings: Settings) -> Path:
    if args.directory:
        if args.scanner or args.user:
            _fail("Give either DIRECTORY or --scanner/--user, not both")
        return Path(args.directory)
    if not (args.scanner and args.user):
        _fail("Give a DIRECTORY, or both --scanner and --user")
    return settings.scan_directory(args.scanner, args.user)


def cmd_sign(args: argparse.Namespace) -> None:
    """Sign every scanned image in a directory."""
    try:
        settings = _settings_from_args(args)
        directory = _resolve_directory(args, settings)
    except ScanSignError as e:
        _fail(str(e))
        return

    if settings.cert_path is None:
        _fail(f"No certificate configured. Use --cert, set {ENV_CERT_PATH}, or run 'scansign setup'.")
        return

    passphrase = resolve_passphrase(settings.cert_path)
    if passphrase is None:
        passphrase = prompt_passphrase()
    if passphrase is None:
        _fail(f"No passphrase available. Set {ENV_CERT_PASS} or run 'scansign setup'.")
        return

    try:
        credential = load_credential(settings.cert_path, passphrase)
        pipeline = SigningPipeline(
            settings, credential, unique_intermediates=args.unique_intermediates
        )
        print(f"Signing images in {directory} as {pipeline.signer_name} ({settings.tax_id})...")
        report = pipeline.run(directory, authorized_tax_ids=args.authorized_tax_id)
    except ScanSignError as e:
        _fail(str(e))
        return

    if not report.outcomes:
        print("No images found.")
        return

    for outcome in report.outcomes:
        print(format_outcome(outcome))

    print()
    total = len(report.outcomes)
    if report.ok:
        print(f"Done: {total} file(s) signed.")
    else:
        print(f"Done: {len(report.succeeded)} of {total} signed, {len(report.failed)} failed.")
        sys.exit(1)
