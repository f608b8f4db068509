"""
Command-line interface for scansign.

Argument parsing, dispatch, and non-signing subcommands.
Signing logic lives in ``sign``, the setup wizard in ``setup``.
"""

from __future__ import annotations

import argparse
import logging
import sys

from ...constants import __version__
from .setup import cmd_setup
from .sign import cmd_sign


def _cmd_reset() -> None:
    """Clear all configuration and the saved passphrase."""
    from ...config import reset_all

    reset_all()
    print("All configuration cleared.")
    print("Run 'scansign setup' to reconfigure.")


def _capacity(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid capacity: {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scansign",
        description="Turn scanned images into digitally signed PDFs.",
        epilog=(
            "Environment variables:\n"
            "  SCANSIGN_CERT_PATH    PKCS#12 certificate (.pfx/.p12)\n"
            "  SCANSIGN_CERT_PASS    Certificate passphrase\n"
            "  SCANSIGN_SIGNER_NAME  Name shown on the signature image\n"
            "  SCANSIGN_TAX_ID       CNPJ/CPF shown on the signature image\n"
            "  SCANSIGN_CAPACITY     Bytes reserved for the signature (default: 16384)\n"
            "  SCANSIGN_FONT         TrueType font for the signature image\n"
            "  SCANSIGN_REPOSITORY   Root folder of <scanner>/<user> scan directories\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"scansign {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # sign
    p_sign = sub.add_parser("sign", help="Sign every scanned image in a directory")
    p_sign.add_argument("directory", nargs="?", help="Directory with .jpg/.png scans")
    p_sign.add_argument("--scanner", help="Scanner folder under the repository root")
    p_sign.add_argument("--user", help="User folder under the scanner folder")
    p_sign.add_argument("--cert", help="PKCS#12 certificate (default: from setup)")
    p_sign.add_argument("--name", help="Signer name (default: from setup, else certificate CN)")
    p_sign.add_argument("--tax-id", help="Signer CNPJ/CPF (default: from setup)")
    p_sign.add_argument("--reason", help="Signature reason (default: 'Assinatura Digital')")
    p_sign.add_argument(
        "--capacity", type=_capacity, help="Bytes reserved for the signature (default: 16384)"
    )
    p_sign.add_argument("--font", help="TrueType font for the signature image")
    p_sign.add_argument(
        "--authorized-tax-id",
        action="append",
        default=None,
        metavar="TAX_ID",
        help="Only sign if the signer's tax ID is one of these (repeatable)",
    )
    p_sign.add_argument(
        "--unique-intermediates",
        action="store_true",
        default=False,
        help="Add a run id to intermediate file names",
    )

    # setup
    p_setup = sub.add_parser("setup", help="Configure certificate, signer identity, and repository")
    p_setup.add_argument("--cert", help="PKCS#12 certificate")
    p_setup.add_argument("--name", help="Signer name")
    p_setup.add_argument("--tax-id", help="Signer CNPJ/CPF")
    p_setup.add_argument("--repository", help="Scan repository root")

    # reset
    sub.add_parser("reset", help="Clear all configuration and the saved passphrase")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose == 1:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "sign":
        cmd_sign(args)
    elif args.command == "setup":
        cmd_setup(args)
    elif args.command == "reset":
        _cmd_reset()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
