"""
Common CLI helper functions for scansign.

Prompting and output formatting shared by the sign and setup commands.
"""

from __future__ import annotations

import getpass
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..pipeline import RunOutcome

__all__ = [
    "confirm_choice",
    "format_outcome",
    "prompt_passphrase",
    "safe_input",
]


def safe_input(prompt: str) -> str | None:
    """Prompt user for input, returning None on EOF/KeyboardInterrupt.

    Prints a newline on interrupt to keep the terminal tidy.

    Returns:
        Stripped user input, or None if cancelled (Ctrl-C, Ctrl-D).
    """
    try:
        return input(prompt).strip()
    except (EOFError, KeyboardInterrupt):
        print()
        return None


def confirm_choice(message: str, default_yes: bool = True) -> bool:
    """Prompt user for yes/no confirmation."""
    suffix = "[Y/n]" if default_yes else "[y/N]"
    try:
        answer = input(f"{message} {suffix} ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        print()
        return False

    if default_yes:
        return answer in ("", "y", "yes")
    return answer in ("y", "yes")


def prompt_passphrase(prompt: str = "Certificate passphrase: ") -> str | None:
    """Read a passphrase without echo.

    Returns None when stdin is not a terminal or the prompt is cancelled.
    """
    if not sys.stdin.isatty():
        return None
    try:
        return getpass.getpass(prompt)
    except (EOFError, KeyboardInterrupt):
        print()
        return None


def format_outcome(outcome: RunOutcome) -> str:
    """One status line for a run outcome."""
    if outcome.ok and outcome.output_path is not None:
        line = f"  OK      {outcome.source.name} -> {outcome.output_path.name}"
    else:
        stage = outcome.failed_at.value if outcome.failed_at else "?"
        line = f"  FAILED  {outcome.source.name} (at {stage}): {outcome.error_message}"
    if outcome.leftover:
        names = ", ".join(p.name for p in outcome.leftover)
        line += f"\n          could not remove: {names}"
    return line
