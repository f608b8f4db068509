"""Signer identity record rendered into the signature image."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "SignerIdentity",
    "format_timestamp",
    "is_authorized",
    "normalize_tax_id",
]

_NON_DIGITS = re.compile(r"\D")


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True)
class SignerIdentity:
    """Who is signing.

    Attributes:
        name: Signer display name (company or person).
        tax_id: CNPJ/CPF as displayed, e.g. "47.978.428/0001-77".
        timestamp: Signing instant; captured at construction time.
    """

    name: str
    tax_id: str
    timestamp: datetime = field(default_factory=_now)

    def display_lines(self) -> list[str]:
        """Text lines drawn on the signature image, top to bottom."""
        return [
            f"Assinado por: {self.name}",
            f"CNPJ: {self.tax_id}",
            f"Data: {format_timestamp(self.timestamp)}",
        ]

    def stamped(self) -> SignerIdentity:
        """Return a copy with the timestamp set to now."""
        return SignerIdentity(self.name, self.tax_id)


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp the way Brazilian locales show it: '19/10/2026 14:03:12'."""
    return ts.strftime("%d/%m/%Y %H:%M:%S")


def normalize_tax_id(tax_id: str) -> str:
    """Strip punctuation from a CNPJ/CPF so formatted and bare forms compare equal."""
    return _NON_DIGITS.sub("", tax_id)


def is_authorized(tax_id: str, authorized: Iterable[str]) -> bool:
    """Check a tax ID against an allow-list, ignoring formatting."""
    wanted = normalize_tax_id(tax_id)
    if not wanted:
        return False
    return any(normalize_tax_id(candidate) == wanted for candidate in authorized)
