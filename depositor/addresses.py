"""Ledger address format checks."""

from __future__ import annotations

import re
from typing import Any

_ADDRESS_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")


def is_address(value: Any) -> bool:
    """
    Check that ``value`` looks like a 20-byte hex ledger address.

    Accepts an optional ``0x`` prefix. Mixed-case checksums are not verified
    here; the ledger client rejects a bad checksum when the address is used.
    """
    if not isinstance(value, str):
        return False
    return _ADDRESS_RE.match(value) is not None


def same_address(a: str, b: str) -> bool:
    """Compare two addresses ignoring case and the ``0x`` prefix."""
    def norm(x: str) -> str:
        x = x.lower()
        return x[2:] if x.startswith("0x") else x

    return norm(a) == norm(b)
