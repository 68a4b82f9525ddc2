"""
Command-line token consumption.

Small, pure helpers that pull flags (and flag values) out of a token
sequence and hand back what was found together with the tokens that were
left untouched. Relative order of the remaining tokens is always preserved.

Flags are declared up front as ``Flag`` constants that carry both the
token as typed on the command line and the result field it populates:

    found, remaining = consume_existences(tokens, NO_MINT, DRY_RUN)
    found["no_mint"]   # True / False

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple, Union


class MalformedArgumentError(ValueError):
    """A value flag was supplied without the value that must follow it."""

    def __init__(self, flag: str):
        super().__init__(f"Flag {flag} requires a value.")
        self.flag = flag


@dataclass(frozen=True)
class Flag:
    """A command-line flag and the result field it is reported under."""
    token: str
    field: str

    def __str__(self) -> str:
        return self.token


# =============================================================================
# FLAG TABLE
# =============================================================================

DEBUG = Flag("--debug", "debug")
RPC = Flag("--rpc", "rpc")
MNEMONIC = Flag("--mnemonic", "mnemonic")
ACCOUNT = Flag("--account", "account")
CONFIG = Flag("--config", "config")

NO_MINT = Flag("--no-mint", "no_mint")
VENDING_MACHINE = Flag("--vending-machine", "vending_machine")
ADDRESS = Flag("--address", "address")
DRY_RUN = Flag("--dry-run", "dry_run")
FUNDING = Flag("--funding", "funding")
REDEMPTION = Flag("--redemption", "redemption")
LIQUIDATION_REASON = Flag("for", "reason")


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class ExistenceResult:
    present: bool
    remaining: Tuple[str, ...]

    def __iter__(self):
        return iter((self.present, self.remaining))


@dataclass(frozen=True)
class ValueResult:
    value: Optional[str]
    remaining: Tuple[str, ...]

    def __iter__(self):
        return iter((self.value, self.remaining))


@dataclass(frozen=True)
class ParseResult:
    """Accumulated result of consuming several flags."""
    found: Dict[str, Union[bool, str, None]] = field(default_factory=dict)
    remaining: Tuple[str, ...] = ()

    def __iter__(self):
        return iter((self.found, self.remaining))


FlagLike = Union[Flag, str]


def _token(flag: FlagLike) -> str:
    return flag.token if isinstance(flag, Flag) else flag


# =============================================================================
# CONSUMERS
# =============================================================================

def consume_existence(tokens: Sequence[str], flag: FlagLike) -> ExistenceResult:
    """Remove the first occurrence of ``flag`` and report whether it was there."""
    tokens = tuple(tokens)
    token = _token(flag)
    if token not in tokens:
        return ExistenceResult(False, tokens)

    index = tokens.index(token)
    return ExistenceResult(True, tokens[:index] + tokens[index + 1:])


def consume_value(tokens: Sequence[str], flag: FlagLike) -> ValueResult:
    """
    Remove ``flag`` and the token that follows it, returning that token.

    If ``flag`` is absent the value is ``None`` and the tokens come back
    unchanged. A flag in final position has no value to take and raises
    ``MalformedArgumentError``.
    """
    tokens = tuple(tokens)
    token = _token(flag)
    if token not in tokens:
        return ValueResult(None, tokens)

    index = tokens.index(token)
    if index + 1 >= len(tokens):
        raise MalformedArgumentError(token)

    return ValueResult(tokens[index + 1], tokens[:index] + tokens[index + 2:])


def consume_existences(tokens: Sequence[str], *flags: Flag) -> ParseResult:
    """Apply ``consume_existence`` for each flag, left to right."""
    found: Dict[str, Union[bool, str, None]] = {}
    remaining = tuple(tokens)
    for flag in flags:
        result = consume_existence(remaining, flag)
        found[flag.field] = result.present
        remaining = result.remaining
    return ParseResult(found=found, remaining=remaining)


def consume_values(tokens: Sequence[str], *flags: Flag) -> ParseResult:
    """Apply ``consume_value`` for each flag, left to right."""
    found: Dict[str, Union[bool, str, None]] = {}
    remaining = tuple(tokens)
    for flag in flags:
        result = consume_value(remaining, flag)
        found[flag.field] = result.value
        remaining = result.remaining
    return ParseResult(found=found, remaining=remaining)
