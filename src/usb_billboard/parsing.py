"""Operator input parsing: hex-first numbers and command tokens."""

from __future__ import annotations

from typing import List

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class ParseError(ValueError):
    """Operator input that cannot be understood (non-fatal)."""


def parse_hex(token: str, max_value: int = 0xFFFF, what: str = "value") -> int:
    """Parse *token* as hexadecimal, ``0x`` prefix optional.

    ``"10"`` and ``"0x10"`` are both 16.  Raises ParseError for
    anything that is not hex or does not fit in ``max_value``.
    """
    s = token.strip()
    if s[:2].lower() == "0x":
        s = s[2:]
    if not s:
        raise ParseError(f"Empty {what}: {token!r}")
    # int() alone would also take signs, underscores and whitespace
    if not all(c in _HEX_DIGITS for c in s):
        raise ParseError(f"Cannot parse {what} {token!r} as hex")
    n = int(s, 16)
    if n > max_value:
        raise ParseError(
            f"{what.capitalize()} {token!r} out of range (max 0x{max_value:X})")
    return n


def parse_u8(token: str, what: str = "value") -> int:
    return parse_hex(token, 0xFF, what)


def parse_u16(token: str, what: str = "value") -> int:
    return parse_hex(token, 0xFFFF, what)


def split_command(line: str) -> List[str]:
    """Whitespace-split a command line; empty list for blank input."""
    return line.split()
