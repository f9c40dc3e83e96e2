"""Stable identifiers for snapshot files."""

from __future__ import annotations

import re

HASH_WIDTH = 13
SNAPSHOT_SUFFIX = ".snap.txt"

_FNV_OFFSET_BASIS_64 = 0xCBF29CE484222325
_FNV_PRIME_64 = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF
_BASE32_DIGITS = "0123456789abcdefghijklmnopqrstuv"
_WHITESPACE = re.compile(r"\s+")
_UNSAFE_CHARACTERS = re.compile(r"[!\"#$%&'()*+,./:;<=>?@\[\\\]^`{|}~]")


def hash_title(title: str) -> str:
    """Return the 13 character FNV-1a (64 bit, base 32) hash of a title."""
    value = _FNV_OFFSET_BASIS_64
    for byte in title.encode("utf-8"):
        value ^= byte
        value = (value * _FNV_PRIME_64) & _MASK_64
    return _to_base32(value).rjust(HASH_WIDTH, "0")


def snapshot_filename(title: str) -> str:
    return f"{hash_title(title)}{SNAPSHOT_SUFFIX}"


def slugify_title(parts: list[str]) -> str:
    """Join title segments into the slug used as a snapshot's full title."""
    joined = "-".join(parts).strip()
    slug = _WHITESPACE.sub("-", joined).lower()
    return _UNSAFE_CHARACTERS.sub("", slug)


def _to_base32(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 32)
        digits.append(_BASE32_DIGITS[remainder])
    return "".join(reversed(digits))
