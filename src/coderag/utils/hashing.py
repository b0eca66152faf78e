"""Stable hashing for content-addressed identifiers."""

from __future__ import annotations

import hashlib

# 16 hex digits = 64 bits of sha256.
ID_HEX_DIGITS = 16


def stable_hash(value: str, *, digits: int = ID_HEX_DIGITS) -> str:
    """Hash ``value`` to a hex string that is stable across processes and platforms."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:digits]
