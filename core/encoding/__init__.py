"""
core.encoding
=============

Canonical, type-tagged encoding of every value that reaches a state address,
the state tree or a transaction's sign-bytes (see `canonical.py`).
"""

from __future__ import annotations

from .canonical import (Bool, Codec, Field, FixedBytes, Int, PublicKey, Record,
                        UInt, dumps, loads, resolve_codec)

__all__ = [
    "Codec",
    "UInt",
    "Int",
    "Bool",
    "Field",
    "FixedBytes",
    "PublicKey",
    "Record",
    "dumps",
    "loads",
    "resolve_codec",
]
