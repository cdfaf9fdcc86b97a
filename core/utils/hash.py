"""
core.utils.hash
===============

Thin wrappers around the hash primitive used for addresses, tree nodes and
transaction ids.

All digests are SHA3-256 (32 bytes). Domain separation is done by prefixing a
tag: `tagged_hash(tag, *parts)` hashes `tag || len(part) || part ...` so that
no concatenation of parts can be confused with another.
"""

from __future__ import annotations

import hashlib
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

DIGEST_SIZE = 32
ZERO32 = b"\x00" * DIGEST_SIZE


def sha3_256(data: BytesLike) -> bytes:
    """SHA3-256 digest."""
    return hashlib.sha3_256(bytes(data)).digest()


def _u32(n: int) -> bytes:
    if n < 0 or n > 0xFFFFFFFF:
        raise ValueError("length out of range for u32")
    return n.to_bytes(4, "big")


def tagged_hash(tag: bytes, *parts: BytesLike) -> bytes:
    """SHA3-256 over `tag` followed by each part with a 4-byte length prefix."""
    h = hashlib.sha3_256(tag)
    for p in parts:
        b = bytes(p)
        h.update(_u32(len(b)))
        h.update(b)
    return h.digest()


__all__ = ["BytesLike", "DIGEST_SIZE", "ZERO32", "sha3_256", "tagged_hash"]
