"""
execution.state.path — deterministic derivation of state-tree addresses.

Every stored value lives at an address derived from the owning module's name,
the property's name and, for map properties, the key's canonical encoding:

    single  : H(DOMAIN_PATH, module, property)
    map     : H(DOMAIN_PATH, module, property, key_codec.encode(key))

`H` is the length-prefixed tagged SHA3-256 from `core.utils.hash`, so the
single and map forms (two parts vs three) can never collide, and neither can
different splits of the same characters between module and property. The
256-bit digest is truncated to the tree depth by keeping its top `depth`
bits.

Any caller that can name (module, property, key) computes the same address.
That is how modules read each other's declared state; it mirrors the single
shared tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from core.config import MAX_TREE_DEPTH
from core.encoding.canonical import Codec
from core.errors import ConfigError, EncodingError
from core.utils.hash import tagged_hash

DOMAIN_PATH = b"modchain/path:v1"

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_name(name: Any, *, what: str) -> str:
    """Module and property names are plain identifiers used verbatim in derivation."""
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise ConfigError(f"invalid {what} name", name=repr(name))
    return name


@dataclass(frozen=True, order=True)
class Address:
    """A `depth`-bit position in the state tree. Produced only by `derive`."""

    value: int
    depth: int

    def __post_init__(self) -> None:
        if not (1 <= self.depth <= MAX_TREE_DEPTH):
            raise ValueError(f"depth must be in [1, {MAX_TREE_DEPTH}]")
        if not (0 <= self.value < (1 << self.depth)):
            raise ValueError("address out of range for depth")

    def to_bytes(self) -> bytes:
        return self.value.to_bytes((self.depth + 7) // 8, "big")

    def hex(self) -> str:
        return "0x" + self.to_bytes().hex()

    def __str__(self) -> str:
        return self.hex()


def derive(
    module_name: str,
    property_name: str,
    key: Any = None,
    *,
    key_codec: Optional[Codec] = None,
    depth: int = MAX_TREE_DEPTH,
) -> Address:
    """
    Map (module, property[, key]) to its state-tree address.

    `key_codec` must be given exactly when `key` is; it is the map property's
    declared key codec. Raises EncodingError if the key does not satisfy it.
    """
    if not (1 <= depth <= MAX_TREE_DEPTH):
        raise ValueError(f"depth must be in [1, {MAX_TREE_DEPTH}]")
    parts = [module_name.encode("utf-8"), property_name.encode("utf-8")]
    if key_codec is not None:
        parts.append(key_codec.encode(key))
    elif key is not None:
        raise EncodingError("map key given without a key codec", module=module_name, property=property_name)
    digest = tagged_hash(DOMAIN_PATH, *parts)
    bits = int.from_bytes(digest, "big") >> (MAX_TREE_DEPTH - depth)
    return Address(bits, depth)


@dataclass(frozen=True)
class PathDeriver:
    """`derive` bound to one tree depth."""

    depth: int = MAX_TREE_DEPTH

    def single(self, module_name: str, property_name: str) -> Address:
        return derive(module_name, property_name, depth=self.depth)

    def entry(self, module_name: str, property_name: str, key: Any, key_codec: Codec) -> Address:
        return derive(module_name, property_name, key, key_codec=key_codec, depth=self.depth)


__all__ = ["DOMAIN_PATH", "Address", "PathDeriver", "check_name", "derive"]
