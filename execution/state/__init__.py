"""
execution.state — addresses, the sparse Merkle state tree, Option values and
typed accessors.

Submodules:
- path:      PathDeriver / derive → Address
- merkle:    SparseMerkleTree, TreeSnapshot, Witness
- option:    presence-tagged values
- accessors: StateAccessor / StateMapAccessor over an ExecutionContext

Common symbols are lazily re-exported from their submodules on first access.
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "Address": ("path", "Address"),
    "PathDeriver": ("path", "PathDeriver"),
    "derive": ("path", "derive"),
    "SparseMerkleTree": ("merkle", "SparseMerkleTree"),
    "TreeSnapshot": ("merkle", "TreeSnapshot"),
    "Witness": ("merkle", "Witness"),
    "verify_witness": ("merkle", "verify_witness"),
    "Option": ("option", "Option"),
    "StateAccessor": ("accessors", "StateAccessor"),
    "StateMapAccessor": ("accessors", "StateMapAccessor"),
}

__all__ = tuple(_exports.keys())


def __getattr__(name: str) -> Any:
    if name in _exports:
        submod, symbol = _exports[name]
        return getattr(_imp(f"{__name__}.{submod}"), symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover
    return sorted(list(globals().keys()) + list(__all__))
