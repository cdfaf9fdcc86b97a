"""
execution.runtime — module declarations and single-transaction execution.

Submodules
----------
- module   : PropertySpec / ParamSpec / ProofParam / MethodSpec / ModuleSpec, extend()
- registry : ModuleRegistry (chain assembly, resolution, signing)
- context  : ExecutionContext (assertion ledger + staged writes)
- env      : MethodEnv handed to method bodies
- executor : TransactionExecutor

Re-exports are loaded lazily on first attribute access.
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "PropertySpec": ("module", "PropertySpec"),
    "ParamSpec": ("module", "ParamSpec"),
    "ProofParam": ("module", "ProofParam"),
    "MethodSpec": ("module", "MethodSpec"),
    "ModuleSpec": ("module", "ModuleSpec"),
    "extend": ("module", "extend"),
    "ModuleRegistry": ("registry", "ModuleRegistry"),
    "ExecutionContext": ("context", "ExecutionContext"),
    "MethodEnv": ("env", "MethodEnv"),
    "TransactionExecutor": ("executor", "TransactionExecutor"),
}

__all__ = tuple(_exports.keys())


def __getattr__(name: str) -> Any:
    if name in _exports:
        submod, symbol = _exports[name]
        return getattr(_imp(f"{__name__}.{submod}"), symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover
    return sorted(list(globals().keys()) + list(__all__))
