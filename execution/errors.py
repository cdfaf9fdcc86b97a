"""
execution.errors — execution-layer exceptions.

Only *malformed* transactions are reported as exceptions here. Logical failures
(false assertions, proofs that do not verify) are never raised: they are
recorded in the transaction's assertion ledger and surface as block-record
data. Infrastructure failures use `core.errors.BackendError`.

Hierarchy
---------
ExecError (base)
 └─ MalformedTransaction : rejected before any ExecutionContext exists
      reasons: UNKNOWN_MODULE, UNKNOWN_METHOD, NOT_ENTRY, BAD_ARITY,
               BAD_ARGUMENT, BAD_SIGNATURE, DUPLICATE

These classes avoid importing types from other packages so they can be used
from low-level modules without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

UNKNOWN_MODULE = "UNKNOWN_MODULE"
UNKNOWN_METHOD = "UNKNOWN_METHOD"
NOT_ENTRY = "NOT_ENTRY"
BAD_ARITY = "BAD_ARITY"
BAD_ARGUMENT = "BAD_ARGUMENT"
BAD_SIGNATURE = "BAD_SIGNATURE"
# same sign-bytes as a transaction already queued or executed
DUPLICATE = "DUPLICATE"

MALFORMED_REASONS = frozenset(
    {UNKNOWN_MODULE, UNKNOWN_METHOD, NOT_ENTRY, BAD_ARITY, BAD_ARGUMENT, BAD_SIGNATURE, DUPLICATE}
)


@dataclass
class ExecError(Exception):
    """
    Base execution error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string.
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "execution error"
    code: str = "EXEC_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class MalformedTransaction(ExecError):
    """
    Transaction rejected outright: no assertion ledger, no state effect.

    Usage:
        raise MalformedTransaction("unknown module 'Foo'", reason=UNKNOWN_MODULE, module="Foo")
    """
    def __init__(self, message: str = "malformed transaction", *, reason: str, **data: Any):
        if reason not in MALFORMED_REASONS:
            raise ValueError(f"unknown malformed-transaction reason: {reason!r}")
        super().__init__(message=message, code=reason, data=dict(data) or None)

    @property
    def reason(self) -> str:
        return self.code


__all__ = [
    "UNKNOWN_MODULE",
    "UNKNOWN_METHOD",
    "NOT_ENTRY",
    "BAD_ARITY",
    "BAD_ARGUMENT",
    "BAD_SIGNATURE",
    "DUPLICATE",
    "ExecError",
    "MalformedTransaction",
]
