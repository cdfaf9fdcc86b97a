"""
modchain — core.errors
----------------------

A small, consistent error system shared by every layer.

Taxonomy
--------
- `ConfigError`   : invalid declarations detected at chain-assembly time
                    (bad codec, malformed module registration). Fatal: the
                    chain must not start.
- `EncodingError` : a value handed to a codec does not satisfy it. Caller
                    contract violation, never a soft failure.
- `BackendError`  : hash primitive / proof backend unavailable or misbehaving.
                    Fatal to the current batch, which is retried from the
                    pre-batch root.

Malformed transactions live in `execution.errors`; logical (soft) failures
are never raised at all, they are recorded in the assertion ledger.

This module uses only stdlib to avoid import cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class CoreErrorCode(str, Enum):
    INTERNAL = "CORE/INTERNAL"
    CONFIG = "CORE/CONFIG"
    ENCODING = "CORE/ENCODING"
    BACKEND = "CORE/BACKEND"


@dataclass(eq=False)
class ModchainError(Exception):
    """
    Root error for modchain components.

    Attributes
    ----------
    code: str
        Machine-stable error code (see CoreErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional machine data (names, sizes, hashes). JSON-serializable.
    retryable: bool
        Whether the operation may succeed on retry without changing inputs.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs and block records."""
        out: Dict[str, Any] = {
            "code": str(self.code),
            "message": self.message,
            "data": _jsonmap(self.data),
            "retryable": self.retryable,
        }
        if self.cause is not None:
            out["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        return out

    def __str__(self) -> str:  # pragma: no cover - human formatting
        parts = [f"{self.code}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


class ConfigError(ModchainError):
    def __init__(self, message: str = "invalid configuration", **data: Any) -> None:
        super().__init__(code=CoreErrorCode.CONFIG.value, message=message, data=_jsonmap(data))


class EncodingError(ModchainError):
    def __init__(self, message: str = "value is not canonically encodable", **data: Any) -> None:
        super().__init__(code=CoreErrorCode.ENCODING.value, message=message, data=_jsonmap(data))


class BackendError(ModchainError):
    def __init__(
        self,
        message: str = "backend unavailable",
        *,
        cause: Optional[BaseException] = None,
        **data: Any,
    ) -> None:
        super().__init__(
            code=CoreErrorCode.BACKEND.value,
            message=message,
            data=_jsonmap(data),
            retryable=True,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (list, tuple)):
        return [_coerce_json(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _coerce_json(x) for k, x in v.items()}
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "CoreErrorCode",
    "ModchainError",
    "ConfigError",
    "EncodingError",
    "BackendError",
]
