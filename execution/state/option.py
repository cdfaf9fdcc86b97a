"""
execution.state.option — presence-tagged values.

A state read never yields a language-level None. It yields an Option whose
`value` is always well-formed: the stored value when `present` is True, the
codec's dummy (0, False, zero bytes, a record of dummies) otherwise. Calling
code inspects the tag and keeps running either way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

V = TypeVar("V")


@dataclass(frozen=True)
class Option(Generic[V]):
    present: bool
    value: V

    @classmethod
    def some(cls, value: V) -> "Option[V]":
        return cls(True, value)

    @classmethod
    def none(cls, dummy: V) -> "Option[V]":
        return cls(False, dummy)

    def or_else(self, default: V) -> V:
        """The stored value if present, else `default`."""
        return self.value if self.present else default

    def __repr__(self) -> str:
        return f"Option(present={self.present}, value={self.value!r})"


__all__ = ["Option"]
