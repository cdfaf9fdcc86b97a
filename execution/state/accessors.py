"""
execution.state.accessors — typed views over one declared property.

An accessor is bound to (module, property, ExecutionContext):

    get()          derive address → staged write? → snapshot → Option
    set(value)     derive address → stage encoded value in the context

`set` never touches the committed tree; the BlockProducer commits a
transaction's staged writes only once the transaction is accepted.

Record values come back as plain dicts of field values (the canonical field
encoding); rebuilding a richer object from them is the calling module's job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from core.encoding.canonical import Codec

from .option import Option
from .path import Address, derive

if TYPE_CHECKING:  # pragma: no cover
    from execution.runtime.context import ExecutionContext


class _Reader:
    """Shared plumbing: context reads/stages through the property's value codec."""

    def __init__(self, ctx: "ExecutionContext", module: str, prop: str, value_codec: Codec, depth: int) -> None:
        self._ctx = ctx
        self._module = module
        self._prop = prop
        self._codec = value_codec
        self._depth = depth

    @property
    def module(self) -> str:
        return self._module

    @property
    def name(self) -> str:
        return self._prop

    def _load(self, address: Address) -> Option[Any]:
        raw = self._ctx.read(address)
        if raw is None:
            return Option.none(self._codec.dummy)
        return Option.some(self._codec.decode(raw))

    def _store(self, address: Address, value: Any) -> None:
        self._ctx.stage(address, self._codec.encode(value))


class StateAccessor(_Reader):
    """Single-value property."""

    def __init__(self, ctx: "ExecutionContext", module: str, prop: str, value_codec: Codec, depth: int) -> None:
        super().__init__(ctx, module, prop, value_codec, depth)
        self._address = derive(module, prop, depth=depth)

    @property
    def address(self) -> Address:
        return self._address

    def get(self) -> Option[Any]:
        return self._load(self._address)

    def set(self, value: Any) -> None:
        self._store(self._address, value)

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"StateAccessor({self._module}.{self._prop} @ {self._address})"


class StateMapAccessor(_Reader):
    """Keyed-map property."""

    def __init__(
        self,
        ctx: "ExecutionContext",
        module: str,
        prop: str,
        key_codec: Codec,
        value_codec: Codec,
        depth: int,
    ) -> None:
        super().__init__(ctx, module, prop, value_codec, depth)
        self._key_codec = key_codec

    def address_of(self, key: Any) -> Address:
        return derive(self._module, self._prop, key, key_codec=self._key_codec, depth=self._depth)

    def get(self, key: Any) -> Option[Any]:
        return self._load(self.address_of(key))

    def set(self, key: Any, value: Any) -> None:
        self._store(self.address_of(key), value)

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"StateMapAccessor({self._module}.{self._prop})"


__all__ = ["StateAccessor", "StateMapAccessor"]
