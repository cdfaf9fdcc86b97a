"""
execution.runtime.module — declarative module descriptors.

A module is data, assembled once at chain-assembly time:

    balances = ModuleSpec(
        name="Balances",
        version=1,
        properties=(
            PropertySpec("supply", UInt(64)),
            PropertySpec("balances", UInt(64), key_codec=PublicKey()),
        ),
        methods=(
            MethodSpec("transfer", transfer, params=(ParamSpec("to", PublicKey()), ParamSpec("amount", UInt(64)))),
            MethodSpec("_debit", debit, params=(...), entry=False),
        ),
    )

Method bodies are plain callables `fn(env, *args)` receiving a
`execution.runtime.env.MethodEnv`. Proof-typed parameters are declared with
`ProofParam(name, program_id)`; the executor verifies them before the body
runs and hands the body the Proof object itself.

Derived modules are composed, not subclassed: `extend(base, name=...)` merges
the base's property and method tables with overrides (override wins by name)
into a fresh ModuleSpec.

Every descriptor validates itself on construction and raises ConfigError, so
a bad declaration stops chain assembly and can never surface at call time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import cbor2

from core.encoding.canonical import FIELD_MODULUS, TAG_PROOF, Codec, resolve_codec
from core.errors import ConfigError, EncodingError
from execution.state.path import check_name
from zk.verifiers import Proof


@dataclass(frozen=True)
class PropertySpec:
    """Declared state property. A map iff `key_codec` is set."""

    name: str
    value_codec: Codec
    key_codec: Optional[Codec] = None

    def __post_init__(self) -> None:
        check_name(self.name, what="property")
        object.__setattr__(self, "value_codec", resolve_codec(self.value_codec, what=f"property {self.name} value"))
        if self.key_codec is not None:
            object.__setattr__(self, "key_codec", resolve_codec(self.key_codec, what=f"property {self.name} key"))

    @property
    def is_map(self) -> bool:
        return self.key_codec is not None


@dataclass(frozen=True)
class ParamSpec:
    name: str
    codec: Codec

    is_proof = False

    def __post_init__(self) -> None:
        check_name(self.name, what="parameter")
        object.__setattr__(self, "codec", resolve_codec(self.codec, what=f"parameter {self.name}"))

    def coerce(self, value: Any) -> Any:
        return self.codec.validate(value)

    def sign_item(self, value: Any) -> Any:
        return self.codec.to_cbor(value)


@dataclass(frozen=True)
class ProofParam:
    """Proof-typed parameter bound to the program it must attest to."""

    name: str
    program_id: bytes

    is_proof = True

    def __post_init__(self) -> None:
        check_name(self.name, what="parameter")
        if not isinstance(self.program_id, (bytes, bytearray)) or not self.program_id:
            raise ConfigError("proof parameter needs a non-empty program id", param=self.name)
        object.__setattr__(self, "program_id", bytes(self.program_id))

    def coerce(self, value: Any) -> Proof:
        if not isinstance(value, Proof):
            raise EncodingError(f"parameter {self.name} expects a Proof", got=type(value).__name__)
        for x in value.public_inputs:
            if isinstance(x, bool) or not isinstance(x, int):
                raise EncodingError(f"parameter {self.name}: public inputs must be ints", got=type(x).__name__)
            if not 0 <= x < FIELD_MODULUS:
                raise EncodingError(f"parameter {self.name}: public input outside the field", value=x)
        return value

    def sign_item(self, value: Proof) -> Any:
        return cbor2.CBORTag(TAG_PROOF, [value.program_id, list(value.public_inputs), value.payload])


Param = Union[ParamSpec, ProofParam]


@dataclass(frozen=True)
class MethodSpec:
    """
    A callable method. `entry=True` marks a provable entry point a transaction
    may target; internal methods are reachable only through `env.call`.
    """

    name: str
    fn: Callable[..., Any]
    params: Tuple[Param, ...] = ()
    entry: bool = True

    def __post_init__(self) -> None:
        check_name(self.name, what="method")
        if not callable(self.fn):
            raise ConfigError("method body must be callable", method=self.name)
        params = tuple(self.params)
        seen = set()
        for p in params:
            if not isinstance(p, (ParamSpec, ProofParam)):
                raise ConfigError("parameters must be ParamSpec or ProofParam", method=self.name, got=type(p).__name__)
            if p.name in seen:
                raise ConfigError("duplicate parameter name", method=self.name, param=p.name)
            seen.add(p.name)
        object.__setattr__(self, "params", params)

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def proof_params(self) -> Tuple[Tuple[int, ProofParam], ...]:
        """(argument index, ProofParam) pairs in argument order."""
        return tuple((i, p) for i, p in enumerate(self.params) if isinstance(p, ProofParam))

    def coerce_args(self, args: Sequence[Any]) -> Tuple[Any, ...]:
        """Validate arguments against the declaration. Raises EncodingError."""
        return tuple(p.coerce(a) for p, a in zip(self.params, args))

    def sign_items(self, args: Sequence[Any]) -> List[Any]:
        return [p.sign_item(a) for p, a in zip(self.params, args)]


@dataclass(frozen=True)
class ModuleSpec:
    name: str
    version: int = 1
    properties: Tuple[PropertySpec, ...] = ()
    methods: Tuple[MethodSpec, ...] = ()
    _props: Dict[str, PropertySpec] = field(init=False, repr=False, compare=False)
    _methods: Dict[str, MethodSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        check_name(self.name, what="module")
        if isinstance(self.version, bool) or not isinstance(self.version, int) or self.version < 0:
            raise ConfigError("module version must be a non-negative integer", module=self.name)
        props = _index(self.properties, PropertySpec, what="property", module=self.name)
        methods = _index(self.methods, MethodSpec, what="method", module=self.name)
        object.__setattr__(self, "properties", tuple(props.values()))
        object.__setattr__(self, "methods", tuple(methods.values()))
        object.__setattr__(self, "_props", props)
        object.__setattr__(self, "_methods", methods)

    def find_property(self, name: str) -> Optional[PropertySpec]:
        return self._props.get(name)

    def find_method(self, name: str) -> Optional[MethodSpec]:
        return self._methods.get(name)


def _index(items: Iterable[Any], kind: type, *, what: str, module: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for it in items:
        if not isinstance(it, kind):
            raise ConfigError(f"expected {kind.__name__}", module=module, got=type(it).__name__)
        if it.name in out:
            raise ConfigError(f"duplicate {what} name", module=module, name=it.name)
        out[it.name] = it
    return out


def extend(
    base: ModuleSpec,
    *,
    name: str,
    version: Optional[int] = None,
    properties: Iterable[PropertySpec] = (),
    methods: Iterable[MethodSpec] = (),
) -> ModuleSpec:
    """
    Compose a derived module from `base`: declaration order is kept and an
    override replaces the base entry of the same name in place.
    """
    props = {p.name: p for p in base.properties}
    for p in properties:
        props[p.name] = p
    meths = {m.name: m for m in base.methods}
    for m in methods:
        meths[m.name] = m
    return ModuleSpec(
        name=name,
        version=base.version if version is None else version,
        properties=tuple(props.values()),
        methods=tuple(meths.values()),
    )


__all__ = [
    "PropertySpec",
    "ParamSpec",
    "ProofParam",
    "Param",
    "MethodSpec",
    "ModuleSpec",
    "extend",
]
