from __future__ import annotations

"""
Type-tagged canonical encoding
==============================

Every value that reaches the state tree, a state address or a transaction's
sign-bytes is described by a *codec*. A codec validates a Python value,
encodes it to a CBOR item wrapped in a codec-specific semantic tag, and
decodes it back.

Tags
----
    52801  uint     [bits, n]
    52802  int      [bits, n]
    52803  bool     b
    52804  field    n            (BN254 scalar field element)
    52805  bytes    raw          (fixed size)
    52806  pubkey   raw          (32-byte Ed25519 public key)
    52807  record   [name, [item, ...]]
    52808  proof    [program_id, [inputs], payload]   (only inside sign-bytes)

Records carry their declared name next to the field items, so two record
types sharing a field layout never share an encoding. Bytes are produced by
`cbor2.dumps(..., canonical=True)` (RFC 8949 deterministic encoding).

Declaration vs call time
------------------------
`resolve_codec()` runs when properties and methods are declared and raises
`ConfigError` for floats, untyped strings, proofs and arbitrary objects.
`Codec.encode()` runs at call time and raises `EncodingError` when a value
does not satisfy an already-accepted codec; that is a caller contract
violation, never a soft failure.
"""

from dataclasses import fields as dc_fields, is_dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple

import cbor2

from core.errors import ConfigError, EncodingError

TAG_UINT = 52801
TAG_INT = 52802
TAG_BOOL = 52803
TAG_FIELD = 52804
TAG_BYTES = 52805
TAG_PUBKEY = 52806
TAG_RECORD = 52807
TAG_PROOF = 52808

# BN254 scalar field modulus.
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617


def dumps(obj: Any) -> bytes:
    """Deterministic CBOR encoding of an already-canonical item."""
    try:
        return cbor2.dumps(obj, canonical=True)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
        raise EncodingError(str(e)) from e


def loads(data: bytes) -> Any:
    try:
        return cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise EncodingError("malformed canonical encoding", error=str(e)) from e


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


class Codec:
    """Base class: subclasses define `tag`, `type_name`, `dummy` and the payload hooks."""

    tag: int = 0

    @property
    def type_name(self) -> str:  # pragma: no cover - overridden
        raise NotImplementedError

    @property
    def dummy(self) -> Any:  # pragma: no cover - overridden
        raise NotImplementedError

    def validate(self, value: Any) -> Any:
        """Return the normalized value or raise EncodingError."""
        raise NotImplementedError  # pragma: no cover

    def _payload(self, value: Any) -> Any:
        return value

    def _from_payload(self, payload: Any) -> Any:
        return self.validate(payload)

    # -- public --------------------------------------------------------------

    def to_cbor(self, value: Any) -> cbor2.CBORTag:
        return cbor2.CBORTag(self.tag, self._payload(self.validate(value)))

    def from_cbor(self, item: Any) -> Any:
        if not isinstance(item, cbor2.CBORTag) or item.tag != self.tag:
            raise EncodingError(f"expected {self.type_name} item", got=repr(item))
        return self._from_payload(item.value)

    def encode(self, value: Any) -> bytes:
        return dumps(self.to_cbor(value))

    def decode(self, data: bytes) -> Any:
        return self.from_cbor(loads(data))

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.type_name == self.type_name  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.type_name))

    def __repr__(self) -> str:
        return f"<codec {self.type_name}>"


def _is_array(payload: Any) -> bool:
    # cbor2 6.x decodes arrays nested in a tag as tuples, 5.x as lists.
    return isinstance(payload, (list, tuple))


def _check_int(value: Any, what: str) -> int:
    # bool is an int subclass but never a valid integer value here.
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"{what} expects an int", got=type(value).__name__)
    return value


class UInt(Codec):
    tag = TAG_UINT

    def __init__(self, bits: int = 64) -> None:
        if not isinstance(bits, int) or bits <= 0 or bits > 256 or bits % 8:
            raise ConfigError("UInt bits must be a multiple of 8 in [8, 256]", bits=bits)
        self.bits = bits

    @property
    def type_name(self) -> str:
        return f"u{self.bits}"

    @property
    def dummy(self) -> int:
        return 0

    def validate(self, value: Any) -> int:
        n = _check_int(value, self.type_name)
        if n < 0 or n >= (1 << self.bits):
            raise EncodingError(f"{self.type_name} out of range", value=n)
        return n

    def _payload(self, value: int) -> Any:
        return [self.bits, value]

    def _from_payload(self, payload: Any) -> int:
        if not _is_array(payload) or len(payload) != 2 or payload[0] != self.bits:
            raise EncodingError(f"malformed {self.type_name} item")
        return self.validate(payload[1])


class Int(Codec):
    tag = TAG_INT

    def __init__(self, bits: int = 64) -> None:
        if not isinstance(bits, int) or bits <= 0 or bits > 256 or bits % 8:
            raise ConfigError("Int bits must be a multiple of 8 in [8, 256]", bits=bits)
        self.bits = bits

    @property
    def type_name(self) -> str:
        return f"i{self.bits}"

    @property
    def dummy(self) -> int:
        return 0

    def validate(self, value: Any) -> int:
        n = _check_int(value, self.type_name)
        bound = 1 << (self.bits - 1)
        if n < -bound or n >= bound:
            raise EncodingError(f"{self.type_name} out of range", value=n)
        return n

    def _payload(self, value: int) -> Any:
        return [self.bits, value]

    def _from_payload(self, payload: Any) -> int:
        if not _is_array(payload) or len(payload) != 2 or payload[0] != self.bits:
            raise EncodingError(f"malformed {self.type_name} item")
        return self.validate(payload[1])


class Bool(Codec):
    tag = TAG_BOOL

    @property
    def type_name(self) -> str:
        return "bool"

    @property
    def dummy(self) -> bool:
        return False

    def validate(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise EncodingError("bool expects a bool", got=type(value).__name__)
        return value


class Field(Codec):
    tag = TAG_FIELD

    @property
    def type_name(self) -> str:
        return "field"

    @property
    def dummy(self) -> int:
        return 0

    def validate(self, value: Any) -> int:
        n = _check_int(value, "field")
        if n < 0 or n >= FIELD_MODULUS:
            raise EncodingError("field element out of range", value=n)
        return n


class FixedBytes(Codec):
    tag = TAG_BYTES

    def __init__(self, size: int = 32) -> None:
        if not isinstance(size, int) or size <= 0:
            raise ConfigError("FixedBytes size must be a positive int", size=size)
        self.size = size

    @property
    def type_name(self) -> str:
        return f"bytes{self.size}"

    @property
    def dummy(self) -> bytes:
        return b"\x00" * self.size

    def validate(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise EncodingError(f"{self.type_name} expects bytes", got=type(value).__name__)
        b = bytes(value)
        if len(b) != self.size:
            raise EncodingError(f"{self.type_name} expects exactly {self.size} bytes", got=len(b))
        return b


class PublicKey(FixedBytes):
    """Raw 32-byte Ed25519 public key material."""

    tag = TAG_PUBKEY

    def __init__(self) -> None:
        super().__init__(32)

    @property
    def type_name(self) -> str:
        return "pubkey"


class Record(Codec):
    """
    Named structured record of canonical fields.

    `decode()` returns a plain dict {field: value}; rebuilding a richer object
    from it is the calling module's responsibility.
    """

    tag = TAG_RECORD

    def __init__(self, name: str, fields: Sequence[Tuple[str, Any]]) -> None:
        if not isinstance(name, str) or not name:
            raise ConfigError("Record name must be a non-empty string")
        seen = set()
        resolved = []
        for fname, fcodec in fields:
            if not isinstance(fname, str) or not fname or fname in seen:
                raise ConfigError("Record field names must be unique non-empty strings", record=name, field=fname)
            seen.add(fname)
            resolved.append((fname, resolve_codec(fcodec, what=f"{name}.{fname}")))
        if not resolved:
            raise ConfigError("Record must declare at least one field", record=name)
        self.name = name
        self.fields: Tuple[Tuple[str, Codec], ...] = tuple(resolved)

    @property
    def type_name(self) -> str:
        inner = ",".join(f"{n}:{c.type_name}" for n, c in self.fields)
        return f"record {self.name}{{{inner}}}"

    @property
    def dummy(self) -> Dict[str, Any]:
        return {n: c.dummy for n, c in self.fields}

    def validate(self, value: Any) -> Dict[str, Any]:
        names = [n for n, _ in self.fields]
        if isinstance(value, Mapping):
            if set(value.keys()) != set(names):
                raise EncodingError(f"record {self.name} field mismatch", got=sorted(map(str, value.keys())))
            raw = {n: value[n] for n in names}
        elif is_dataclass(value) and not isinstance(value, type):
            present = {f.name for f in dc_fields(value)}
            if not set(names) <= present:
                raise EncodingError(f"record {self.name} missing fields", got=sorted(present))
            raw = {n: getattr(value, n) for n in names}
        elif isinstance(value, (tuple, list)) and len(value) == len(names):
            raw = dict(zip(names, value))
        else:
            raise EncodingError(f"record {self.name} expects a mapping, dataclass or tuple", got=type(value).__name__)
        return {n: c.validate(raw[n]) for n, c in self.fields}

    def _payload(self, value: Dict[str, Any]) -> Any:
        return [self.name, [c.to_cbor(value[n]) for n, c in self.fields]]

    def _from_payload(self, payload: Any) -> Dict[str, Any]:
        if (
            not _is_array(payload)
            or len(payload) != 2
            or payload[0] != self.name
            or not _is_array(payload[1])
            or len(payload[1]) != len(self.fields)
        ):
            raise EncodingError(f"malformed record {self.name} item")
        return {n: c.from_cbor(item) for (n, c), item in zip(self.fields, payload[1])}


# ---------------------------------------------------------------------------
# Declaration-time resolution
# ---------------------------------------------------------------------------


def resolve_codec(descriptor: Any, *, what: str = "value") -> Codec:
    """
    Accept a codec descriptor at declaration time.

    Only Codec instances are encodable. Floats, untyped strings, proof objects
    and arbitrary classes are rejected with ConfigError.
    """
    if isinstance(descriptor, Codec):
        return descriptor
    if descriptor is float or isinstance(descriptor, float):
        raise ConfigError(f"{what}: floating-point values are not canonically encodable")
    if descriptor is str or isinstance(descriptor, str):
        raise ConfigError(f"{what}: untyped strings are not canonically encodable")
    if getattr(descriptor, "is_proof_type", False):
        raise ConfigError(f"{what}: proof objects cannot be stored in state")
    name = descriptor.__name__ if isinstance(descriptor, type) else type(descriptor).__name__
    raise ConfigError(f"{what}: {name} is not a canonical codec")


__all__ = [
    "TAG_UINT",
    "TAG_INT",
    "TAG_BOOL",
    "TAG_FIELD",
    "TAG_BYTES",
    "TAG_PUBKEY",
    "TAG_RECORD",
    "TAG_PROOF",
    "FIELD_MODULUS",
    "dumps",
    "loads",
    "Codec",
    "UInt",
    "Int",
    "Bool",
    "Field",
    "FixedBytes",
    "PublicKey",
    "Record",
    "resolve_codec",
]
