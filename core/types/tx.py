"""
core.types.tx — Transaction type, canonical sign-bytes and Ed25519 signing.

A transaction targets one provable-entry method of one registered module:

    Transaction(module, method, args, sender, signature, nonce)

`sender` is a raw 32-byte Ed25519 public key. `args` holds plain Python
values matching the method's declared parameters (ints, bytes, record dicts)
and `zk.verifiers.Proof` objects for proof-typed parameters.

Sign-bytes
----------
We never sign raw objects. The signed message is a small canonical CBOR map
with integer keys (deterministic ordering under RFC 8949 §4.2.1):

    {
      1: "modchain/tx/sign/v1",     # domain
      2: chain_id,                  # uint
      3: [module, method, [arg items...], sender, nonce]
    }

Argument items are produced by the declared parameter codecs (type-tagged)
so the bytes depend on the method's declaration, not on Python object
identity. The caller (registry) supplies the items; this module stays free
of any execution-layer import.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Sequence, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from core.encoding.canonical import dumps
from core.utils.hash import sha3_256

DOM_TX_SIGN_V1 = "modchain/tx/sign/v1"

PUBKEY_LEN = 32
SIGNATURE_LEN = 64


@dataclass(frozen=True)
class Transaction:
    """Immutable once constructed; consumed exactly once by the executor."""

    module: str
    method: str
    args: Tuple[Any, ...]
    sender: bytes
    signature: bytes = b""
    # Distinguishes otherwise identical submissions; not interpreted by the core.
    nonce: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "sender", bytes(self.sender))
        object.__setattr__(self, "signature", bytes(self.signature))

    def with_signature(self, signature: bytes) -> "Transaction":
        return replace(self, signature=bytes(signature))

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return (
            f"Transaction({self.module}.{self.method}, args={len(self.args)}, "
            f"sender=0x{self.sender.hex()[:12]}…, nonce={self.nonce})"
        )


def signbytes(
    *,
    chain_id: int,
    module: str,
    method: str,
    arg_items: Sequence[Any],
    sender: bytes,
    nonce: int,
) -> bytes:
    """Domain-separated canonical sign-bytes for a transaction body."""
    if not isinstance(chain_id, int) or chain_id < 0:
        raise ValueError("chain_id must be a non-negative integer")
    body = {
        1: DOM_TX_SIGN_V1,
        2: chain_id,
        3: [module, method, list(arg_items), bytes(sender), int(nonce)],
    }
    return dumps(body)


def tx_hash(sign_bytes: bytes) -> bytes:
    """Transaction id: sha3_256 of its sign-bytes (signature excluded)."""
    return sha3_256(sign_bytes)


# ---------------------------------------------------------------------------
# Ed25519
# ---------------------------------------------------------------------------


def public_key_bytes(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )


def sign(private_key: Ed25519PrivateKey, sign_bytes: bytes) -> bytes:
    return private_key.sign(sign_bytes)


def verify_signature(sender: bytes, signature: bytes, sign_bytes: bytes) -> bool:
    """True iff `signature` is a valid Ed25519 signature by `sender` over `sign_bytes`."""
    if len(sender) != PUBKEY_LEN or len(signature) != SIGNATURE_LEN:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(sender).verify(signature, sign_bytes)
    except (InvalidSignature, ValueError):
        return False
    return True


__all__ = [
    "DOM_TX_SIGN_V1",
    "PUBKEY_LEN",
    "SIGNATURE_LEN",
    "Transaction",
    "signbytes",
    "tx_hash",
    "public_key_bytes",
    "sign",
    "verify_signature",
]
