"""
Shared pytest fixtures: deterministic signing keys, registries holding the
sample modules from `execution.tests`, chains and a transaction signer.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from core.config import load_config
from core.types.tx import Transaction, public_key_bytes
from core.utils.hash import sha3_256
from execution.chain import Chain
from execution.runtime.registry import ModuleRegistry
from execution.tests import PROGRAM_AUDIT, PROGRAM_CLAIM, build_registry
from zk.verifiers.commitment import CommitmentBackend


def _key(label: bytes) -> Ed25519PrivateKey:
    return Ed25519PrivateKey.from_private_bytes(sha3_256(b"modchain-test-key/" + label))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def alice_key() -> Ed25519PrivateKey:
    return _key(b"alice")


@pytest.fixture
def bob_key() -> Ed25519PrivateKey:
    return _key(b"bob")


@pytest.fixture
def carol_key() -> Ed25519PrivateKey:
    return _key(b"carol")


@pytest.fixture
def alice(alice_key) -> bytes:
    return public_key_bytes(alice_key)


@pytest.fixture
def bob(bob_key) -> bytes:
    return public_key_bytes(bob_key)


@pytest.fixture
def carol(carol_key) -> bytes:
    return public_key_bytes(carol_key)


@pytest.fixture
def backend() -> CommitmentBackend:
    return CommitmentBackend()


@pytest.fixture
def registry() -> ModuleRegistry:
    return build_registry()


@pytest.fixture
def make_chain() -> Callable[..., Chain]:
    """Factory: a fresh chain (fresh registry) with config overrides."""

    def _make(*, backend=None, hasher=None, **overrides: Any) -> Chain:
        cfg = load_config(env={}, overrides=overrides)
        kwargs = {}
        if backend is not None:
            kwargs["backend"] = backend
        if hasher is not None:
            kwargs["hasher"] = hasher
        return Chain(build_registry(), cfg, **kwargs)

    return _make


@pytest.fixture
def chain(make_chain) -> Chain:
    return make_chain()


@pytest.fixture
def sign_tx() -> Callable[..., Transaction]:
    """sign_tx(chain, key, module, method, *args, nonce=0) -> signed Transaction"""

    def _sign(chain: Chain, key: Ed25519PrivateKey, module: str, method: str, *args: Any, nonce: int = 0) -> Transaction:
        return chain.registry.sign_transaction(key, module, method, args, chain_id=chain.config.chain_id, nonce=nonce)

    return _sign


@pytest.fixture
def program_claim() -> bytes:
    return PROGRAM_CLAIM


@pytest.fixture
def program_audit() -> bytes:
    return PROGRAM_AUDIT
