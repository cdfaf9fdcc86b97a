"""
execution.runtime.registry — the set of modules a chain is assembled from.

Modules are registered once during chain assembly, then the registry is
frozen and never changes for the lifetime of the running chain. Every
registration problem raises ConfigError so a misdeclared chain cannot start.

The registry is also where a transaction is resolved against its target
method: `resolve()` and `signbytes_for()` raise MalformedTransaction, and
`sign_transaction()` builds a signed Transaction from plain arguments.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Sequence, Tuple

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from core import logging as clog
from core.config import MAX_PROOF_ARGS
from core.errors import ConfigError, EncodingError
from core.types.tx import Transaction, public_key_bytes, sign, signbytes
from execution.errors import (
    BAD_ARGUMENT,
    BAD_ARITY,
    UNKNOWN_METHOD,
    UNKNOWN_MODULE,
    MalformedTransaction,
)

from .module import MethodSpec, ModuleSpec, PropertySpec

log = clog.get_logger(__name__)


class ModuleRegistry:
    def __init__(self, *, max_proof_args: int = MAX_PROOF_ARGS) -> None:
        if not (0 <= max_proof_args <= MAX_PROOF_ARGS):
            raise ConfigError(f"max_proof_args must be in [0, {MAX_PROOF_ARGS}]", max_proof_args=max_proof_args)
        self._max_proof_args = max_proof_args
        self._modules: Dict[str, ModuleSpec] = {}
        self._frozen = False

    # ------------------------------ assembly ---------------------------------

    def register(self, spec: ModuleSpec) -> ModuleSpec:
        if self._frozen:
            raise ConfigError("registry is frozen; modules are fixed once the chain is assembled", module=getattr(spec, "name", None))
        if not isinstance(spec, ModuleSpec):
            raise ConfigError("expected a ModuleSpec", got=type(spec).__name__)
        if spec.name in self._modules:
            raise ConfigError("module already registered", module=spec.name)
        for m in spec.methods:
            n = len(m.proof_params)
            if n > self._max_proof_args:
                raise ConfigError(
                    f"method declares {n} proof parameters (max {self._max_proof_args})",
                    module=spec.name,
                    method=m.name,
                )
        self._modules[spec.name] = spec
        log.debug(
            "module %s v%d registered (%d properties, %d methods)",
            spec.name, spec.version, len(spec.properties), len(spec.methods),
        )
        return spec

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def max_proof_args(self) -> int:
        return self._max_proof_args

    # ------------------------------ lookup -----------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    def __iter__(self) -> Iterator[ModuleSpec]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    def module(self, name: str) -> ModuleSpec:
        try:
            return self._modules[name]
        except KeyError:
            raise KeyError(f"unknown module {name!r}") from None

    def property_spec(self, module: str, prop: str) -> PropertySpec:
        """Declared property of a registered module. Raises KeyError."""
        spec = self.module(module).find_property(prop)
        if spec is None:
            raise KeyError(f"module {module!r} declares no property {prop!r}")
        return spec

    def resolve(self, module: str, method: str) -> Tuple[ModuleSpec, MethodSpec]:
        spec = self._modules.get(module)
        if spec is None:
            raise MalformedTransaction(f"unknown module {module!r}", reason=UNKNOWN_MODULE, module=module)
        m = spec.find_method(method)
        if m is None:
            raise MalformedTransaction(
                f"module {module!r} has no method {method!r}",
                reason=UNKNOWN_METHOD,
                module=module,
                method=method,
            )
        return spec, m

    # ------------------------------ signing ----------------------------------

    @staticmethod
    def bind_args(method: MethodSpec, args: Sequence[Any], *, module: str) -> Tuple[Any, ...]:
        """Arity and type checks for `args` against `method`."""
        if len(args) != method.arity:
            raise MalformedTransaction(
                f"{module}.{method.name} takes {method.arity} arguments, got {len(args)}",
                reason=BAD_ARITY,
                module=module,
                method=method.name,
            )
        try:
            return method.coerce_args(args)
        except EncodingError as e:
            raise MalformedTransaction(
                f"{module}.{method.name}: {e.message}",
                reason=BAD_ARGUMENT,
                module=module,
                method=method.name,
            ) from e

    def signbytes_for(self, tx: Transaction, chain_id: int) -> bytes:
        _, method = self.resolve(tx.module, tx.method)
        args = self.bind_args(method, tx.args, module=tx.module)
        return self._signbytes(method, tx.module, args, tx.sender, tx.nonce, chain_id)

    @staticmethod
    def _signbytes(method: MethodSpec, module: str, args: Sequence[Any], sender: bytes, nonce: int, chain_id: int) -> bytes:
        return signbytes(
            chain_id=chain_id,
            module=module,
            method=method.name,
            arg_items=method.sign_items(args),
            sender=sender,
            nonce=nonce,
        )

    def sign_transaction(
        self,
        private_key: Ed25519PrivateKey,
        module: str,
        method: str,
        args: Sequence[Any] = (),
        *,
        chain_id: int,
        nonce: int = 0,
    ) -> Transaction:
        """Build and sign a transaction for a registered method."""
        tx = Transaction(module=module, method=method, args=tuple(args), sender=public_key_bytes(private_key), nonce=nonce)
        sb = self.signbytes_for(tx, chain_id)
        return tx.with_signature(sign(private_key, sb))


__all__ = ["ModuleRegistry"]
