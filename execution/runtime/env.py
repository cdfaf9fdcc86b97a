"""
execution.runtime.env — what a method body sees.

A method body is called as `fn(env, *args)`. The MethodEnv is bound to the
module that owns the method and to the transaction's ExecutionContext:

    env.state("supply")                       -> StateAccessor (own module)
    env.state_map("balances")                 -> StateMapAccessor (own module)
    env.foreign_state("Oracle", "price")      -> another module's declared property
    env.foreign_state_map("Balances", "balances")
    env.assert_(cond, "message")              -> records into the ledger, returns cond
    env.call("Balances", "_debit", who, 10)   -> nested call, same context
    env.sender / env.tx_hash

Nested calls share the caller's ExecutionContext, so their reads, writes and
assertions are part of the same transaction. A nested call that cannot be
resolved (unknown module or method, wrong arity or argument types, proof
parameters, call depth exhausted) is recorded as a failed assertion and
returns None; the caller keeps running.

Asking for a property the module never declared is a bug in the module and
raises KeyError (the executor records it as a failed assertion).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from execution.errors import MalformedTransaction
from execution.state.accessors import StateAccessor, StateMapAccessor

from .context import ExecutionContext
from .module import ModuleSpec, PropertySpec

if TYPE_CHECKING:  # pragma: no cover
    from .registry import ModuleRegistry

MAX_CALL_DEPTH = 64


class MethodEnv:
    def __init__(
        self,
        registry: "ModuleRegistry",
        ctx: ExecutionContext,
        module: ModuleSpec,
        *,
        sender: bytes,
        tx_hash: bytes,
        depth: int,
        call_depth: int = 0,
    ) -> None:
        self._registry = registry
        self._ctx = ctx
        self._module = module
        self._sender = sender
        self._tx_hash = tx_hash
        self._depth = depth
        self._call_depth = call_depth

    @property
    def sender(self) -> bytes:
        return self._sender

    @property
    def tx_hash(self) -> bytes:
        return self._tx_hash

    @property
    def module_name(self) -> str:
        return self._module.name

    # ------------------------------ state ------------------------------------

    def _spec(self, module: str, prop: str, *, want_map: bool) -> PropertySpec:
        spec = self._registry.property_spec(module, prop)
        if spec.is_map != want_map:
            kind = "map" if spec.is_map else "single-value"
            raise KeyError(f"{module}.{prop} is a {kind} property")
        return spec

    def state(self, name: str) -> StateAccessor:
        return self.foreign_state(self._module.name, name)

    def state_map(self, name: str) -> StateMapAccessor:
        return self.foreign_state_map(self._module.name, name)

    def foreign_state(self, module: str, prop: str) -> StateAccessor:
        spec = self._spec(module, prop, want_map=False)
        return StateAccessor(self._ctx, module, prop, spec.value_codec, self._depth)

    def foreign_state_map(self, module: str, prop: str) -> StateMapAccessor:
        spec = self._spec(module, prop, want_map=True)
        return StateMapAccessor(self._ctx, module, prop, spec.key_codec, spec.value_codec, self._depth)

    # ------------------------------ ledger -----------------------------------

    def assert_(self, condition: bool, message: str) -> bool:
        return self._ctx.assert_(condition, message)

    # ------------------------------ calls ------------------------------------

    def call(self, module: str, method: str, *args: Any) -> Any:
        target = f"{module}.{method}"
        if self._call_depth + 1 > MAX_CALL_DEPTH:
            self._ctx.assert_(False, f"call to {target} failed: call depth exceeded")
            return None
        try:
            spec, m = self._registry.resolve(module, method)
            if m.proof_params:
                self._ctx.assert_(False, f"call to {target} failed: proof parameters need a transaction")
                return None
            bound = self._registry.bind_args(m, args, module=module)
        except MalformedTransaction as e:
            self._ctx.assert_(False, f"call to {target} failed: {e.message}")
            return None
        env = MethodEnv(
            self._registry,
            self._ctx,
            spec,
            sender=self._sender,
            tx_hash=self._tx_hash,
            depth=self._depth,
            call_depth=self._call_depth + 1,
        )
        return m.fn(env, *bound)


__all__ = ["MethodEnv", "MAX_CALL_DEPTH"]
