"""
execution.chain — assemble a running chain from a module registry.

    registry = ModuleRegistry()
    registry.register(balances)
    chain = Chain(registry, load_config(overrides={"chain_id": 7}))

    chain.submit(tx)                       # raises MalformedTransaction
    block = chain.produce_block()          # drains the pending queue
    chain.query_state("Balances", "balances", alice)   # -> Option
    chain.query_witness("Balances", "balances", alice) # -> Witness
    chain.tx_record(tx_hash)               # -> TxRecord | None

Constructing a Chain freezes the registry: the module set is fixed for the
lifetime of the chain. Queries run against the latest committed root and go
through the same derivation and accessor path a method body uses, so they
never mutate anything.

A transaction is executed at most once: `submit` refuses one that is already
queued or executed, and the producer records a replay as INVALID. Passing
`configure_logging=True` applies the config's log level and format to the
root logger.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from core import logging as clog
from core.config import ChainConfig, get_config
from core.errors import BackendError, ConfigError
from core.types.tx import Transaction
from core.utils.hash import tagged_hash
from execution.errors import DUPLICATE, MalformedTransaction
from execution.runtime.context import ExecutionContext
from execution.runtime.executor import TransactionExecutor
from execution.runtime.registry import ModuleRegistry
from execution.scheduler.producer import BlockProducer
from execution.state.accessors import StateAccessor, StateMapAccessor
from execution.state.merkle import SparseMerkleTree, TaggedHasher, Witness
from execution.state.option import Option
from execution.state.path import Address, derive
from execution.types.block import Block, TxRecord
from execution.types.status import TxStatus
from zk.verifiers import ProofBackend, ProofVerifier
from zk.verifiers.commitment import CommitmentBackend

log = clog.get_logger(__name__)


class Chain:
    def __init__(
        self,
        registry: ModuleRegistry,
        config: Optional[ChainConfig] = None,
        *,
        backend: Optional[ProofBackend] = None,
        hasher: TaggedHasher = tagged_hash,
        configure_logging: bool = False,
    ) -> None:
        self.config = config or get_config()
        if configure_logging:
            clog.configure_from_config(self.config)
        for spec in registry:
            for m in spec.methods:
                if len(m.proof_params) > self.config.max_proof_args:
                    raise ConfigError(
                        "method exceeds the chain's proof-argument limit",
                        module=spec.name,
                        method=m.name,
                        limit=self.config.max_proof_args,
                    )
        registry.freeze()
        self.registry = registry
        self.executor = TransactionExecutor(
            registry,
            ProofVerifier(backend or CommitmentBackend()),
            chain_id=self.config.chain_id,
            depth=self.config.tree_depth,
        )
        self.producer = BlockProducer(
            self.executor,
            SparseMerkleTree(self.config.tree_depth, hasher=hasher),
            parallel=self.config.parallel_execution,
            max_workers=self.config.max_workers,
        )
        self._pending: List[Transaction] = []
        self._pending_hashes: List[bytes] = []
        self._blocks: List[Block] = []
        self._index: Dict[bytes, Tuple[int, TxRecord]] = {}
        log.info(
            "chain assembled",
            extra={"modules": len(registry), "depth": self.config.tree_depth, "parallel": self.config.parallel_execution},
        )

    # ------------------------------ state ------------------------------------

    @property
    def tree(self) -> SparseMerkleTree:
        return self.producer.tree

    @property
    def height(self) -> int:
        return self.producer.height

    def root(self) -> bytes:
        return self.tree.root()

    @property
    def head(self) -> Optional[Block]:
        return self._blocks[-1] if self._blocks else None

    def block(self, height: int) -> Block:
        if not (1 <= height <= len(self._blocks)):
            raise KeyError(f"no block at height {height}")
        return self._blocks[height - 1]

    @property
    def pending(self) -> Tuple[Transaction, ...]:
        return tuple(self._pending)

    # ------------------------------ submission -------------------------------

    def submit(self, tx: Transaction) -> bytes:
        """
        Queue a transaction for the next block; returns its hash.

        Raises MalformedTransaction (reason DUPLICATE) for a transaction that is
        already queued or was executed in an earlier block.
        """
        _, _, _, txh = self.executor.validate(tx)
        if self.producer.is_consumed(txh) or txh in self._pending_hashes:
            raise MalformedTransaction("transaction already queued or executed", reason=DUPLICATE, tx=txh.hex())
        self._pending.append(tx)
        self._pending_hashes.append(txh)
        return txh

    def produce_block(self, txs: Optional[List[Transaction]] = None) -> Block:
        """
        Produce the next block from `txs`, or from the pending queue.

        On BackendError nothing is committed, the queue is left intact and the
        error propagates so the same batch can be retried. An EncodingError
        raised by module code leaves the chain the same way. An EncodingError
        from module code leaves the chain the same way.
        """
        from_queue = txs is None
        batch = list(self._pending) if from_queue else list(txs)
        try:
            block = self.producer.produce(batch)
        except BackendError:
            log.warning("block production failed; batch kept for retry", extra={"txs": len(batch)})
            raise
        if from_queue:
            del self._pending[: len(batch)]
            del self._pending_hashes[: len(batch)]
        self._blocks.append(block)
        for r in block.records:
            # an INVALID record never hides the executed one with the same hash
            prev = self._index.get(r.tx_hash)
            if prev is None or (prev[1].status is TxStatus.INVALID and r.status is not TxStatus.INVALID):
                self._index[r.tx_hash] = (block.height, r)
        return block

    def tx_record(self, tx_hash: bytes) -> Optional[TxRecord]:
        hit = self._index.get(bytes(tx_hash))
        return hit[1] if hit else None

    def tx_height(self, tx_hash: bytes) -> Optional[int]:
        hit = self._index.get(bytes(tx_hash))
        return hit[0] if hit else None

    # ------------------------------ queries ----------------------------------

    def address_of(self, module: str, prop: str, key: Any = None) -> Address:
        spec = self.registry.property_spec(module, prop)
        if spec.is_map:
            return derive(module, prop, key, key_codec=spec.key_codec, depth=self.config.tree_depth)
        return derive(module, prop, depth=self.config.tree_depth)

    def query_state(self, module: str, prop: str, key: Any = None) -> Option[Any]:
        """Committed value of a declared property, as an Option."""
        spec = self.registry.property_spec(module, prop)
        ctx = ExecutionContext(self.tree.snapshot())
        depth = self.config.tree_depth
        if spec.is_map:
            return StateMapAccessor(ctx, module, prop, spec.key_codec, spec.value_codec, depth).get(key)
        return StateAccessor(ctx, module, prop, spec.value_codec, depth).get()

    def query_witness(self, module: str, prop: str, key: Any = None) -> Witness:
        """(Non-)membership witness for a property slot against `root()`."""
        return self.tree.witness(self.address_of(module, prop, key))


__all__ = ["Chain"]
