"""
execution.scheduler.producer — order, execute and commit one batch.

    producer = BlockProducer(executor, tree, parallel=True, max_workers=4)
    block = producer.produce(txs)

Commit discipline
-----------------
The batch runs against `tree.fork()`. Accepted write sets are applied to the
fork one transaction at a time, strictly in batch order. Only when the whole
batch has gone through does the fork replace the committed tree. A
BackendError at any point discards the fork and propagates, so the caller
sees the pre-batch root and can retry the same batch.

Replay protection
-----------------
A transaction is consumed exactly once. One whose hash was already executed
in an earlier block, or appears earlier in the same batch, is recorded as
INVALID with reason DUPLICATE and never reaches the executor. Hashes of
INVALID records are not consumed.

Parallel mode
-------------
Every transaction is first executed speculatively, in a thread pool, against
the pre-batch snapshot. The commit walk then goes in batch order and keeps a
speculative result only if nothing it read was written by a transaction
committed earlier in the batch; otherwise the transaction is executed again
against the current working tree. Execution is a deterministic function of
the values read, so a result whose reads are untouched is exactly what
serial execution would have produced, and the final root matches serial
mode bit for bit.
"""

from __future__ import annotations

import concurrent.futures as _futures
import contextvars
from typing import Dict, Iterable, List, Optional, Sequence, Set

from core import logging as clog
from core.errors import BackendError
from core.types.tx import Transaction
from execution import metrics
from execution.errors import DUPLICATE, MalformedTransaction
from execution.runtime.executor import TransactionExecutor
from execution.state.merkle import SparseMerkleTree
from execution.state.path import Address
from execution.types.block import Block, TxRecord
from execution.types.result import ExecutionResult
from execution.types.status import TxStatus

log = clog.get_logger(__name__)


class BlockProducer:
    def __init__(
        self,
        executor: TransactionExecutor,
        tree: SparseMerkleTree,
        *,
        parallel: bool = False,
        max_workers: int = 4,
        height: int = 0,
        consumed: Optional[Iterable[bytes]] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.executor = executor
        self._tree = tree
        self.parallel = parallel
        self.max_workers = max_workers
        self._height = height
        self._consumed: Set[bytes] = set(consumed or ())

    @property
    def tree(self) -> SparseMerkleTree:
        """The committed tree (replaced, never mutated, by a successful batch)."""
        return self._tree

    @property
    def height(self) -> int:
        """Height of the last produced block (0 before the first)."""
        return self._height

    def is_consumed(self, tx_hash: bytes) -> bool:
        """True once a transaction with this hash was executed in a block."""
        return bytes(tx_hash) in self._consumed

    def produce(self, txs: Sequence[Transaction]) -> Block:
        txs = list(txs)
        height = self._height + 1
        parent_root = self._tree.root()
        work = self._tree.fork()

        with clog.trace_scope(height=height), metrics.time_block():
            dupes = self._duplicates(txs)
            fresh = [tx for i, tx in enumerate(txs) if i not in dupes]
            try:
                if self.parallel and len(fresh) > 1:
                    ran = self._run_parallel(work, fresh)
                else:
                    ran = self._run_serial(work, fresh)
            except BackendError:
                log.error("batch aborted; tree left at parent root", exc_info=True, extra={"txs": len(txs)})
                raise

            it = iter(ran)
            results = [dupes[i] if i in dupes else next(it) for i in range(len(txs))]
            records = []
            for tx, res in zip(txs, results):
                metrics.observe_tx(res.status.value, len(res.failed_messages))
                records.append(
                    TxRecord(
                        transaction=tx,
                        tx_hash=res.tx_hash,
                        status=res.status,
                        failed_messages=res.failed_messages,
                        proof_digests=res.proof_digests,
                        reason=res.error.reason if res.error is not None else None,
                    )
                )

            self._tree = work
            self._height = height
            self._consumed.update(r.tx_hash for r in records if r.status is not TxStatus.INVALID)
            block = Block(height=height, parent_root=parent_root, state_root=work.root(), records=tuple(records))
            log.info(
                "block produced",
                extra={
                    "txs": len(records),
                    "accepted": block.accepted_count,
                    "duplicates": len(dupes),
                    "root": block.state_root.hex(),
                },
            )
        return block

    def _duplicates(self, txs: Sequence[Transaction]) -> Dict[int, ExecutionResult]:
        """Batch positions whose transaction was already consumed or seen earlier in the batch."""
        out: Dict[int, ExecutionResult] = {}
        seen: Set[bytes] = set()
        for i, tx in enumerate(txs):
            # only a well-formed tx claims its hash; a forged copy shares the
            # sign-bytes and must not shadow the real one
            try:
                txh = self.executor.validate(tx)[3]
            except MalformedTransaction:
                continue
            if txh in self._consumed or txh in seen:
                err = MalformedTransaction("transaction already executed", reason=DUPLICATE, tx=txh.hex())
                log.info("tx invalid", extra={"tx": txh.hex(), "reason": DUPLICATE})
                out[i] = ExecutionResult.invalid(txh, err)
            seen.add(txh)
        return out

    # ------------------------------ strategies -------------------------------

    def _run_serial(self, work: SparseMerkleTree, txs: Sequence[Transaction]) -> List[ExecutionResult]:
        out = []
        for tx in txs:
            res = self.executor.execute(tx, work.snapshot())
            if res.accepted:
                work.apply(res.writes)
            out.append(res)
        return out

    def _run_parallel(self, work: SparseMerkleTree, txs: Sequence[Transaction]) -> List[ExecutionResult]:
        base = work.snapshot()
        with _futures.ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="modchain-exec") as pool:
            futs = [
                pool.submit(contextvars.copy_context().run, self.executor.execute, tx, base)
                for tx in txs
            ]
            speculative = [f.result() for f in futs]

        dirty: Set[Address] = set()
        out = []
        reruns = 0
        for tx, res in zip(txs, speculative):
            if _stale(res, dirty):
                res = self.executor.execute(tx, work.snapshot())
                reruns += 1
            if res.accepted:
                work.apply(res.writes)
                dirty.update(res.writes.keys())
            out.append(res)
        log.debug("parallel batch committed", extra={"txs": len(txs), "reruns": reruns})
        return out


def _stale(res: ExecutionResult, dirty: Set[Address]) -> bool:
    return res.footprint is not None and res.footprint.depends_on(dirty)


__all__ = ["BlockProducer"]
