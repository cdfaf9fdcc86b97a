"""
execution.runtime.executor — run one transaction against one snapshot.

    result = executor.execute(tx, tree.snapshot())

Pipeline
--------
1) Malformed checks, in order: module/method resolution, entry flag, argument
   arity, argument types, signature. Any failure → INVALID, no ledger, no
   writes, MalformedTransaction attached to the result.
2) Fresh ExecutionContext over the snapshot.
3) Proof parameters, in argument order: each goes to the ProofVerifier
   exactly once. The outcome is recorded as an assertion, so a proof that
   does not verify rejects the transaction without stopping it; verified
   proofs contribute their digest to `proof_digests`.
4) Method body `fn(env, *args)`. An exception escaping module code is
   recorded as a failed assertion. BackendError is infrastructure and
   EncodingError is a module writing a value its codec cannot hold; both
   propagate to the caller.
5) accepted := all assertions held. ACCEPTED carries the staged writes;
   REJECTED carries none (all-or-nothing).

The executor never touches the committed tree. Committing is the block
producer's job, which is what makes speculative execution safe.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from core import logging as clog
from core.config import MAX_TREE_DEPTH
from core.encoding.canonical import dumps
from core.errors import BackendError, EncodingError
from core.types.tx import Transaction, tx_hash as hash_signbytes, verify_signature
from core.utils.hash import tagged_hash
from execution import metrics
from execution.errors import BAD_SIGNATURE, NOT_ENTRY, MalformedTransaction
from execution.state.merkle import TreeSnapshot
from execution.types.result import ExecutionResult
from execution.types.status import TxStatus
from zk.verifiers import ProofVerifier

from .context import ExecutionContext
from .env import MethodEnv
from .module import MethodSpec, ModuleSpec
from .registry import ModuleRegistry

log = clog.get_logger(__name__)

DOMAIN_INVALID_TX = b"modchain/tx/invalid:v1"


class TransactionExecutor:
    def __init__(
        self,
        registry: ModuleRegistry,
        verifier: ProofVerifier,
        *,
        chain_id: int = 1,
        depth: int = MAX_TREE_DEPTH,
    ) -> None:
        self.registry = registry
        self.verifier = verifier
        self.chain_id = chain_id
        self.depth = depth

    # ------------------------------ validation -------------------------------

    def validate(self, tx: Transaction) -> Tuple[ModuleSpec, MethodSpec, Tuple[Any, ...], bytes]:
        """
        Stateless malformed-transaction checks.

        Returns (module, method, bound args, tx hash); raises MalformedTransaction.
        """
        module, method = self.registry.resolve(tx.module, tx.method)
        if not method.entry:
            raise MalformedTransaction(
                f"{tx.module}.{tx.method} is not a provable entry method",
                reason=NOT_ENTRY,
                module=tx.module,
                method=tx.method,
            )
        args = self.registry.bind_args(method, tx.args, module=tx.module)
        sb = self.registry.signbytes_for(tx, self.chain_id)
        if not verify_signature(tx.sender, tx.signature, sb):
            raise MalformedTransaction("signature does not verify against sender", reason=BAD_SIGNATURE, sender=tx.sender.hex())
        return module, method, args, hash_signbytes(sb)

    def tx_hash(self, tx: Transaction) -> bytes:
        """
        Transaction id. Falls back to a hash of the raw fields when the
        transaction cannot be resolved against a declared method.
        """
        try:
            return hash_signbytes(self.registry.signbytes_for(tx, self.chain_id))
        except MalformedTransaction:
            raw = [str(tx.module), str(tx.method), tx.sender, tx.signature, int(tx.nonce), self.chain_id]
            return tagged_hash(DOMAIN_INVALID_TX, dumps(raw))

    # ------------------------------ execution --------------------------------

    def execute(self, tx: Transaction, snapshot: TreeSnapshot) -> ExecutionResult:
        try:
            module, method, args, txh = self.validate(tx)
        except MalformedTransaction as e:
            txh = self.tx_hash(tx)
            log.info("tx invalid", extra={"tx": txh.hex(), "reason": e.reason, "detail": e.message})
            return ExecutionResult.invalid(txh, e)

        ctx = ExecutionContext(snapshot)
        digests = self._verify_proofs(ctx, method, args)

        env = MethodEnv(self.registry, ctx, module, sender=tx.sender, tx_hash=txh, depth=self.depth)
        try:
            method.fn(env, *args)
        except (BackendError, EncodingError):
            raise
        except Exception as e:
            ctx.assert_(False, f"method raised {type(e).__name__}: {e}")

        footprint = ctx.footprint()
        if ctx.all_assertions_held():
            log.debug(
                "tx accepted",
                extra={"tx": txh.hex(), "target": f"{tx.module}.{tx.method}", "writes": len(ctx.staged_writes())},
            )
            return ExecutionResult(
                tx_hash=txh,
                status=TxStatus.ACCEPTED,
                writes=ctx.staged_writes(),
                proof_digests=tuple(digests),
                footprint=footprint,
            )

        failed = ctx.failed_messages()
        log.info("tx rejected", extra={"tx": txh.hex(), "target": f"{tx.module}.{tx.method}", "failed": list(failed)})
        return ExecutionResult(
            tx_hash=txh,
            status=TxStatus.REJECTED,
            failed_messages=failed,
            proof_digests=tuple(digests),
            footprint=footprint,
        )

    def _verify_proofs(self, ctx: ExecutionContext, method: MethodSpec, args: Sequence[Any]) -> List[bytes]:
        digests: List[bytes] = []
        for index, param in method.proof_params:
            proof = args[index]
            res = self.verifier.verify(proof, param.program_id, proof.public_inputs)
            metrics.observe_proof("verified" if res.ok else "rejected")
            ctx.assert_(
                res.ok,
                f"proof '{param.name}' failed verification for program 0x{param.program_id.hex()}: {res.message}",
            )
            if res.ok and res.digest is not None:
                digests.append(res.digest)
        return digests


__all__ = ["TransactionExecutor", "DOMAIN_INVALID_TX"]
