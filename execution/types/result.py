"""
execution.types.result — ExecutionResult container for one transaction.

Fields
------
* tx_hash         : bytes — hash of the transaction's signing bytes
* status          : TxStatus — ACCEPTED / REJECTED / INVALID
* writes          : Mapping[Address, bytes] — staged writes; empty unless ACCEPTED
* failed_messages : tuple[str, ...] — failed assertion messages, in ledger order
* proof_digests   : tuple[bytes, ...] — digests of verified proof arguments,
                    in argument order (the proofs folded into this tx's proof)
* footprint       : Footprint — every address read or written while executing
* error           : Optional[MalformedTransaction] — why an INVALID tx was refused

All-or-nothing: a REJECTED or INVALID result never carries writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple

from .status import TxStatus

if TYPE_CHECKING:  # pragma: no cover
    from execution.errors import MalformedTransaction
    from execution.runtime.context import Footprint
    from execution.state.path import Address


_EMPTY: Mapping[Any, bytes] = MappingProxyType({})


@dataclass(frozen=True)
class ExecutionResult:
    tx_hash: bytes
    status: TxStatus
    writes: Mapping["Address", bytes] = field(default_factory=lambda: _EMPTY)
    failed_messages: Tuple[str, ...] = ()
    proof_digests: Tuple[bytes, ...] = ()
    footprint: Optional["Footprint"] = None
    error: Optional["MalformedTransaction"] = None

    def __post_init__(self) -> None:
        if self.status is not TxStatus.ACCEPTED and len(self.writes):
            raise ValueError(f"{self.status.code} result must not carry writes")
        object.__setattr__(self, "failed_messages", tuple(self.failed_messages))
        object.__setattr__(self, "proof_digests", tuple(self.proof_digests))

    @property
    def accepted(self) -> bool:
        return self.status is TxStatus.ACCEPTED

    @classmethod
    def invalid(cls, tx_hash: bytes, error: "MalformedTransaction") -> "ExecutionResult":
        return cls(tx_hash=tx_hash, status=TxStatus.INVALID, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txHash": "0x" + self.tx_hash.hex(),
            "status": str(self.status),
            "writes": {a.hex(): "0x" + v.hex() for a, v in sorted(self.writes.items())},
            "failedMessages": list(self.failed_messages),
            "proofDigests": ["0x" + d.hex() for d in self.proof_digests],
            "error": self.error.to_dict() if self.error is not None else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return (
            f"ExecutionResult(tx=0x{self.tx_hash.hex()[:12]}…, status={self.status.code}, "
            f"writes={len(self.writes)}, failed={len(self.failed_messages)}, "
            f"proofs={len(self.proof_digests)})"
        )


__all__ = ["ExecutionResult"]
