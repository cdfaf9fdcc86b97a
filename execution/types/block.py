"""
execution.types.block — the record one batch of transactions leaves behind.

A Block is produced exactly once per batch by the BlockProducer and is
immutable afterwards:

    Block(height, parent_root, state_root, records)

Each TxRecord carries the transaction, its hash, its status and, for a
REJECTED transaction, the failed assertion messages in ledger order, and for
an INVALID one the malformed-transaction reason (e.g. DUPLICATE). Rejected
attempts stay in the record so the failure is auditable even though they had
no state effect.

`block_hash` commits to all of the above through the canonical encoding.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from core.encoding.canonical import dumps
from core.types.tx import Transaction
from core.utils.hash import tagged_hash

from .status import TxStatus

DOMAIN_BLOCK = b"modchain/block:v1"


@dataclass(frozen=True)
class TxRecord:
    transaction: Transaction
    tx_hash: bytes
    status: TxStatus
    failed_messages: Tuple[str, ...] = ()
    proof_digests: Tuple[bytes, ...] = ()
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status is TxStatus.ACCEPTED

    def _item(self) -> list:
        return [self.tx_hash, self.status.code, list(self.failed_messages), list(self.proof_digests)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txHash": "0x" + self.tx_hash.hex(),
            "module": self.transaction.module,
            "method": self.transaction.method,
            "status": str(self.status),
            "failedMessages": list(self.failed_messages),
            "proofDigests": ["0x" + d.hex() for d in self.proof_digests],
            "reason": self.reason,
        }


@dataclass(frozen=True)
class Block:
    height: int
    parent_root: bytes
    state_root: bytes
    records: Tuple[TxRecord, ...] = ()

    def __post_init__(self) -> None:
        if self.height < 0:
            raise ValueError("height must be >= 0")
        object.__setattr__(self, "records", tuple(self.records))

    @property
    def block_hash(self) -> bytes:
        body = [self.height, self.parent_root, self.state_root, [r._item() for r in self.records]]
        return tagged_hash(DOMAIN_BLOCK, dumps(body))

    def record(self, tx_hash: bytes) -> Optional[TxRecord]:
        for r in self.records:
            if r.tx_hash == tx_hash:
                return r
        return None

    @property
    def accepted_count(self) -> int:
        return sum(1 for r in self.records if r.accepted)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "height": self.height,
            "hash": "0x" + self.block_hash.hex(),
            "parentRoot": "0x" + self.parent_root.hex(),
            "stateRoot": "0x" + self.state_root.hex(),
            "records": [r.to_dict() for r in self.records],
        }

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return (
            f"Block(height={self.height}, txs={len(self.records)}, "
            f"accepted={self.accepted_count}, root=0x{self.state_root.hex()[:12]}…)"
        )


__all__ = ["DOMAIN_BLOCK", "TxRecord", "Block"]
