"""
execution.types.status — canonical transaction status enum.

TxStatus models the outcome of executing a transaction:
  - ACCEPTED : every assertion held; staged writes are committed
  - REJECTED : at least one assertion failed (soft failure); writes discarded,
               failure messages kept in the block record
  - INVALID  : malformed (unknown module/method, bad arity/type, bad
               signature) or a replay; no ledger was produced, no state effect

String forms:
  - str(TxStatus.ACCEPTED) -> "accepted"   (logs/metrics)
  - TxStatus.ACCEPTED.code  -> "ACCEPTED"  (block records)
"""

from __future__ import annotations

from enum import Enum


class TxStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    INVALID = "invalid"

    @property
    def code(self) -> str:
        return self.value.upper()

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


__all__ = ["TxStatus"]
