"""
execution.runtime.context — per-transaction scratch state.

An ExecutionContext lives for exactly one transaction. It owns:

- the assertion ledger: ordered (condition, message) entries. `assert_`
  appends and returns; it never raises and never short-circuits the method
  body. Acceptance is the conjunction of every entry (empty ledger → True).
- the staged write buffer: address → encoded value, last write wins. Reads
  consult it first so a transaction sees its own writes before commit.
- the read snapshot: an immutable TreeSnapshot taken before execution.
- the footprint: every address read or written, used by the scheduler to
  decide whether a speculative result is still valid.

A method body must be describable as one fixed arithmetic circuit, so it
cannot branch away early on failure. Every check is recorded instead and the
ledger gates the final accept/reject decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import AbstractSet, Dict, List, Mapping, Optional, Set, Tuple

from execution.state.merkle import TreeSnapshot
from execution.state.path import Address


@dataclass(frozen=True)
class Assertion:
    condition: bool
    message: str


@dataclass(frozen=True)
class Footprint:
    reads: frozenset
    writes: frozenset

    @staticmethod
    def empty() -> "Footprint":
        return Footprint(reads=frozenset(), writes=frozenset())

    def depends_on(self, written: AbstractSet[Address]) -> bool:
        """True if anything this transaction read was written by someone else."""
        return not self.reads.isdisjoint(written)

    def disjoint_from(self, other: "Footprint") -> bool:
        mine = self.reads | self.writes
        return mine.isdisjoint(other.writes) and self.writes.isdisjoint(other.reads)


class ExecutionContext:
    def __init__(self, snapshot: TreeSnapshot) -> None:
        self._snapshot = snapshot
        self._ledger: List[Assertion] = []
        self._writes: Dict[Address, bytes] = {}
        self._reads: Set[Address] = set()

    @property
    def snapshot(self) -> TreeSnapshot:
        return self._snapshot

    # ------------------------------ ledger -----------------------------------

    def assert_(self, condition: bool, message: str) -> bool:
        """Record a check. Returns the condition so callers can keep using it."""
        held = bool(condition)
        self._ledger.append(Assertion(held, str(message)))
        return held

    @property
    def ledger(self) -> Tuple[Assertion, ...]:
        return tuple(self._ledger)

    def all_assertions_held(self) -> bool:
        return all(a.condition for a in self._ledger)

    def failed_messages(self) -> Tuple[str, ...]:
        return tuple(a.message for a in self._ledger if not a.condition)

    # ------------------------------ state ------------------------------------

    def read(self, address: Address) -> Optional[bytes]:
        self._reads.add(address)
        if address in self._writes:
            return self._writes[address]
        return self._snapshot.read(address)

    def stage(self, address: Address, value: bytes) -> None:
        self._writes[address] = bytes(value)

    def staged_writes(self) -> Mapping[Address, bytes]:
        return MappingProxyType(dict(self._writes))

    def footprint(self) -> Footprint:
        return Footprint(reads=frozenset(self._reads), writes=frozenset(self._writes))


__all__ = ["Assertion", "Footprint", "ExecutionContext"]
