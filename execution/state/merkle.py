"""
execution.state.merkle — fixed-depth sparse Merkle commitment over state addresses.

The tree has 2^depth leaf slots, each either empty or holding the canonical
encoding of a value. Only non-empty subtrees are materialized; every empty
subtree of height h hashes to a precomputed constant.

Hash domains
------------
- LEAF:  H(b"modchain/state/leaf:v1", address, H(value))
- NODE:  H(b"modchain/state/node:v1", left, right)
- EMPTY: H(b"modchain/state/empty:v1")  for an empty leaf; an empty subtree
         of height h+1 is NODE(empty_h, empty_h).

`H` is the tagged SHA3-256 of `core.utils.hash` (or an injected hasher with
the same shape). Binding the address into the leaf hash stops a witness for
one slot being replayed for another slot holding the same value.

Bit convention: at height h the node index is `address >> h`; its lowest bit
decides whether the node is a right child (1) or a left child (0).

Snapshots
---------
`snapshot()` hands out an immutable read view in O(1): the leaf mapping is
shared copy-on-write. A write duplicates it only while some snapshot of it
is still referenced, so executing one transaction at a time against
short-lived snapshots never copies the state. `fork()` returns a
fully independent tree for speculative block building.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterator, Mapping, Optional, Tuple

from core.config import MAX_TREE_DEPTH
from core.errors import BackendError, EncodingError
from core.utils.hash import tagged_hash

from .path import Address

DOMAIN_LEAF = b"modchain/state/leaf:v1"
DOMAIN_NODE = b"modchain/state/node:v1"
DOMAIN_EMPTY = b"modchain/state/empty:v1"

TaggedHasher = Callable[..., bytes]


def _call_hasher(hasher: TaggedHasher, tag: bytes, *parts: bytes) -> bytes:
    try:
        return hasher(tag, *parts)
    except BackendError:
        raise
    except Exception as e:
        raise BackendError("hash primitive failed", cause=e) from e


def empty_hashes(depth: int, hasher: TaggedHasher = tagged_hash) -> Tuple[bytes, ...]:
    """Roots of empty subtrees for heights 0..depth."""
    out = [_call_hasher(hasher, DOMAIN_EMPTY)]
    for _ in range(depth):
        out.append(_call_hasher(hasher, DOMAIN_NODE, out[-1], out[-1]))
    return tuple(out)


def leaf_hash(address: Address, value: bytes, hasher: TaggedHasher = tagged_hash) -> bytes:
    return _call_hasher(hasher, DOMAIN_LEAF, address.to_bytes(), _call_hasher(hasher, DOMAIN_LEAF, value))


# ---------------------------------------------------------------------------
# Witness
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Witness:
    """
    Membership (value is not None) or non-membership (value is None) proof for
    one address. `siblings[h]` is the sibling hash at height h, leaf level first.
    """

    address: Address
    value: Optional[bytes]
    siblings: Tuple[bytes, ...]

    @property
    def is_membership(self) -> bool:
        return self.value is not None

    def compute_root(self, hasher: TaggedHasher = tagged_hash) -> bytes:
        if len(self.siblings) != self.address.depth:
            raise ValueError("witness length does not match address depth")
        if self.value is None:
            cur = _call_hasher(hasher, DOMAIN_EMPTY)
        else:
            cur = leaf_hash(self.address, self.value, hasher)
        idx = self.address.value
        for sib in self.siblings:
            if idx & 1:
                cur = _call_hasher(hasher, DOMAIN_NODE, sib, cur)
            else:
                cur = _call_hasher(hasher, DOMAIN_NODE, cur, sib)
            idx >>= 1
        return cur

    def verify(self, root: bytes, hasher: TaggedHasher = tagged_hash) -> bool:
        try:
            return self.compute_root(hasher) == bytes(root)
        except ValueError:
            return False


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class TreeSnapshot:
    """Immutable read view of the tree at one root."""

    __slots__ = ("depth", "_leaves", "_root", "__weakref__")

    def __init__(self, depth: int, leaves: Mapping[int, bytes], root: bytes) -> None:
        self.depth = depth
        self._leaves = MappingProxyType(leaves)  # type: ignore[arg-type]
        self._root = root

    def read(self, address: Address) -> Optional[bytes]:
        if address.depth != self.depth:
            raise ValueError("address depth does not match tree depth")
        return self._leaves.get(address.value)

    def root(self) -> bytes:
        return self._root

    def __len__(self) -> int:
        return len(self._leaves)


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


class SparseMerkleTree:
    """
    Fixed-depth sparse Merkle tree.

    Parameters
    ----------
    depth :
        Tree depth in bits (1..256). Fixed for the lifetime of the chain.
    hasher :
        Tagged hash `hasher(tag, *parts) -> 32 bytes`. Any failure inside it is
        surfaced as BackendError.
    """

    def __init__(self, depth: int = MAX_TREE_DEPTH, *, hasher: TaggedHasher = tagged_hash) -> None:
        if not (1 <= depth <= MAX_TREE_DEPTH):
            raise ValueError(f"depth must be in [1, {MAX_TREE_DEPTH}]")
        self.depth = depth
        self._hasher = hasher
        self._empty = empty_hashes(depth, hasher)
        self._leaves: Dict[int, bytes] = {}
        # (height, index) -> hash, non-empty nodes only. Height 0 holds leaf hashes.
        self._nodes: Dict[Tuple[int, int], bytes] = {}
        self._snapshots: "weakref.WeakSet[TreeSnapshot]" = weakref.WeakSet()

    # ------------------------------ reads ------------------------------------

    def _check(self, address: Address) -> None:
        if not isinstance(address, Address) or address.depth != self.depth:
            raise ValueError("address depth does not match tree depth")

    def _node(self, height: int, index: int) -> bytes:
        return self._nodes.get((height, index), self._empty[height])

    def read(self, address: Address) -> Optional[bytes]:
        """Committed value at `address`, or None for an empty slot."""
        self._check(address)
        return self._leaves.get(address.value)

    def root(self) -> bytes:
        return self._node(self.depth, 0)

    def witness(self, address: Address) -> Witness:
        self._check(address)
        siblings = [self._node(h, (address.value >> h) ^ 1) for h in range(self.depth)]
        return Witness(address=address, value=self._leaves.get(address.value), siblings=tuple(siblings))

    def items(self) -> Iterator[Tuple[int, bytes]]:
        """(address value, encoded value) pairs in address order."""
        for k in sorted(self._leaves):
            yield k, self._leaves[k]

    def __len__(self) -> int:
        return len(self._leaves)

    # ------------------------------ writes -----------------------------------

    def write(self, address: Address, value: bytes) -> None:
        """Overwrite the slot at `address`; last write wins."""
        self._check(address)
        if not isinstance(value, (bytes, bytearray)):
            raise EncodingError("tree values must be canonical byte encodings", got=type(value).__name__)
        value = bytes(value)
        if self._snapshots:
            self._leaves = dict(self._leaves)
            self._snapshots = weakref.WeakSet()
        self._leaves[address.value] = value

        h = self._hasher
        idx = address.value
        cur = leaf_hash(address, value, h)
        self._nodes[(0, idx)] = cur
        for height in range(1, self.depth + 1):
            sib = self._node(height - 1, idx ^ 1)
            if idx & 1:
                cur = _call_hasher(h, DOMAIN_NODE, sib, cur)
            else:
                cur = _call_hasher(h, DOMAIN_NODE, cur, sib)
            idx >>= 1
            self._nodes[(height, idx)] = cur

    def apply(self, writes: Mapping[Address, bytes]) -> bytes:
        """Apply a write set and return the new root."""
        for address, value in writes.items():
            self.write(address, value)
        return self.root()

    # ------------------------------ views ------------------------------------

    def snapshot(self) -> TreeSnapshot:
        snap = TreeSnapshot(self.depth, self._leaves, self.root())
        self._snapshots.add(snap)
        return snap

    def fork(self) -> "SparseMerkleTree":
        other = SparseMerkleTree.__new__(SparseMerkleTree)
        other.depth = self.depth
        other._hasher = self._hasher
        other._empty = self._empty
        other._leaves = dict(self._leaves)
        other._nodes = dict(self._nodes)
        other._snapshots = weakref.WeakSet()
        return other


def verify_witness(root: bytes, witness: Witness, hasher: TaggedHasher = tagged_hash) -> bool:
    return witness.verify(root, hasher)


__all__ = [
    "DOMAIN_LEAF",
    "DOMAIN_NODE",
    "DOMAIN_EMPTY",
    "Witness",
    "TreeSnapshot",
    "SparseMerkleTree",
    "empty_hashes",
    "leaf_hash",
    "verify_witness",
]
