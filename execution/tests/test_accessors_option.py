import pytest

from core.encoding.canonical import PublicKey, Record, UInt
from core.errors import EncodingError
from execution.runtime.context import ExecutionContext
from execution.state.accessors import StateAccessor, StateMapAccessor
from execution.state.merkle import SparseMerkleTree
from execution.state.option import Option
from execution.state.path import derive

DEPTH = 32
ALICE = b"\xa1" * 32
BOB = b"\xb0" * 32


def _ctx(tree=None):
    tree = tree or SparseMerkleTree(DEPTH)
    return ExecutionContext(tree.snapshot())


def _balances(ctx):
    return StateMapAccessor(ctx, "Balances", "balances", PublicKey(), UInt(64), DEPTH)


def test_set_then_get_within_one_context():
    ctx = _ctx()
    m = _balances(ctx)
    m.set(ALICE, 100)
    assert m.get(ALICE) == Option(True, 100)


def test_absent_key_yields_dummy():
    m = _balances(_ctx())
    got = m.get(BOB)
    assert got.present is False
    assert got.value == 0
    assert got.or_else(7) == 7


def test_absent_record_yields_record_of_dummies():
    rec = Record("Claim", [("who", PublicKey()), ("amount", UInt(64))])
    acc = StateAccessor(_ctx(), "Vault", "last_claim", rec, DEPTH)
    got = acc.get()
    assert not got.present
    assert got.value == {"who": b"\x00" * 32, "amount": 0}


def test_set_never_touches_the_committed_tree():
    tree = SparseMerkleTree(DEPTH)
    root = tree.root()
    ctx = ExecutionContext(tree.snapshot())
    StateAccessor(ctx, "Balances", "supply", UInt(64), DEPTH).set(5)
    assert tree.root() == root
    assert len(ctx.staged_writes()) == 1


def test_reads_fall_back_to_snapshot():
    tree = SparseMerkleTree(DEPTH)
    addr = derive("Balances", "balances", ALICE, key_codec=PublicKey(), depth=DEPTH)
    tree.write(addr, UInt(64).encode(42))
    m = _balances(ExecutionContext(tree.snapshot()))
    assert m.address_of(ALICE) == addr
    assert m.get(ALICE) == Option.some(42)


def test_record_values_come_back_as_field_dicts():
    rec = Record("Claim", [("who", PublicKey()), ("amount", UInt(64))])
    acc = StateAccessor(_ctx(), "Vault", "last_claim", rec, DEPTH)
    acc.set((ALICE, 3))
    assert acc.get().value == {"who": ALICE, "amount": 3}


def test_value_outside_codec_is_an_encoding_error():
    m = _balances(_ctx())
    with pytest.raises(EncodingError):
        m.set(ALICE, -1)
    with pytest.raises(EncodingError):
        m.get(b"short")
