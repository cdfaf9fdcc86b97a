import pytest

from core.encoding.canonical import FIELD_MODULUS, PublicKey, UInt
from core.errors import BackendError, EncodingError
from core.types.tx import Transaction
from execution.errors import (
    BAD_ARGUMENT,
    BAD_ARITY,
    BAD_SIGNATURE,
    NOT_ENTRY,
    UNKNOWN_METHOD,
    UNKNOWN_MODULE,
    MalformedTransaction,
)
from execution.runtime.executor import TransactionExecutor
from execution.runtime.module import MethodSpec, ModuleSpec, ParamSpec, PropertySpec
from execution.state.merkle import SparseMerkleTree
from execution.types.status import TxStatus
from zk.verifiers import BackendUnavailable, Proof, ProofVerifier

DEPTH = 64
CHAIN_ID = 1


def _boom(env):
    env.state("flag").set(1)
    return 1 // 0


def _backend_down(env):
    raise BackendError("storage unavailable")


def _partial(env):
    env.state("flag").set(1)
    env.state("other").set(2)
    env.assert_(False, "nope")
    env.state("flag").set(3)


def _bad_call(env):
    env.call("Nope", "missing")
    env.state("flag").set(1)


def _proof_call(env):
    env.call("Vault", "claim", None, 1)


def _wrong_arity_call(env):
    env.call("Balances", "_credit", env.sender)


def _read_foreign(env, who):
    bal = env.foreign_state_map("Balances", "balances").get(who)
    env.assert_(bal.present, "no balance")
    env.state("flag").set(bal.value)


def _undeclared(env):
    env.state("missing").get()


def _overflow(env):
    env.state("flag").set(2**64)


def _faulty() -> ModuleSpec:
    return ModuleSpec(
        name="Faulty",
        properties=(PropertySpec("flag", UInt(64)), PropertySpec("other", UInt(64))),
        methods=(
            MethodSpec("boom", _boom),
            MethodSpec("backend_down", _backend_down),
            MethodSpec("partial", _partial),
            MethodSpec("bad_call", _bad_call),
            MethodSpec("proof_call", _proof_call),
            MethodSpec("wrong_arity_call", _wrong_arity_call),
            MethodSpec("read_foreign", _read_foreign, params=(ParamSpec("who", PublicKey()),)),
            MethodSpec("undeclared", _undeclared),
            MethodSpec("overflow", _overflow),
        ),
    )


class RecordingBackend:
    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def verify(self, proof, program_id, public_inputs):
        self.calls.append(program_id)
        return self.inner.verify(proof, program_id, public_inputs)


class ExplodingBackend:
    def verify(self, proof, program_id, public_inputs):
        raise RuntimeError("prover farm offline")


@pytest.fixture
def recording(backend):
    return RecordingBackend(backend)


@pytest.fixture
def executor(registry, recording):
    registry.register(_faulty())
    registry.freeze()
    return TransactionExecutor(registry, ProofVerifier(recording), chain_id=CHAIN_ID, depth=DEPTH)


@pytest.fixture
def tree():
    return SparseMerkleTree(DEPTH)


@pytest.fixture
def signed(executor):
    def _sign(key, module, method, *args, nonce=0):
        return executor.registry.sign_transaction(key, module, method, args, chain_id=CHAIN_ID, nonce=nonce)

    return _sign


def _commit(tree, res):
    assert res.accepted, res.failed_messages
    tree.apply(res.writes)


# ---------------------------------------------------------------------------
# accept / reject
# ---------------------------------------------------------------------------


def test_accepted_tx_returns_its_writes(executor, tree, signed, alice_key, alice):
    res = executor.execute(signed(alice_key, "Balances", "mint", alice, 100), tree.snapshot())
    assert res.status is TxStatus.ACCEPTED
    assert len(res.writes) == 2
    assert res.failed_messages == ()
    assert res.footprint.writes == frozenset(res.writes)


def test_executor_never_touches_the_tree(executor, tree, signed, alice_key, alice):
    root = tree.root()
    executor.execute(signed(alice_key, "Balances", "mint", alice, 100), tree.snapshot())
    assert tree.root() == root


def test_failed_assertion_rejects_and_discards_all_writes(executor, tree, signed, alice_key):
    res = executor.execute(signed(alice_key, "Faulty", "partial"), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert dict(res.writes) == {}
    assert res.failed_messages == ("nope",)


def test_insufficient_balance_is_soft_failure(executor, tree, signed, alice_key, alice, bob):
    _commit(tree, executor.execute(signed(alice_key, "Balances", "mint", alice, 50), tree.snapshot()))
    res = executor.execute(signed(alice_key, "Balances", "transfer", bob, 100), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert "insufficient balance" in res.failed_messages
    assert not res.writes


def test_body_exception_becomes_failed_assertion(executor, tree, signed, alice_key):
    res = executor.execute(signed(alice_key, "Faulty", "boom"), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert len(res.failed_messages) == 1
    assert res.failed_messages[0].startswith("method raised ZeroDivisionError")


def test_undeclared_property_is_recorded_not_raised(executor, tree, signed, alice_key):
    res = executor.execute(signed(alice_key, "Faulty", "undeclared"), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert res.failed_messages[0].startswith("method raised KeyError")


def test_backend_error_in_body_propagates(executor, tree, signed, alice_key):
    with pytest.raises(BackendError):
        executor.execute(signed(alice_key, "Faulty", "backend_down"), tree.snapshot())


def test_unencodable_write_in_body_propagates(executor, tree, signed, alice_key):
    with pytest.raises(EncodingError):
        executor.execute(signed(alice_key, "Faulty", "overflow"), tree.snapshot())


# ---------------------------------------------------------------------------
# nested calls
# ---------------------------------------------------------------------------


def test_nested_call_shares_context(executor, tree, signed, alice_key, alice, bob):
    _commit(tree, executor.execute(signed(alice_key, "Balances", "mint", alice, 100), tree.snapshot()))
    res = executor.execute(signed(alice_key, "Balances", "transfer", bob, 30), tree.snapshot())
    _commit(tree, res)
    assert len(res.footprint.reads) == 2  # sender and recipient balances
    assert len(res.writes) == 2


def test_unresolvable_nested_call_is_failed_assertion(executor, tree, signed, alice_key):
    res = executor.execute(signed(alice_key, "Faulty", "bad_call"), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert res.failed_messages[0].startswith("call to Nope.missing failed")


def test_nested_call_cannot_supply_proofs(executor, tree, signed, alice_key):
    res = executor.execute(signed(alice_key, "Faulty", "proof_call"), tree.snapshot())
    assert res.failed_messages == ("call to Vault.claim failed: proof parameters need a transaction",)


def test_nested_call_arity_is_checked(executor, tree, signed, alice_key):
    res = executor.execute(signed(alice_key, "Faulty", "wrong_arity_call"), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert "takes 2 arguments" in res.failed_messages[0]


def test_foreign_state_is_readable(executor, tree, signed, alice_key, alice):
    _commit(tree, executor.execute(signed(alice_key, "Balances", "mint", alice, 9), tree.snapshot()))
    res = executor.execute(signed(alice_key, "Faulty", "read_foreign", alice), tree.snapshot())
    assert res.accepted
    assert list(res.writes.values()) == [UInt(64).encode(9)]


# ---------------------------------------------------------------------------
# malformed transactions
# ---------------------------------------------------------------------------


def _raw(module, method, args, sender, signature=b"\x00" * 64):
    return Transaction(module=module, method=method, args=args, sender=sender, signature=signature)


def test_unknown_module_and_method(executor, tree, alice):
    res = executor.execute(_raw("Nope", "mint", (), alice), tree.snapshot())
    assert res.status is TxStatus.INVALID
    assert res.error.reason == UNKNOWN_MODULE
    assert res.footprint is None
    res = executor.execute(_raw("Balances", "burn", (), alice), tree.snapshot())
    assert res.error.reason == UNKNOWN_METHOD


def test_internal_method_is_not_an_entry(executor, tree, alice):
    res = executor.execute(_raw("Balances", "_credit", (alice, 1), alice), tree.snapshot())
    assert res.error.reason == NOT_ENTRY


def test_arity_checked_before_types_and_signature(executor, tree, alice):
    res = executor.execute(_raw("Balances", "mint", (alice,), alice), tree.snapshot())
    assert res.error.reason == BAD_ARITY
    res = executor.execute(_raw("Balances", "mint", (alice, -5), alice), tree.snapshot())
    assert res.error.reason == BAD_ARGUMENT


def test_bad_signature(executor, tree, signed, alice_key, bob_key, alice):
    tx = signed(alice_key, "Balances", "mint", alice, 100)
    forged = Transaction(module=tx.module, method=tx.method, args=(alice, 1000), sender=tx.sender, signature=tx.signature)
    res = executor.execute(forged, tree.snapshot())
    assert res.status is TxStatus.INVALID
    assert res.error.reason == BAD_SIGNATURE
    assert not res.writes

    other_chain = executor.registry.sign_transaction(bob_key, "Balances", "mint", (alice, 1), chain_id=CHAIN_ID + 1)
    assert executor.execute(other_chain, tree.snapshot()).error.reason == BAD_SIGNATURE


def test_invalid_tx_still_gets_a_stable_hash(executor, tree, alice):
    tx = _raw("Nope", "mint", (), alice)
    a = executor.execute(tx, tree.snapshot())
    b = executor.execute(tx, tree.snapshot())
    assert a.tx_hash == b.tx_hash
    assert len(a.tx_hash) == 32


# ---------------------------------------------------------------------------
# proofs
# ---------------------------------------------------------------------------


def test_valid_proof_is_folded(executor, tree, signed, alice_key, backend, program_claim, recording):
    proof = backend.prove(program_claim, [5])
    res = executor.execute(signed(alice_key, "Vault", "claim", proof, 5), tree.snapshot())
    assert res.accepted
    assert res.proof_digests == (proof.digest,)
    assert recording.calls == [program_claim]


def test_proof_for_wrong_program_rejects(executor, tree, signed, alice_key, backend, program_audit):
    proof = backend.prove(program_audit, [5])
    res = executor.execute(signed(alice_key, "Vault", "claim", proof, 5), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert len(res.failed_messages) == 1
    assert res.failed_messages[0].startswith("proof 'proof' failed verification")
    assert res.proof_digests == ()


def test_tampered_and_malformed_proofs_reject(executor, tree, signed, alice_key, program_claim):
    for payload in (b"\x00" * 32, b"\x01"):
        proof = Proof(program_id=program_claim, public_inputs=(5,), payload=payload)
        res = executor.execute(signed(alice_key, "Vault", "claim", proof, 5), tree.snapshot())
        assert res.status is TxStatus.REJECTED
        assert res.failed_messages[0].startswith("proof 'proof'")


def test_out_of_field_inputs_are_malformed(executor, tree, signed, alice_key, alice, program_claim):
    for bad in (FIELD_MODULUS, -1):
        proof = Proof(program_id=program_claim, public_inputs=(bad,), payload=b"\x02" * 32)
        with pytest.raises(MalformedTransaction) as e:
            signed(alice_key, "Vault", "claim", proof, 5)
        assert e.value.reason == BAD_ARGUMENT
        assert "outside the field" in e.value.message

        res = executor.execute(_raw("Vault", "claim", (proof, 5), alice), tree.snapshot())
        assert res.status is TxStatus.INVALID
        assert res.error.reason == BAD_ARGUMENT


def test_non_proof_argument_is_malformed(executor, tree, signed, alice_key):
    with pytest.raises(MalformedTransaction) as e:
        signed(alice_key, "Vault", "claim", b"not a proof", 5)
    assert e.value.reason == BAD_ARGUMENT


def test_two_proofs_verified_once_each_in_order(
    executor, tree, signed, alice_key, backend, program_claim, program_audit, recording
):
    first = backend.prove(program_claim, [4])
    second = backend.prove(program_audit, [4])
    res = executor.execute(signed(alice_key, "Vault", "claim_pair", first, second, 4), tree.snapshot())
    assert res.accepted
    assert res.proof_digests == (first.digest, second.digest)
    assert recording.calls == [program_claim, program_audit]


def test_second_proof_failing_keeps_first_digest(executor, tree, signed, alice_key, backend, program_claim):
    first = backend.prove(program_claim, [4])
    res = executor.execute(signed(alice_key, "Vault", "claim_pair", first, first, 4), tree.snapshot())
    assert res.status is TxStatus.REJECTED
    assert res.proof_digests == (first.digest,)
    assert res.failed_messages[0].startswith("proof 'second'")


def test_proof_backend_outage_propagates(registry, backend, program_claim, alice_key):
    registry.freeze()
    ex = TransactionExecutor(registry, ProofVerifier(ExplodingBackend()), chain_id=CHAIN_ID, depth=DEPTH)
    proof = backend.prove(program_claim, [1])
    tx = registry.sign_transaction(alice_key, "Vault", "claim", (proof, 1), chain_id=CHAIN_ID)
    with pytest.raises(BackendUnavailable):
        ex.execute(tx, SparseMerkleTree(DEPTH).snapshot())
