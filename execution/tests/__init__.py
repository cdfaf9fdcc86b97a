"""
execution.tests helpers

Sample modules shared by the execution tests and the root conftest:

Balances
    supply   : UInt(64)
    balances : PublicKey -> UInt(64)
    mint(to, amount), transfer(to, amount), _credit(who, amount) [internal]

Vault
    claims     : PublicKey -> UInt(64)
    last_claim : Record Claim{who: PublicKey, amount: UInt(64)}
    claim(proof, amount)             one proof for PROGRAM_CLAIM
    claim_pair(first, second, amount) proofs for PROGRAM_CLAIM then PROGRAM_AUDIT

- build_registry() -> ModuleRegistry with both modules registered
- INSUFFICIENT, WRONG_AMOUNT -> assertion messages the bodies record
"""

from __future__ import annotations

from core.encoding.canonical import PublicKey, Record, UInt
from core.utils.hash import sha3_256
from execution.runtime.module import MethodSpec, ModuleSpec, ParamSpec, PropertySpec, ProofParam
from execution.runtime.registry import ModuleRegistry

PROGRAM_CLAIM = sha3_256(b"test-program/claim")
PROGRAM_AUDIT = sha3_256(b"test-program/audit")

INSUFFICIENT = "insufficient balance"
WRONG_AMOUNT = "proof does not attest to the claimed amount"

CLAIM = Record("Claim", [("who", PublicKey()), ("amount", UInt(64))])


def _mint(env, to, amount):
    supply = env.state("supply")
    balances = env.state_map("balances")
    supply.set(supply.get().value + amount)
    balances.set(to, balances.get(to).value + amount)


def _transfer(env, to, amount):
    balances = env.state_map("balances")
    have = balances.get(env.sender).value
    ok = env.assert_(have >= amount, INSUFFICIENT)
    debit = amount if ok else 0
    balances.set(env.sender, have - debit)
    env.call("Balances", "_credit", to, debit)


def _credit(env, who, amount):
    balances = env.state_map("balances")
    balances.set(who, balances.get(who).value + amount)


def _claim(env, proof, amount):
    env.assert_(tuple(proof.public_inputs) == (amount,), WRONG_AMOUNT)
    claims = env.state_map("claims")
    claims.set(env.sender, claims.get(env.sender).value + amount)
    env.state("last_claim").set({"who": env.sender, "amount": amount})
    env.call("Balances", "_credit", env.sender, amount)


def _claim_pair(env, first, second, amount):
    env.assert_(tuple(first.public_inputs) == (amount,), WRONG_AMOUNT)
    env.assert_(tuple(second.public_inputs) == (amount,), WRONG_AMOUNT)
    claims = env.state_map("claims")
    claims.set(env.sender, claims.get(env.sender).value + amount)


def balances_module() -> ModuleSpec:
    return ModuleSpec(
        name="Balances",
        version=1,
        properties=(
            PropertySpec("supply", UInt(64)),
            PropertySpec("balances", UInt(64), key_codec=PublicKey()),
        ),
        methods=(
            MethodSpec("mint", _mint, params=(ParamSpec("to", PublicKey()), ParamSpec("amount", UInt(64)))),
            MethodSpec("transfer", _transfer, params=(ParamSpec("to", PublicKey()), ParamSpec("amount", UInt(64)))),
            MethodSpec("_credit", _credit, params=(ParamSpec("who", PublicKey()), ParamSpec("amount", UInt(64))), entry=False),
        ),
    )


def vault_module() -> ModuleSpec:
    return ModuleSpec(
        name="Vault",
        version=1,
        properties=(
            PropertySpec("claims", UInt(64), key_codec=PublicKey()),
            PropertySpec("last_claim", CLAIM),
        ),
        methods=(
            MethodSpec("claim", _claim, params=(ProofParam("proof", PROGRAM_CLAIM), ParamSpec("amount", UInt(64)))),
            MethodSpec(
                "claim_pair",
                _claim_pair,
                params=(
                    ProofParam("first", PROGRAM_CLAIM),
                    ProofParam("second", PROGRAM_AUDIT),
                    ParamSpec("amount", UInt(64)),
                ),
            ),
        ),
    )


def build_registry() -> ModuleRegistry:
    reg = ModuleRegistry()
    reg.register(balances_module())
    reg.register(vault_module())
    return reg
