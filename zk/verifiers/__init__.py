# zk/verifiers/__init__.py
"""
modchain ZK verifiers — proof-as-argument facade

Transactions may carry up to two proofs as method arguments. This package
defines the proof value type, the boundary to the external proof-system
backend, and the `ProofVerifier` the executor drives.

Backends
--------
The succinct-proof backend is an external collaborator. Anything with

    def verify(proof: Proof, program_id: bytes, public_inputs: Sequence[int]) -> bool

can be plugged in. `zk.verifiers.commitment.CommitmentBackend` is the
reference backend shipped here (hash-commitment "proofs" for development and
tests).

Errors
------
- `ZKError`            : malformed proof or public inputs. The verifier turns
                         it into `ok=False`; the executor records it as a
                         failed assertion.
- `BackendUnavailable` : the backend itself is down or misbehaving. This is an
                         infrastructure error and propagates to the block
                         producer, which aborts the batch.

Recursive composition
---------------------
Every proof that verifies is folded into the outer proof of the
transaction's execution. The executor discharges that obligation by handing
each proof argument to the verifier exactly once, in argument order, before
the method body runs, and recording the proof digests in that order.

Usage
-----
>>> verifier = ProofVerifier(CommitmentBackend())
>>> res = verifier.verify(proof, program_id, proof.public_inputs)
>>> res.ok
True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Protocol, Sequence, Tuple

from core import logging as clog
from core.encoding.canonical import Field, dumps
from core.errors import BackendError
from core.utils.hash import tagged_hash

log = clog.get_logger(__name__)

DOMAIN_PROOF = b"modchain/proof:v1"

_FIELD = Field()


class ZKError(RuntimeError):
    """Raised for malformed proofs or public inputs."""


class BackendUnavailable(BackendError):
    def __init__(self, message: str = "proof backend unavailable", *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message, cause=cause)


def encode_public_inputs(public_inputs: Sequence[int]) -> bytes:
    """Canonical encoding of public inputs as BN254 field elements."""
    try:
        return dumps([_FIELD.to_cbor(x) for x in public_inputs])
    except Exception as e:
        raise ZKError(f"invalid public inputs: {e}") from e


@dataclass(frozen=True)
class Proof:
    """
    A proof supplied as a transaction argument.

    program_id    : identifier of the program (circuit) the proof attests to
    public_inputs : field elements the proof is bound to
    payload       : backend-specific proof bytes
    """

    is_proof_type: ClassVar[bool] = True

    program_id: bytes
    public_inputs: Tuple[int, ...] = ()
    payload: bytes = field(default=b"", repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "program_id", bytes(self.program_id))
        object.__setattr__(self, "public_inputs", tuple(self.public_inputs))
        object.__setattr__(self, "payload", bytes(self.payload))

    @property
    def digest(self) -> bytes:
        return tagged_hash(
            DOMAIN_PROOF,
            self.program_id,
            encode_public_inputs(self.public_inputs),
            self.payload,
        )


@dataclass(slots=True, frozen=True)
class VerificationResult:
    """Result of a verification attempt."""
    ok: bool
    program_id: bytes = b""
    digest: Optional[bytes] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:  # allows: if result: ...
        return self.ok


class ProofBackend(Protocol):
    def verify(self, proof: Proof, program_id: bytes, public_inputs: Sequence[int]) -> bool:
        ...


class ProofVerifier:
    """
    Wraps a backend's verification call.

    Returns ok=False (with a message) for a wrong program id, malformed proof
    or failed verification. Raises BackendError when the backend fails.
    """

    def __init__(self, backend: ProofBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> ProofBackend:
        return self._backend

    def verify(self, proof: object, expected_program_id: bytes, public_inputs: Sequence[int]) -> VerificationResult:
        expected = bytes(expected_program_id)
        if not isinstance(proof, Proof):
            return VerificationResult(ok=False, program_id=expected, message="malformed proof")
        if proof.program_id != expected:
            return VerificationResult(
                ok=False,
                program_id=expected,
                message=f"program id mismatch (got 0x{proof.program_id.hex()})",
            )
        try:
            ok = bool(self._backend.verify(proof, expected, tuple(public_inputs)))
            digest = proof.digest if ok else None
        except ZKError as e:
            return VerificationResult(ok=False, program_id=expected, message=str(e))
        except BackendError:
            raise
        except Exception as e:
            log.error("proof backend failed", exc_info=True)
            raise BackendUnavailable(cause=e) from e

        if not ok:
            return VerificationResult(ok=False, program_id=expected, message="verification failed")
        return VerificationResult(ok=True, program_id=expected, digest=digest)


__all__ = [
    "DOMAIN_PROOF",
    "ZKError",
    "BackendUnavailable",
    "Proof",
    "VerificationResult",
    "ProofBackend",
    "ProofVerifier",
    "encode_public_inputs",
]
