# zk/verifiers/commitment.py
"""
Hash-commitment proof backend.

A development/test stand-in for a succinct proof system: a "proof" for
(program_id, public_inputs) is the tagged hash binding both together. It
verifies iff the payload equals the recomputed commitment, so it has the same
accept/reject surface as a real backend without any circuit machinery.

    >>> backend = CommitmentBackend()
    >>> proof = backend.prove(b"\\x01" * 32, [7, 9])
    >>> backend.verify(proof, proof.program_id, proof.public_inputs)
    True
"""

from __future__ import annotations

from typing import Sequence

from core.utils.hash import tagged_hash

from . import Proof, ZKError, encode_public_inputs

DOMAIN_COMMITMENT = b"modchain/zk/commitment:v1"
PAYLOAD_LEN = 32


def commitment(program_id: bytes, public_inputs: Sequence[int]) -> bytes:
    return tagged_hash(DOMAIN_COMMITMENT, bytes(program_id), encode_public_inputs(public_inputs))


class CommitmentBackend:
    name = "commitment"

    def prove(self, program_id: bytes, public_inputs: Sequence[int]) -> Proof:
        inputs = tuple(public_inputs)
        return Proof(program_id=program_id, public_inputs=inputs, payload=commitment(program_id, inputs))

    def verify(self, proof: Proof, program_id: bytes, public_inputs: Sequence[int]) -> bool:
        if len(proof.payload) != PAYLOAD_LEN:
            raise ZKError(f"commitment payload must be {PAYLOAD_LEN} bytes, got {len(proof.payload)}")
        if tuple(public_inputs) != proof.public_inputs:
            return False
        return proof.payload == commitment(program_id, public_inputs)


__all__ = ["CommitmentBackend", "commitment", "DOMAIN_COMMITMENT"]
