"""
modchain zk — proof arguments and the backend boundary.

See `zk.verifiers` for the Proof type and ProofVerifier.
"""
