"""
Merkle Consistency Module

Provides RFC 6962 hashing and consistency-proof verification for
append-only logs.
"""

from logaudit.merkle.hashing import (
    DIGEST_SIZE,
    empty_root,
    leaf_hash,
    node_hash,
    root_from_leaf_hashes,
)

from logaudit.merkle.consistency import (
    ConsistencyVerifier,
    expected_proof_size,
    verify,
)

__all__ = [
    # Hashing primitives
    "DIGEST_SIZE",
    "empty_root",
    "leaf_hash",
    "node_hash",
    "root_from_leaf_hashes",
    # Verification
    "ConsistencyVerifier",
    "expected_proof_size",
    "verify",
]
