"""
Merkle Hashing Primitives

RFC 6962 hashing for append-only logs.

Key features:
- SHA-256 based hashing
- Domain separation for leaves vs internal nodes
- Root of the empty tree
"""

from __future__ import annotations

import hashlib
from typing import List, Sequence


LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"

DIGEST_SIZE = hashlib.sha256().digest_size


# ===========================================================================
# Hash Functions
# ===========================================================================


def leaf_hash(data: bytes) -> bytes:
    """
    Hash a leaf.

    Leaves are prefixed with 0x00 so that a leaf can never be taken for an
    internal node (second-preimage protection).
    """
    hasher = hashlib.sha256()
    hasher.update(LEAF_PREFIX)
    hasher.update(data)
    return hasher.digest()


def node_hash(left: bytes, right: bytes) -> bytes:
    """
    Hash an internal node.

    Internal nodes are prefixed with 0x01. Child order is significant.
    """
    hasher = hashlib.sha256()
    hasher.update(NODE_PREFIX)
    hasher.update(left)
    hasher.update(right)
    return hasher.digest()


def empty_root() -> bytes:
    """Root hash of a tree with no leaves."""
    return hashlib.sha256(b"").digest()


def _split_point(n: int) -> int:
    """Largest power of two strictly less than n (n > 1)."""
    return 1 << ((n - 1).bit_length() - 1)


def root_from_leaf_hashes(leaf_hashes: Sequence[bytes]) -> bytes:
    """
    Compute the Merkle tree hash over already-hashed leaves.

    Unlike a pairwise build, an odd node is never duplicated: the tree is
    split at the largest power of two below its size.
    """
    if len(leaf_hashes) == 0:
        return empty_root()

    level: List[bytes] = list(leaf_hashes)
    if len(level) == 1:
        return level[0]

    k = _split_point(len(level))
    return node_hash(root_from_leaf_hashes(level[:k]), root_from_leaf_hashes(level[k:]))
