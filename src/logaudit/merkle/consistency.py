"""
Consistency Proof Verification

Proves that a newer log root contains, as a prefix, every leaf committed to by
an older one (RFC 6962 / RFC 9162 consistency proofs).

CRITICAL INVARIANTS:
1. A log root never shrinks: a smaller new tree is always a mismatch
2. The proof length is fixed by (old size, new size) and checked first
3. Both the old and the new root hash must be reconstructed exactly
4. Verification never transforms its inputs; it only attests to them
"""

from __future__ import annotations

import hmac
import logging
from typing import List, Sequence, Tuple

from logaudit.merkle.hashing import DIGEST_SIZE, node_hash
from logaudit.protocol.errors import ConsistencyMismatch, MalformedProof
from logaudit.protocol.models import LogRoot

logger = logging.getLogger(__name__)


# ===========================================================================
# Proof Shape
# ===========================================================================


def _is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def expected_proof_size(old_size: int, new_size: int) -> int:
    """
    Number of hashes in a consistency proof between two tree sizes.

    Sizes where nothing needs proving (empty old tree, equal sizes) need an
    empty proof.
    """
    if old_size < 0 or new_size < old_size:
        raise ValueError(f"invalid tree sizes: old={old_size} new={new_size}")
    if old_size == 0 or old_size == new_size:
        return 0

    index = old_size - 1
    inner = (index ^ (new_size - 1)).bit_length()
    border = bin(index >> inner).count("1")

    # Nodes below the lowest set bit of old_size are shared by both trees.
    shift = (old_size & -old_size).bit_length() - 1
    size = inner - shift + border
    if not _is_power_of_two(old_size):
        # The old root is not a single node of the new tree; its first
        # component is sent in the proof.
        size += 1
    return size


def _check_digest(name: str, digest: bytes) -> None:
    if len(digest) != DIGEST_SIZE:
        raise MalformedProof(
            f"{name} has length {len(digest)}, expected {DIGEST_SIZE}"
        )


# ===========================================================================
# Verification
# ===========================================================================


def verify(old_root: LogRoot, new_root: LogRoot, proof: Sequence[bytes]) -> LogRoot:
    """
    Verify that new_root is an append-only extension of old_root.

    Args:
        old_root: The currently trusted root
        new_root: The claimed latest root
        proof: Consistency proof hashes for (old size, new size)

    Returns:
        new_root, unchanged

    Raises:
        MalformedProof: If the proof's shape does not match the tree sizes
        ConsistencyMismatch: If the tree shrank or a reconstructed root differs
    """
    old_size = old_root.tree_size
    new_size = new_root.tree_size
    hashes: List[bytes] = list(proof)

    if new_size < old_size:
        raise ConsistencyMismatch(
            f"log shrank from size {old_size} to {new_size}"
        )

    _check_digest("new root hash", new_root.root_hash)

    if old_size == 0:
        if hashes:
            raise MalformedProof(
                f"expected empty proof from an empty tree, got {len(hashes)} hashes"
            )
        return new_root

    expected = expected_proof_size(old_size, new_size)
    if len(hashes) != expected:
        raise MalformedProof(
            f"proof for sizes ({old_size}, {new_size}) has {len(hashes)} hashes, "
            f"expected {expected}"
        )

    for i, h in enumerate(hashes):
        _check_digest(f"proof hash {i}", h)
    _check_digest("old root hash", old_root.root_hash)

    if old_size == new_size:
        if not hmac.compare_digest(old_root.root_hash, new_root.root_hash):
            raise ConsistencyMismatch(
                f"root hash changed at unchanged size {new_size}"
            )
        return new_root

    old_hash, new_hash = _reconstruct_roots(old_root.root_hash, old_size, new_size, hashes)

    if not hmac.compare_digest(old_hash, old_root.root_hash):
        raise ConsistencyMismatch(
            f"history before size {old_size} was rewritten: "
            f"reconstructed old root {old_hash.hex()} != trusted {old_root.root_hash.hex()}"
        )
    if not hmac.compare_digest(new_hash, new_root.root_hash):
        raise ConsistencyMismatch(
            f"proof does not lead to claimed root at size {new_size}: "
            f"reconstructed {new_hash.hex()} != claimed {new_root.root_hash.hex()}"
        )

    logger.debug("Consistency verified: %d -> %d", old_size, new_size)
    return new_root


def _reconstruct_roots(
    old_hash: bytes,
    old_size: int,
    new_size: int,
    proof: List[bytes],
) -> Tuple[bytes, bytes]:
    """
    Walk the proof from the old tree's rightmost node up to both roots.

    fn/sn track the index of the current node within the old and new tree
    at each level; an odd fn means the proof hash is a left sibling.
    """
    if _is_power_of_two(old_size):
        # The whole old tree is one node of the new tree.
        proof = [old_hash] + proof

    fn = old_size - 1
    sn = new_size - 1
    while fn & 1:
        fn >>= 1
        sn >>= 1

    first = proof[0]
    second = proof[0]
    for sibling in proof[1:]:
        if sn == 0:
            raise ConsistencyMismatch("proof is longer than the path to the new root")
        if fn & 1 or fn == sn:
            first = node_hash(sibling, first)
            second = node_hash(sibling, second)
            while not fn & 1 and fn != 0:
                fn >>= 1
                sn >>= 1
        else:
            second = node_hash(second, sibling)
        fn >>= 1
        sn >>= 1

    if sn != 0:
        raise ConsistencyMismatch("proof is shorter than the path to the new root")

    return first, second


# ===========================================================================
# Verifier
# ===========================================================================


class ConsistencyVerifier:
    """
    Stateless consistency verifier.

    Holds no reference to the roots or proofs it checks; callable so it can
    be handed around as a verifier function.
    """

    def verify(self, old_root: LogRoot, new_root: LogRoot, proof: Sequence[bytes]) -> LogRoot:
        return verify(old_root, new_root, proof)

    def __call__(self, old_root: LogRoot, new_root: LogRoot, proof: Sequence[bytes]) -> LogRoot:
        return verify(old_root, new_root, proof)
