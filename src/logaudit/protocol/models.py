"""
Log audit data models.

Models:
- LogRoot: checkpoint of the log at a given size
- ConsistencyProof: ordered sibling hashes linking two checkpoints
- FetchResult: what the log fetch collaborator hands back per cycle

Digests are raw bytes in memory and base64 on the wire.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"invalid base64 digest: {e}") from e


# ===========================================================================
# Log Root
# ===========================================================================


@dataclass(frozen=True)
class LogRoot:
    """
    Checkpoint of an append-only log.

    Attributes:
        tree_size: Number of leaves committed to
        root_hash: Merkle tree hash over those leaves
        revision: Logical version counter, expected to increase
        timestamp_nanos: When the log produced the root (optional)
        metadata: Opaque log-specific bytes
    """
    tree_size: int
    root_hash: bytes
    revision: int = 0
    timestamp_nanos: Optional[int] = None
    metadata: bytes = b""

    def __post_init__(self) -> None:
        if self.tree_size < 0:
            raise ValueError(f"tree_size must be non-negative, got {self.tree_size}")
        if self.revision < 0:
            raise ValueError(f"revision must be non-negative, got {self.revision}")
        if not isinstance(self.root_hash, (bytes, bytearray)):
            raise TypeError("root_hash must be bytes")
        object.__setattr__(self, "root_hash", bytes(self.root_hash))
        object.__setattr__(self, "metadata", bytes(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "treeSize": self.tree_size,
            "rootHash": _b64encode(self.root_hash),
            "revision": self.revision,
            "timestampNanos": self.timestamp_nanos,
            "metadata": _b64encode(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogRoot":
        return cls(
            tree_size=int(data["treeSize"]),
            root_hash=_b64decode(data["rootHash"]),
            revision=int(data.get("revision", 0)),
            timestamp_nanos=data.get("timestampNanos"),
            metadata=_b64decode(data.get("metadata") or ""),
        )

    def describe(self) -> str:
        return f"size={self.tree_size} revision={self.revision} hash={self.root_hash.hex()[:16]}"


# ===========================================================================
# Consistency Proof
# ===========================================================================


@dataclass(frozen=True)
class ConsistencyProof:
    """
    Ordered sibling hashes proving one tree size is a prefix of another.

    The number and content of hashes is fixed by (old size, new size).
    """
    hashes: Tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "hashes", tuple(bytes(h) for h in self.hashes))

    def __len__(self) -> int:
        return len(self.hashes)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.hashes)

    def __getitem__(self, index: int) -> bytes:
        return self.hashes[index]

    @classmethod
    def of(cls, hashes: Sequence[bytes]) -> "ConsistencyProof":
        return cls(hashes=tuple(hashes))

    def to_dict(self) -> Dict[str, Any]:
        return {"hashes": [_b64encode(h) for h in self.hashes]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsistencyProof":
        if not isinstance(data, dict):
            raise TypeError(f"proof must be an object, got {type(data).__name__}")
        encoded: List[str] = data.get("hashes") or []
        if not isinstance(encoded, list):
            raise TypeError(f"proof hashes must be a list, got {type(encoded).__name__}")
        return cls(hashes=tuple(_b64decode(h) for h in encoded))


# ===========================================================================
# Fetch Result
# ===========================================================================


@dataclass(frozen=True)
class FetchResult:
    """Latest root plus a proof sized for (known tree size, root.tree_size)."""
    root: LogRoot
    proof: ConsistencyProof = field(default_factory=ConsistencyProof)
