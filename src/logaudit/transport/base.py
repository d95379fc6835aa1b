"""
Base interface for log fetch collaborators.

This defines the only boundary the auditor depends on:

    fetch_latest(known_tree_size, timeout) → FetchResult(root, proof)

Fetchers DO NOT:
  - verify proofs
  - touch the trusted root
  - retry

Fetchers ONLY:
  - ask the log for its latest root and a proof from known_tree_size
  - map the wire format onto LogRoot / ConsistencyProof
  - raise FetchError for any transport, timeout or protocol failure
"""

from abc import ABC, abstractmethod
from typing import Optional

from logaudit.protocol.models import FetchResult


class LogFetcher(ABC):
    @abstractmethod
    def fetch_latest(self, known_tree_size: int, timeout: Optional[float] = None) -> FetchResult:
        """
        Fetch the latest root plus a consistency proof sized for
        (known_tree_size, root.tree_size).

        When known_tree_size is 0 the proof may be empty.

        Raises:
            FetchError: On network, timeout or protocol failure.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release any held connection. Default: nothing to release."""
        return None
