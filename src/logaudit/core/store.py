"""
Trusted root store.

Holds the single last-verified LogRoot. The only write path is
try_advance(), which replaces the root in one assignment after the
verifier has accepted the candidate. Readers never observe a partial update.

Not designed for concurrent writers: one auditor owns one store.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from logaudit.merkle.consistency import ConsistencyVerifier
from logaudit.merkle.hashing import empty_root
from logaudit.protocol.enums import AdvanceOutcome
from logaudit.protocol.models import LogRoot

logger = logging.getLogger(__name__)

VerifierFn = Callable[[LogRoot, LogRoot, Sequence[bytes]], LogRoot]


def initial_root() -> LogRoot:
    """The empty-log root every auditor starts out trusting."""
    return LogRoot(tree_size=0, root_hash=empty_root(), revision=0)


class TrustedRootStore:
    def __init__(
        self,
        root: Optional[LogRoot] = None,
        verifier: Optional[VerifierFn] = None,
    ) -> None:
        self._root = root or initial_root()
        self._verifier: VerifierFn = verifier or ConsistencyVerifier()

    def current(self) -> LogRoot:
        """Currently trusted root (immutable snapshot)."""
        return self._root

    def try_advance(
        self,
        candidate: LogRoot,
        proof: Sequence[bytes],
        verifier: Optional[VerifierFn] = None,
    ) -> AdvanceOutcome:
        """
        Replace the trusted root with candidate iff it is proven consistent
        and its revision strictly increases.

        Raises:
            VerificationError: If the verifier rejects the candidate. The
                trusted root is left untouched.
        """
        current = self._root
        verify = verifier or self._verifier

        verified = verify(current, candidate, proof)

        if verified.revision > current.revision:
            self._root = verified
            logger.debug(
                "Trusted root advanced: %s -> %s", current.describe(), verified.describe()
            )
            return AdvanceOutcome.ADVANCED

        if (
            verified.tree_size == current.tree_size
            and verified.root_hash == current.root_hash
        ):
            return AdvanceOutcome.UNCHANGED

        logger.debug(
            "Consistent root not adopted, revision %d does not advance past %d",
            verified.revision,
            current.revision,
        )
        return AdvanceOutcome.NOT_ADVANCED
