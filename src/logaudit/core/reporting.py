"""
Audit outcome reporting.

Reporters receive fire-and-forget events from the audit loop:

    root_advanced(old_size, new_size, revision)
    fetch_failed(err)
    verification_failed(err)

LoggingReporter maps them onto log severities. Integrity failures
(ConsistencyMismatch) are always CRITICAL; malformed proofs are ERROR and
escalate to CRITICAL once they repeat back to back.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from logaudit.protocol.errors import (
    ConsistencyMismatch,
    FetchError,
    MalformedProof,
    VerificationError,
)


class AuditReporter(ABC):
    @abstractmethod
    def root_advanced(self, old_size: int, new_size: int, revision: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def fetch_failed(self, err: FetchError) -> None:
        raise NotImplementedError

    @abstractmethod
    def verification_failed(self, err: VerificationError) -> None:
        raise NotImplementedError


class LoggingReporter(AuditReporter):
    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        malformed_escalation_threshold: int = 3,
    ) -> None:
        if malformed_escalation_threshold < 1:
            raise ValueError("malformed_escalation_threshold must be >= 1")
        self._log = logger or logging.getLogger("logaudit.audit")
        self._threshold = malformed_escalation_threshold
        self._consecutive_malformed = 0

    @property
    def consecutive_malformed(self) -> int:
        return self._consecutive_malformed

    def root_advanced(self, old_size: int, new_size: int, revision: int) -> None:
        self._consecutive_malformed = 0
        self._log.info(
            "updated trusted root to revision=%d with size=%d (was size=%d)",
            revision,
            new_size,
            old_size,
        )

    def fetch_failed(self, err: FetchError) -> None:
        self._log.warning("error fetching latest root: %s", err)

    def verification_failed(self, err: VerificationError) -> None:
        if isinstance(err, MalformedProof):
            self._consecutive_malformed += 1
            if self._consecutive_malformed >= self._threshold:
                self._log.critical(
                    "malformed consistency proof (%d in a row): %s",
                    self._consecutive_malformed,
                    err,
                )
            else:
                self._log.error("malformed consistency proof: %s", err)
            return

        self._consecutive_malformed = 0
        if isinstance(err, ConsistencyMismatch):
            self._log.critical("LOG CONSISTENCY FAILURE: %s", err)
        else:
            self._log.error("failed to verify log root: %s", err)
