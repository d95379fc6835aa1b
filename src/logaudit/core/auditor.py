"""
Audit loop.

Periodically checks that the remote log is append-only:

    IDLE → FETCHING → VERIFYING → IDLE

Each cycle fetches the latest root plus a consistency proof from the
currently trusted size, verifies it and advances the trusted root. Fetch
failures are transient and only reported. Verification failures are
integrity signals: they are reported distinctly and the trusted root never
moves past them.

At most one cycle is in flight; the trusted root is only written after a
fully completed verification, so cancellation can never corrupt it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from logaudit.core.reporting import AuditReporter, LoggingReporter
from logaudit.core.settings import AuditSettings
from logaudit.core.store import TrustedRootStore, VerifierFn
from logaudit.core.ticker import Ticker
from logaudit.protocol.enums import AdvanceOutcome, AuditState
from logaudit.protocol.errors import AuditError, FetchError, VerificationError
from logaudit.protocol.models import LogRoot
from logaudit.transport.base import LogFetcher
from logaudit.transport.http import HTTPLogClient

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """
    Outcome of a single fetch-and-verify cycle.

    Attributes:
        outcome: How the trusted root changed (None if the cycle failed)
        trusted_root: Trusted root after the cycle
        error: The fetch or verification error, if any
    """
    outcome: Optional[AdvanceOutcome]
    trusted_root: LogRoot
    error: Optional[AuditError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def integrity_failure(self) -> bool:
        return isinstance(self.error, VerificationError)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value if self.outcome else None,
            "trustedRoot": self.trusted_root.to_dict(),
            "error": self.error.to_dict() if self.error else None,
        }


class AuditLoop:
    """
    Drives periodic consistency checks against a remote log.

    Collaborators:
        fetcher: LogFetcher that returns (root, proof)
        ticker: tick/cancellation source
        reporter: receives advance and failure events
        store: owns the trusted root
    """

    def __init__(
        self,
        fetcher: LogFetcher,
        ticker: Ticker,
        *,
        store: Optional[TrustedRootStore] = None,
        reporter: Optional[AuditReporter] = None,
        verifier: Optional[VerifierFn] = None,
        fetch_timeout: Optional[float] = None,
    ) -> None:
        self._fetcher = fetcher
        self._ticker = ticker
        self._store = store or TrustedRootStore()
        self._reporter = reporter or LoggingReporter()
        self._verifier = verifier
        self._fetch_timeout = fetch_timeout
        self._state = AuditState.IDLE

    @classmethod
    def from_settings(
        cls,
        settings: AuditSettings,
        fetcher: Optional[LogFetcher] = None,
    ) -> "AuditLoop":
        if fetcher is None:
            fetcher = HTTPLogClient(
                settings.log_url,
                connect_timeout=settings.connect_timeout,
                fetch_timeout=settings.fetch_root_timeout,
            )
        return cls(
            fetcher,
            Ticker(settings.poll_interval),
            reporter=LoggingReporter(
                malformed_escalation_threshold=settings.malformed_escalation_threshold,
            ),
            fetch_timeout=settings.fetch_root_timeout,
        )

    @property
    def state(self) -> AuditState:
        return self._state

    @property
    def store(self) -> TrustedRootStore:
        return self._store

    def trusted_root(self) -> LogRoot:
        return self._store.current()

    # ------------------------------------------------------------------
    # Single cycle
    # ------------------------------------------------------------------
    def check_latest(self) -> CycleResult:
        """Run one fetch-and-verify cycle. Never raises AuditError."""
        trusted = self._store.current()

        try:
            self._state = AuditState.FETCHING
            try:
                fetched = self._fetcher.fetch_latest(trusted.tree_size, self._fetch_timeout)
            except FetchError as e:
                self._reporter.fetch_failed(e)
                return CycleResult(outcome=None, trusted_root=trusted, error=e)

            self._state = AuditState.VERIFYING
            try:
                outcome = self._store.try_advance(fetched.root, fetched.proof, self._verifier)
            except VerificationError as e:
                self._reporter.verification_failed(e)
                return CycleResult(outcome=None, trusted_root=self._store.current(), error=e)
        finally:
            self._state = AuditState.IDLE

        current = self._store.current()
        if outcome is AdvanceOutcome.ADVANCED:
            self._reporter.root_advanced(trusted.tree_size, current.tree_size, current.revision)
        return CycleResult(outcome=outcome, trusted_root=current)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    def run(self) -> None:
        """Audit on every tick until stop() is called."""
        logger.info("auditor running, poll interval: %.3fs", self._ticker.interval)
        while self._ticker.wait():
            logger.debug("Tick")
            self.check_latest()
        logger.info("cancelled - finishing")

    def stop(self) -> None:
        self._ticker.cancel()

    def close(self) -> None:
        self._fetcher.close()
