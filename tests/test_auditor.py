"""
Tests for the audit loop.

Test coverage:
1. Single cycle: advance, refresh, fetch failure, integrity failure
2. State machine transitions
3. Loop driven by ticks until cancellation
4. Reporting (logging reporter severities and escalation)
5. Construction from settings
"""

import json
import logging
from types import SimpleNamespace
from typing import List, Optional
from unittest import mock

import pytest
import requests

from logaudit.core.auditor import AuditLoop
from logaudit.core.reporting import AuditReporter, LoggingReporter
from logaudit.core.settings import AuditSettings
from logaudit.core.store import TrustedRootStore
from logaudit.core import ticker as ticker_module
from logaudit.core.ticker import Ticker
from logaudit.protocol.enums import AdvanceOutcome, AuditState
from logaudit.protocol.errors import (
    ConsistencyMismatch,
    FetchError,
    MalformedProof,
    VerificationError,
)
from logaudit.protocol.models import ConsistencyProof, FetchResult
from logaudit.transport.base import LogFetcher
from logaudit.transport.http import HTTPLogClient

from reference_tree import flip_byte, make_tree


# ===========================================================================
# Test doubles
# ===========================================================================


class ScriptedFetcher(LogFetcher):
    """Serves scripted results (or raises scripted errors) in order."""

    def __init__(self, script):
        self._script = list(script)
        self.calls: List[tuple] = []
        self.closed = False
        self.observed_states: List[AuditState] = []
        self.loop: Optional[AuditLoop] = None

    def fetch_latest(self, known_tree_size, timeout=None):
        self.calls.append((known_tree_size, timeout))
        if self.loop is not None:
            self.observed_states.append(self.loop.state)
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


class GrowingLogFetcher(LogFetcher):
    """Honest log that grows by `step` leaves per fetch."""

    def __init__(self, tree, step: int):
        self._tree = tree
        self._step = step
        self._size = 0
        self.known_sizes: List[int] = []

    def fetch_latest(self, known_tree_size, timeout=None):
        self.known_sizes.append(known_tree_size)
        self._size = min(self._size + self._step, len(self._tree))
        return FetchResult(
            root=self._tree.log_root(self._size),
            proof=ConsistencyProof.of(self._tree.consistency_proof(known_tree_size, self._size)),
        )


class CountingTicker(Ticker):
    """Delivers `ticks` ticks without sleeping, then reports cancellation."""

    def __init__(self, ticks: int):
        super().__init__(interval=0.01)
        self._remaining = ticks

    def wait(self) -> bool:
        if self.cancelled or self._remaining <= 0:
            return False
        self._remaining -= 1
        return True


class RecordingReporter(AuditReporter):
    def __init__(self):
        self.events = []

    def root_advanced(self, old_size, new_size, revision):
        self.events.append(("advanced", old_size, new_size, revision))

    def fetch_failed(self, err):
        self.events.append(("fetch_failed", err))

    def verification_failed(self, err):
        self.events.append(("verification_failed", err))


def _result(tree, old_size, new_size, revision=None):
    return FetchResult(
        root=tree.log_root(new_size, revision=revision),
        proof=ConsistencyProof.of(tree.consistency_proof(old_size, new_size)),
    )


def _http_response(payload):
    resp = requests.Response()
    resp.status_code = 200
    resp._content = json.dumps(payload).encode("utf-8")
    return resp


@pytest.fixture
def reporter():
    return RecordingReporter()


# ===========================================================================
# Single cycle
# ===========================================================================


class TestCheckLatest:
    """Tests for AuditLoop.check_latest."""

    def test_advances_and_reports(self, tree16, reporter):
        fetcher = ScriptedFetcher([_result(tree16, 0, 4), _result(tree16, 4, 7)])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter)

        first = loop.check_latest()
        second = loop.check_latest()

        assert first.outcome is AdvanceOutcome.ADVANCED
        assert second.outcome is AdvanceOutcome.ADVANCED
        assert second.ok
        assert loop.trusted_root().tree_size == 7
        assert reporter.events == [("advanced", 0, 4, 4), ("advanced", 4, 7, 7)]

    def test_supplies_trusted_size_and_timeout(self, tree16, reporter):
        fetcher = ScriptedFetcher([_result(tree16, 0, 4), _result(tree16, 4, 9)])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter, fetch_timeout=2.5)

        loop.check_latest()
        loop.check_latest()

        assert fetcher.calls == [(0, 2.5), (4, 2.5)]

    def test_refresh_is_not_reported(self, tree16, reporter):
        fetcher = ScriptedFetcher([_result(tree16, 0, 4), _result(tree16, 4, 4)])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter)

        loop.check_latest()
        result = loop.check_latest()

        assert result.outcome is AdvanceOutcome.UNCHANGED
        assert result.ok
        assert len(reporter.events) == 1

    def test_stale_revision_not_adopted(self, tree16, reporter):
        fetcher = ScriptedFetcher([_result(tree16, 0, 4, revision=5), _result(tree16, 4, 7, revision=5)])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter)

        loop.check_latest()
        result = loop.check_latest()

        assert result.outcome is AdvanceOutcome.NOT_ADVANCED
        assert result.ok
        assert loop.trusted_root().tree_size == 4

    def test_fetch_failure_is_transient(self, tree16, reporter):
        err = FetchError("connection refused")
        fetcher = ScriptedFetcher([_result(tree16, 0, 4), err, _result(tree16, 4, 6)])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter)

        loop.check_latest()
        failed = loop.check_latest()

        assert failed.error is err
        assert not failed.integrity_failure
        assert failed.outcome is None
        assert loop.trusted_root().tree_size == 4
        assert reporter.events[1] == ("fetch_failed", err)

        recovered = loop.check_latest()
        assert recovered.outcome is AdvanceOutcome.ADVANCED
        assert loop.trusted_root().tree_size == 6

    def test_mismatch_is_integrity_failure(self, tree16, reporter):
        bad = _result(tree16, 4, 7)
        tampered = FetchResult(
            root=bad.root,
            proof=ConsistencyProof.of([flip_byte(bad.proof[0], 3)]),
        )
        fetcher = ScriptedFetcher([_result(tree16, 0, 4), tampered])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter)

        loop.check_latest()
        result = loop.check_latest()

        assert result.integrity_failure
        assert isinstance(result.error, ConsistencyMismatch)
        assert loop.trusted_root().tree_size == 4
        assert reporter.events[-1][0] == "verification_failed"

    def test_malformed_proof_reported(self, tree16, reporter):
        fetcher = ScriptedFetcher([_result(tree16, 0, 4), FetchResult(root=tree16.log_root(7))])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter)

        loop.check_latest()
        result = loop.check_latest()

        assert isinstance(result.error, MalformedProof)
        assert loop.trusted_root().tree_size == 4

    def test_state_transitions(self, tree16, reporter):
        fetcher = ScriptedFetcher([_result(tree16, 0, 4)])
        seen = []

        def verifier(old, new, proof):
            seen.append(loop.state)
            return new

        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter, verifier=verifier)
        fetcher.loop = loop

        assert loop.state is AuditState.IDLE
        loop.check_latest()

        assert fetcher.observed_states == [AuditState.FETCHING]
        assert seen == [AuditState.VERIFYING]
        assert loop.state is AuditState.IDLE

    def test_state_idle_after_failures(self, tree16, reporter):
        fetcher = ScriptedFetcher([FetchError("down"), FetchResult(root=tree16.log_root(3))])
        store = TrustedRootStore(tree16.log_root(2))
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter, store=store)

        loop.check_latest()
        assert loop.state is AuditState.IDLE
        loop.check_latest()
        assert loop.state is AuditState.IDLE

    def test_state_idle_after_unexpected_error(self, reporter):
        loop = AuditLoop(ScriptedFetcher([RuntimeError("bug")]), CountingTicker(0), reporter=reporter)

        with pytest.raises(RuntimeError):
            loop.check_latest()

        assert loop.state is AuditState.IDLE
        assert reporter.events == []

    def test_bad_proof_body_is_fetch_failure(self, tree16, reporter):
        session = mock.create_autospec(requests.Session, instance=True)
        session.post.return_value = _http_response(
            {"root": tree16.log_root(4).to_dict(), "proof": ["AAAA"]}
        )
        loop = AuditLoop(
            HTTPLogClient("http://log.test", session=session), Ticker(1.0), reporter=reporter
        )

        result = loop.check_latest()

        assert isinstance(result.error, FetchError)
        assert not result.integrity_failure
        assert loop.state is AuditState.IDLE
        assert loop.trusted_root().tree_size == 0
        assert reporter.events[0][0] == "fetch_failed"

        session.post.return_value = _http_response(
            {"root": tree16.log_root(4).to_dict(), "proof": {"hashes": []}}
        )
        assert loop.check_latest().outcome is AdvanceOutcome.ADVANCED

    def test_to_dict(self, tree16, reporter):
        loop = AuditLoop(ScriptedFetcher([FetchError("down")]), CountingTicker(0), reporter=reporter)

        data = loop.check_latest().to_dict()

        assert data["outcome"] is None
        assert data["error"] == {"code": "fetch_error", "message": "down"}
        assert data["trustedRoot"]["treeSize"] == 0


# ===========================================================================
# Loop
# ===========================================================================


class TestRun:
    """Tests for AuditLoop.run."""

    def test_runs_one_cycle_per_tick(self, reporter):
        tree = make_tree(16)
        fetcher = GrowingLogFetcher(tree, step=3)
        loop = AuditLoop(fetcher, CountingTicker(5), reporter=reporter)

        loop.run()

        assert fetcher.known_sizes == [0, 3, 6, 9, 12]
        assert loop.trusted_root() == tree.log_root(15)
        assert [e[2] for e in reporter.events] == [3, 6, 9, 12, 15]

    def test_continues_after_failures(self, tree16, reporter):
        script = [
            _result(tree16, 0, 4),
            FetchError("timeout"),
            FetchResult(root=tree16.log_root(2)),  # rollback
            _result(tree16, 4, 8),
        ]
        loop = AuditLoop(ScriptedFetcher(script), CountingTicker(4), reporter=reporter)

        loop.run()

        kinds = [e[0] for e in reporter.events]
        assert kinds == ["advanced", "fetch_failed", "verification_failed", "advanced"]
        assert loop.trusted_root().tree_size == 8

    def test_stop_cancels_before_next_tick(self, tree16, reporter):
        fetcher = ScriptedFetcher([_result(tree16, 0, 4)])
        ticker = CountingTicker(10)

        def verifier(old, new, proof):
            loop.stop()
            return new

        loop = AuditLoop(fetcher, ticker, reporter=reporter, verifier=verifier)
        loop.run()

        assert len(fetcher.calls) == 1
        assert ticker.cancelled

    def test_close_releases_fetcher(self, reporter):
        fetcher = ScriptedFetcher([])
        loop = AuditLoop(fetcher, CountingTicker(0), reporter=reporter)

        loop.close()

        assert fetcher.closed


class TestTicker:
    """Tests for Ticker."""

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            Ticker(0)

    def test_tick_then_cancel(self):
        ticker = Ticker(0.001)

        assert ticker.wait() is True
        ticker.cancel()
        assert ticker.wait() is False
        assert ticker.cancelled

    def test_fixed_rate_schedule(self, monkeypatch):
        """Cycle time is absorbed by the next wait; overrun ticks are dropped."""
        clock = [100.0]
        waits = []

        class RecordingEvent:
            def wait(self, timeout):
                waits.append(timeout)
                return False

            def is_set(self):
                return False

        monkeypatch.setattr(ticker_module, "time", SimpleNamespace(monotonic=lambda: clock[0]))
        ticker = Ticker(5.0)
        ticker._cancelled = RecordingEvent()

        assert ticker.wait()
        clock[0] = 107.0  # tick at 105, cycle took 2s
        assert ticker.wait()
        clock[0] = 123.0  # cycle overran the tick at 115
        assert ticker.wait()
        clock[0] = 124.0
        assert ticker.wait()

        assert waits == [5.0, 3.0, 0.0, 1.0]


# ===========================================================================
# Reporting
# ===========================================================================


class TestLoggingReporter:
    """Tests for LoggingReporter."""

    @pytest.fixture
    def log(self):
        return logging.getLogger("logaudit.test.reporter")

    def test_advance_logged_at_info(self, log, caplog):
        caplog.set_level(logging.DEBUG, logger=log.name)
        LoggingReporter(log).root_advanced(4, 7, 12)

        assert caplog.records[-1].levelno == logging.INFO
        assert "revision=12 with size=7" in caplog.records[-1].getMessage()

    def test_fetch_failure_logged_at_warning(self, log, caplog):
        caplog.set_level(logging.DEBUG, logger=log.name)
        LoggingReporter(log).fetch_failed(FetchError("down"))

        assert caplog.records[-1].levelno == logging.WARNING

    def test_mismatch_logged_at_critical(self, log, caplog):
        caplog.set_level(logging.DEBUG, logger=log.name)
        LoggingReporter(log).verification_failed(ConsistencyMismatch("forked"))

        assert caplog.records[-1].levelno == logging.CRITICAL
        assert "forked" in caplog.records[-1].getMessage()

    def test_other_verification_error_logged_at_error(self, log, caplog):
        caplog.set_level(logging.DEBUG, logger=log.name)
        LoggingReporter(log).verification_failed(VerificationError("odd"))

        assert caplog.records[-1].levelno == logging.ERROR

    def test_repeated_malformed_proofs_escalate(self, log, caplog):
        caplog.set_level(logging.DEBUG, logger=log.name)
        reporter = LoggingReporter(log, malformed_escalation_threshold=3)

        for _ in range(3):
            reporter.verification_failed(MalformedProof("short"))

        levels = [r.levelno for r in caplog.records]
        assert levels == [logging.ERROR, logging.ERROR, logging.CRITICAL]
        assert reporter.consecutive_malformed == 3

    def test_advance_resets_malformed_streak(self, log, caplog):
        caplog.set_level(logging.DEBUG, logger=log.name)
        reporter = LoggingReporter(log, malformed_escalation_threshold=2)

        reporter.verification_failed(MalformedProof("short"))
        reporter.root_advanced(1, 2, 2)
        reporter.verification_failed(MalformedProof("short"))

        assert reporter.consecutive_malformed == 1
        assert logging.CRITICAL not in [r.levelno for r in caplog.records]

    def test_rejects_zero_threshold(self):
        with pytest.raises(ValueError):
            LoggingReporter(malformed_escalation_threshold=0)


# ===========================================================================
# Settings
# ===========================================================================


class TestFromSettings:
    """Tests for AuditLoop.from_settings."""

    def test_builds_http_client(self):
        settings = AuditSettings(
            log_url="http://log.example:8080/",
            connect_timeout=0.5,
            fetch_root_timeout=3.0,
            poll_interval=7.0,
        )

        loop = AuditLoop.from_settings(settings)
        try:
            assert isinstance(loop._fetcher, HTTPLogClient)
            assert loop._fetcher.url == "http://log.example:8080/latest-root"
            assert loop._ticker.interval == 7.0
            assert loop._fetch_timeout == 3.0
            assert loop.trusted_root().tree_size == 0
        finally:
            loop.close()

    def test_uses_given_fetcher(self):
        fetcher = ScriptedFetcher([])

        loop = AuditLoop.from_settings(AuditSettings(), fetcher=fetcher)

        assert loop._fetcher is fetcher
