from .core.auditor import AuditLoop, CycleResult
from .core.store import TrustedRootStore
from .core.ticker import Ticker
from .merkle.consistency import ConsistencyVerifier, verify
from .protocol import (
    AdvanceOutcome,
    ConsistencyMismatch,
    ConsistencyProof,
    FetchError,
    FetchResult,
    LogRoot,
    MalformedProof,
    VerificationError,
)
from .transport.http import HTTPLogClient

__version__ = "0.1.0"

__all__ = [
    "AuditLoop",
    "CycleResult",
    "TrustedRootStore",
    "Ticker",
    "ConsistencyVerifier",
    "verify",
    "AdvanceOutcome",
    "ConsistencyMismatch",
    "ConsistencyProof",
    "FetchError",
    "FetchResult",
    "LogRoot",
    "MalformedProof",
    "VerificationError",
    "HTTPLogClient",
]
