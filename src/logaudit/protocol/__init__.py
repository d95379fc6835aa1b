from .enums import AdvanceOutcome, AuditState, ErrorCode
from .errors import (
    AuditError,
    ConsistencyMismatch,
    FetchError,
    MalformedProof,
    VerificationError,
)
from .models import ConsistencyProof, FetchResult, LogRoot

__all__ = [
    "AdvanceOutcome",
    "AuditState",
    "ErrorCode",
    "AuditError",
    "FetchError",
    "VerificationError",
    "MalformedProof",
    "ConsistencyMismatch",
    "LogRoot",
    "ConsistencyProof",
    "FetchResult",
]
