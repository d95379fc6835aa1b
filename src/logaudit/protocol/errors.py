from typing import Any, Dict, Optional

from .enums import ErrorCode


class AuditError(Exception):
    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or ErrorCode.INTERNAL_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": str(self)}


class FetchError(AuditError):
    """Raised when the latest root and proof could not be retrieved."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FETCH_ERROR)


class VerificationError(AuditError):
    """Raised when a candidate root cannot be proven consistent."""


class MalformedProof(VerificationError):
    """Raised when a proof's shape does not match the tree sizes."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.MALFORMED_PROOF)


class ConsistencyMismatch(VerificationError):
    """Raised when the log appears to have rewritten, truncated or forked history."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONSISTENCY_MISMATCH)
