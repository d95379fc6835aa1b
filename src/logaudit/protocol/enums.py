from enum import Enum


class ErrorCode(str, Enum):
    FETCH_ERROR = "fetch_error"
    MALFORMED_PROOF = "malformed_proof"
    CONSISTENCY_MISMATCH = "consistency_mismatch"
    INTERNAL_ERROR = "internal_error"


class AdvanceOutcome(str, Enum):
    """Result of offering a candidate root to the trusted root store."""

    ADVANCED = "advanced"
    UNCHANGED = "unchanged"  # identical refresh
    NOT_ADVANCED = "not_advanced"  # consistent, but revision did not increase


class AuditState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    VERIFYING = "verifying"
