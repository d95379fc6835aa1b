from .auditor import AuditLoop, CycleResult
from .reporting import AuditReporter, LoggingReporter
from .settings import AuditSettings, get_settings
from .store import TrustedRootStore, initial_root
from .ticker import Ticker

__all__ = [
    "AuditLoop",
    "CycleResult",
    "AuditReporter",
    "LoggingReporter",
    "AuditSettings",
    "get_settings",
    "TrustedRootStore",
    "initial_root",
    "Ticker",
]
