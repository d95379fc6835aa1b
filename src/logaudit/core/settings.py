"""
Central configuration for the log auditor.

This module provides a single, typed configuration object that reads from
environment variables (12-factor style) using pydantic-settings.

Usage:

    from logaudit.core.settings import get_settings

    settings = get_settings()
    auditor = AuditLoop.from_settings(settings)
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuditSettings(BaseSettings):
    """
    Root configuration object for the auditor.

    Every field maps to a LOGAUDIT_* environment variable.
    """

    model_config = SettingsConfigDict(env_prefix="LOGAUDIT_")

    log_url: str = Field(
        default="http://localhost:50053",
        description="Base URL of the log service serving latest roots.",
    )
    connect_timeout: float = Field(
        default=1.0,
        description="Seconds allowed for connecting to the log service.",
    )
    fetch_root_timeout: float = Field(
        default=2.0,
        description="Seconds allowed for fetching the latest log root per cycle.",
    )
    poll_interval: float = Field(
        default=5.0,
        description="Seconds between audit cycles.",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG/INFO/WARNING/ERROR).",
    )
    malformed_escalation_threshold: int = Field(
        default=3,
        description="Consecutive malformed proofs before reporting escalates to CRITICAL.",
    )

    @field_validator("connect_timeout", "fetch_root_timeout", "poll_interval")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("malformed_escalation_threshold")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        v = (v or "INFO").upper()
        if v == "WARN":
            v = "WARNING"
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"unknown log level {v!r}")
        return v


@lru_cache(maxsize=1)
def get_settings() -> AuditSettings:
    """
    Cached accessor for AuditSettings.
    """
    return AuditSettings()
