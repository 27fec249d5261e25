"""Custom exceptions for the Planning Poker App infrastructure.

Defines the exception hierarchy raised before synth and by the operator CLI.
"""

from __future__ import annotations

from typing import Any


class PlanningPokerInfraError(Exception):
    """Base exception for all infrastructure errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(PlanningPokerInfraError, ValueError):
    """Raised when required deployment settings are missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None, **kwargs):
        kwargs.setdefault("error_code", "CONFIG")
        super().__init__(message, **kwargs)
        self.missing = list(missing or [])
        self.details["missing"] = self.missing


class PipelineStatusError(PlanningPokerInfraError):
    """Raised when the deployed pipeline state cannot be read."""

    def __init__(self, message: str, pipeline_name: str, **kwargs):
        kwargs.setdefault("error_code", "PIPELINE_STATUS")
        super().__init__(message, **kwargs)
        self.pipeline_name = pipeline_name
        self.details["pipeline_name"] = pipeline_name
