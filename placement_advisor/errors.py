"""Exceptions raised by the placement advisor."""

from __future__ import annotations


class AdvisorError(Exception):
    """Base class for advisor errors."""


class AdvisorValidationError(AdvisorError, ValueError):
    """Request or window input rejected before any scoring."""


class ConfigError(AdvisorValidationError):
    """Invalid configuration file or value."""


class RecordNotFoundError(AdvisorError, LookupError):
    """A requested job or schedule does not exist in the snapshot source."""


class StaleSuggestionError(AdvisorError, RuntimeError):
    """A suggestion no longer passes feasibility against current data."""

    def __init__(self, message: str, reasons: list[str] | None = None):
        super().__init__(message)
        self.reasons = list(reasons or [])
