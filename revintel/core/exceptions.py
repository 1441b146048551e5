"""
Custom exceptions for the revintel research pipeline.

Provides a hierarchy of exceptions so callers can tell a missing credential
apart from a failed provider call or an unusable model answer.
"""

from typing import Any, Dict, Optional


class RevIntelError(Exception):
    """Base exception for all revintel errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RevIntelError):
    """Raised when a credential or setting required for a request is missing."""

    pass


class ExternalServiceError(RevIntelError):
    """External service is unavailable or returning errors."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(f"{service}: {message}", **kwargs)
        self.service = service
        self.status_code = status_code


class ResearchTimeoutError(RevIntelError):
    """A bounded external call exceeded its timeout."""

    pass


class QueryFailure(RevIntelError):
    """A single search query failed. Recorded in the batch, never fatal."""

    def __init__(self, query: str, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.query = query


class BudgetExceededError(QueryFailure):
    """The per-request search call budget is exhausted."""

    def __init__(self, query: str, **kwargs):
        super().__init__(query, "Search call budget exceeded", **kwargs)


class StageFailure(RevIntelError):
    """A generative stage could not produce an answer."""

    def __init__(self, stage: str, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.stage = stage


class ParseFailure(RevIntelError):
    """The synthesis stage answered, but not with a usable JSON object."""

    def __init__(self, message: str, raw_content: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.raw_content = raw_content
