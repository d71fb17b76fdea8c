"""
Analysis Errors
Every error carries a fixed user-facing message; technical detail stays in the logs.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for errors surfaced to the user as a single fixed message."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class PreconditionError(AnalysisError):
    """A required input is missing; nothing was dispatched."""


class UnsupportedMediaError(AnalysisError):
    """An uploaded file is not of an accepted kind."""


class ReadError(AnalysisError):
    """An uploaded file could not be read or decoded."""


class MalformedResponseError(AnalysisError):
    """A structured model response did not match the requested shape."""


class AnalysisFailedError(AnalysisError):
    """The model call itself failed."""
