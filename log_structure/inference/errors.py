"""Errors raised while finding the structure of a log sample.

Every error carries the explanation trail collected up to the point of failure,
so callers can show *why* detection failed alongside the message itself.
"""


class StructureFinderError(ValueError):
    """Base class for all structure finding failures."""

    def __init__(self, message, explanation=None, details=None):
        super().__init__(message)
        self.explanation = tuple(explanation or ())
        self.details = details or {}


class NoTimestampFoundError(StructureFinderError):
    """No sample line matched any candidate (or the forced) timestamp format."""


class InsufficientMessagesError(StructureFinderError):
    """Fewer than two logical messages could be built from the sample."""


class PatternValidationError(StructureFinderError):
    """A supplied Grok pattern does not fit the sample messages."""


class TimeoutExceededError(StructureFinderError, TimeoutError):
    """The caller supplied deadline elapsed mid-analysis."""


class InternalInconsistencyError(StructureFinderError):
    """A generated pattern does not match every sample message."""
