"""
Data quality error classifications.

These exceptions cover values that exist but cannot be used: persisted
state in the wrong shape, empty user input and malformed channel messages.
They are always handled locally.
"""

from typing import Any, Optional, Dict


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedStateError(DataQualityError):
    """Persisted state exists but is not in the expected format."""

    def __init__(self, message: str, key: Optional[str] = None,
                 raw_value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.key = key
        self.raw_value = raw_value


class EmptyTaskLabelError(DataQualityError):
    """Task label is empty or whitespace only."""


class MalformedMessageError(DataQualityError):
    """Channel message is not a mapping or names an unknown action."""

    def __init__(self, message: str, payload: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.payload = payload
