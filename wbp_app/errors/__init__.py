"""
Error classification for the unlock controller.

Data quality errors describe bad values read from the store or received over
the message channel; the system falls back to Locked or rejects the input.
System failures describe unavailable collaborators; the transient ones are
retried on the next sweep, focus or user action.
"""

from .data_quality import (
    DataQualityError,
    MalformedStateError,
    EmptyTaskLabelError,
    MalformedMessageError,
)
from .system_failures import (
    SystemFailureError,
    StoreUnavailableError,
    ChannelUnreachableError,
    ConfigurationError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedStateError",
    "EmptyTaskLabelError",
    "MalformedMessageError",
    # System Failures
    "SystemFailureError",
    "StoreUnavailableError",
    "ChannelUnreachableError",
    "ConfigurationError",
]
