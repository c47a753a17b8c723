"""
System failure error classifications.

Store and channel failures are transient: the hosting process keeps running
and the next natural trigger retries. Configuration failures need a fix to
the settings file before the controller can start.
"""

from typing import Optional, Dict, Any, Sequence


class SystemFailureError(Exception):
    """Base class for collaborator failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class StoreUnavailableError(SystemFailureError):
    """Persistent store get/set failed; no write is assumed to have happened."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 keys: Optional[Sequence[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.keys = list(keys) if keys else []
        self.recoverable = True


class ChannelUnreachableError(SystemFailureError):
    """Background controller did not answer a channel request."""

    def __init__(self, message: str, action: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.action = action
        self.recoverable = True


class ConfigurationError(SystemFailureError):
    """Configuration failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
