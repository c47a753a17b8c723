"""
Message channel between front-end views and the background controller.

Views send ``RequestUnlock`` and get an advisory ``{"success": bool}``
back; the background broadcasts ``GrantExpired`` to whichever views are
open. The store, not the response, is the durable record.
"""
from .messages import (
    ACTION_GRANT_EXPIRED,
    ACTION_REQUEST_UNLOCK,
    UnlockResponse,
    grant_expired,
    parse_action,
    request_unlock,
)
from .transport import LocalMessageChannel

__all__ = [
    "ACTION_GRANT_EXPIRED",
    "ACTION_REQUEST_UNLOCK",
    "LocalMessageChannel",
    "UnlockResponse",
    "grant_expired",
    "parse_action",
    "request_unlock",
]
