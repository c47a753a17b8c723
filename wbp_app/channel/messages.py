"""Wire shapes for channel requests, responses and broadcasts."""

from dataclasses import dataclass
from typing import Any

from ..errors import MalformedMessageError

ACTION_REQUEST_UNLOCK = "RequestUnlock"
ACTION_GRANT_EXPIRED = "GrantExpired"

KNOWN_ACTIONS = (ACTION_REQUEST_UNLOCK, ACTION_GRANT_EXPIRED)


@dataclass(frozen=True)
class UnlockResponse:
    """Advisory acknowledgment for a RequestUnlock."""
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success}

    @classmethod
    def from_dict(cls, payload: Any) -> "UnlockResponse":
        """Anything other than ``{"success": True}`` reads as failure."""
        if isinstance(payload, dict) and payload.get("success") is True:
            return cls(success=True)
        return cls(success=False)


def request_unlock() -> dict[str, Any]:
    return {"action": ACTION_REQUEST_UNLOCK}


def grant_expired() -> dict[str, Any]:
    return {"action": ACTION_GRANT_EXPIRED}


def parse_action(message: Any) -> str:
    """
    Extract and validate the action of a channel message.

    Raises:
        MalformedMessageError: If the message is not a mapping with a known action
    """
    if not isinstance(message, dict):
        raise MalformedMessageError(
            f"Message must be a mapping, got {type(message).__name__}",
            payload=message
        )

    action = message.get("action")
    if action not in KNOWN_ACTIONS:
        raise MalformedMessageError(f"Unknown action: {action!r}", payload=message)

    return action
