"""
Unlock state data models.

This module defines the immutable structures describing the persisted grant,
the derived gate status and the result of an unlock request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Fixed store keys shared by the background controller and views
UNLOCKED_UNTIL_KEY = "rewardUnlockedUntil"
CURRENT_TASK_KEY = "currentTask"


class GateStatus(str, Enum):
    """Derived gate state."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"


@dataclass(frozen=True)
class UnlockState:
    """Persisted grant record; absent deadline means no active grant."""

    unlocked_until: Optional[int] = None             # Epoch ms the grant ends

    def is_active(self, now: int) -> bool:
        """Deadline present and strictly after ``now``."""
        return self.unlocked_until is not None and self.unlocked_until > now

    def is_stale(self, now: int) -> bool:
        """Deadline present but already reached."""
        return self.unlocked_until is not None and now >= self.unlocked_until


@dataclass(frozen=True)
class Evaluation:
    """Result of evaluating the grant at one instant."""

    status: GateStatus
    evaluated_at: int
    expires_at: Optional[int] = None
    remaining_ms: int = 0

    @property
    def is_unlocked(self) -> bool:
        return self.status == GateStatus.UNLOCKED


@dataclass(frozen=True)
class GrantResult:
    """Outcome of a successful unlock request."""

    granted_until: int
    granted_at: int
    previous_until: Optional[int] = None             # Overwritten deadline, if any

    @property
    def duration_ms(self) -> int:
        return self.granted_until - self.granted_at
