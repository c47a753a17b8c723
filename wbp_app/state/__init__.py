"""
Unlock state machine module.

Derives Locked/Unlocked from the persisted grant deadline and drives every
mutation of it: Locked → Unlocked on request, Unlocked → Locked on expiry.
"""
from .machine import evaluate_grant, parse_unlocked_until
from .models import (
    CURRENT_TASK_KEY,
    UNLOCKED_UNTIL_KEY,
    Evaluation,
    GateStatus,
    GrantResult,
    UnlockState,
)
from .runtime import UnlockStateMachine

__all__ = [
    "CURRENT_TASK_KEY",
    "UNLOCKED_UNTIL_KEY",
    "Evaluation",
    "GateStatus",
    "GrantResult",
    "UnlockState",
    "UnlockStateMachine",
    "evaluate_grant",
    "parse_unlocked_until",
]
