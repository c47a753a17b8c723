"""
Pure grant evaluation.

Activity is a function of ``(unlocked_until, now)`` only; nothing here reads
or writes the store, so any reader recomputes the same answer from persisted
data after a restart.
"""

from typing import Any, Optional

from ..errors import MalformedStateError
from .models import UNLOCKED_UNTIL_KEY, Evaluation, GateStatus, UnlockState


def parse_unlocked_until(raw: Any) -> Optional[int]:
    """
    Normalize a persisted grant deadline.

    Args:
        raw: Value read from the store

    Returns:
        Epoch milliseconds, or None when no grant is recorded

    Raises:
        MalformedStateError: If the value is present but not numeric
    """
    if raw is None:
        return None

    # bool is an int subclass but never a valid deadline
    if isinstance(raw, bool):
        raise MalformedStateError(
            "Grant deadline is a boolean", key=UNLOCKED_UNTIL_KEY, raw_value=raw
        )

    if isinstance(raw, int):
        return raw

    if isinstance(raw, float):
        if raw != raw or raw in (float("inf"), float("-inf")):
            raise MalformedStateError(
                "Grant deadline is not finite", key=UNLOCKED_UNTIL_KEY, raw_value=raw
            )
        return int(raw)

    if isinstance(raw, str):
        try:
            return int(float(raw.strip()))
        except (ValueError, OverflowError) as e:
            raise MalformedStateError(
                "Grant deadline is not numeric", key=UNLOCKED_UNTIL_KEY, raw_value=raw
            ) from e

    raise MalformedStateError(
        f"Grant deadline has unsupported type {type(raw).__name__}",
        key=UNLOCKED_UNTIL_KEY,
        raw_value=raw
    )


def evaluate_grant(unlocked_until: Optional[int], now: int) -> Evaluation:
    """
    Derive gate status from a deadline.

    Unlocked iff the deadline exists and is strictly after ``now``.
    """
    if UnlockState(unlocked_until=unlocked_until).is_active(now):
        return Evaluation(
            status=GateStatus.UNLOCKED,
            evaluated_at=now,
            expires_at=unlocked_until,
            remaining_ms=unlocked_until - now,
        )

    return Evaluation(status=GateStatus.LOCKED, evaluated_at=now)
