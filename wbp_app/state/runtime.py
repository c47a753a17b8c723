"""
Store-backed unlock state machine.

The machine holds no copy of the grant between calls: every operation
re-reads the store, because the other process may have written it or this
one may have been suspended in between.
"""

from typing import Optional

import structlog

from ..config.defaults import GateParams
from ..errors import MalformedStateError
from ..logging.config import get_state_logger, log_state_transition
from ..persistence.base import KeyValueStore
from ..utils.time import Clock, format_timestamp, now_ms
from .machine import evaluate_grant, parse_unlocked_until
from .models import (
    UNLOCKED_UNTIL_KEY,
    Evaluation,
    GateStatus,
    GrantResult,
    UnlockState,
)

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)


class UnlockStateMachine:
    """
    Locked/Unlocked gate driven by the persisted grant deadline.

    Only the background controller calls the mutating operations
    (``request_unlock`` and ``tick``); views use ``evaluate``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        params: Optional[GateParams] = None,
        clock: Optional[Clock] = None
    ):
        self.store = store
        self.params = params or GateParams()
        self.clock = clock or now_ms

    @property
    def grant_duration_ms(self) -> int:
        return self.params.grant_duration_ms

    async def load_state(self) -> UnlockState:
        """
        Read the persisted grant.

        Raises:
            MalformedStateError: If the stored deadline is not numeric
            StoreUnavailableError: If the store cannot be read
        """
        raw = await self.store.get_value(UNLOCKED_UNTIL_KEY)
        return UnlockState(unlocked_until=parse_unlocked_until(raw))

    async def evaluate(self, now: Optional[int] = None) -> Evaluation:
        """Derive the gate status at ``now``; never writes."""
        now = self.clock() if now is None else now

        try:
            state = await self.load_state()
        except MalformedStateError as e:
            logger.warning(
                "Malformed grant deadline, treating as locked",
                key=e.key,
                raw_value=repr(e.raw_value)
            )
            return evaluate_grant(None, now)

        return evaluate_grant(state.unlocked_until, now)

    async def is_active(self, now: Optional[int] = None) -> bool:
        """Enforcement hook: True while a grant is active."""
        evaluation = await self.evaluate(now)
        return evaluation.is_unlocked

    async def request_unlock(self, now: Optional[int] = None) -> GrantResult:
        """
        Grant a fresh full-duration window starting at ``now``.

        Any existing deadline is overwritten, not extended.

        Raises:
            StoreUnavailableError: If the grant could not be persisted
        """
        now = self.clock() if now is None else now
        granted_until = now + self.grant_duration_ms

        previous = await self.evaluate(now)

        await self.store.set({UNLOCKED_UNTIL_KEY: granted_until})

        log_state_transition(
            state_logger,
            from_state=previous.status.value,
            to_state=GateStatus.UNLOCKED.value,
            trigger="request_unlock",
            context={
                "granted_until": format_timestamp(granted_until),
                "previous_until": previous.expires_at,
                "grant_duration_ms": self.grant_duration_ms,
            }
        )

        return GrantResult(
            granted_until=granted_until,
            granted_at=now,
            previous_until=previous.expires_at,
        )

    async def tick(self, now: Optional[int] = None, trigger: str = "tick") -> bool:
        """
        Clear an expired or malformed grant.

        Called by the expiry one-shot and the reconciliation sweep. Re-reads
        the deadline, so a one-shot armed for an earlier grant does nothing
        once the grant has been re-armed.

        Returns:
            True if a stale grant was cleared, False if nothing changed

        Raises:
            StoreUnavailableError: If the store cannot be read or written
        """
        now = self.clock() if now is None else now

        try:
            state = await self.load_state()
        except MalformedStateError as e:
            logger.warning(
                "Clearing malformed grant deadline",
                key=e.key,
                raw_value=repr(e.raw_value),
                trigger=trigger
            )
            await self.store.set({UNLOCKED_UNTIL_KEY: None})
            return True

        if not state.is_stale(now):
            return False

        await self.store.set({UNLOCKED_UNTIL_KEY: None})

        log_state_transition(
            state_logger,
            from_state=GateStatus.UNLOCKED.value,
            to_state=GateStatus.LOCKED.value,
            trigger=trigger,
            context={
                "expired_at": format_timestamp(state.unlocked_until),
                "overdue_ms": now - state.unlocked_until,
            }
        )
        return True
