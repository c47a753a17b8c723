"""
Background controller.

Long-lived side of the gate: the only writer of the grant deadline. Answers
unlock requests from views, keeps the expiry scheduler armed, and tells the
enforcement hook whether gated resources are open.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import structlog

from .channel.messages import (
    ACTION_REQUEST_UNLOCK,
    UnlockResponse,
    grant_expired,
    parse_action,
)
from .channel.transport import LocalMessageChannel
from .config.defaults import GateParams
from .errors import MalformedMessageError, StoreUnavailableError
from .logging.config import get_gating_logger, log_gate_decision
from .persistence.base import KeyValueStore, StorageChange
from .scheduler.expiry import ExpiryScheduler
from .state.models import CURRENT_TASK_KEY, UNLOCKED_UNTIL_KEY, Evaluation
from .state.runtime import UnlockStateMachine
from .utils.time import Clock, now_ms

logger = structlog.get_logger(__name__)
gating_logger = get_gating_logger(__name__)


class GateEnforcer(ABC):
    """Hook for whatever actually intercepts access to gated resources."""

    @abstractmethod
    def apply(self, active: bool, gate_set: tuple[str, ...], evaluation: Evaluation) -> None:
        """Open (``active``) or close the gate for every resource in ``gate_set``."""


class LoggingGateEnforcer(GateEnforcer):
    """Records and logs decisions without blocking anything."""

    def __init__(self) -> None:
        self.active: Optional[bool] = None
        self.decisions = 0

    def apply(self, active: bool, gate_set: tuple[str, ...], evaluation: Evaluation) -> None:
        changed = active != self.active
        self.active = active
        self.decisions += 1

        if changed:
            log_gate_decision(
                gating_logger,
                active=active,
                gate_count=len(gate_set),
                reason="grant_active" if active else "no_active_grant",
                context={"remaining_ms": evaluation.remaining_ms}
            )


class BackgroundController:
    """Hosts the state machine, scheduler and channel handler."""

    def __init__(
        self,
        store: KeyValueStore,
        channel: LocalMessageChannel,
        params: Optional[GateParams] = None,
        enforcer: Optional[GateEnforcer] = None,
        clock: Optional[Clock] = None
    ):
        self.store = store
        self.channel = channel
        self.params = params or GateParams()
        self.enforcer = enforcer or LoggingGateEnforcer()
        self.clock = clock or now_ms

        self.machine = UnlockStateMachine(store, self.params, self.clock)
        self.scheduler = ExpiryScheduler(
            on_expiry=self.on_expiry_timer,
            on_sweep=self.reconcile,
            reconciliation_period_ms=self.params.reconciliation_period_ms,
            clock=self.clock,
        )
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def install(self) -> None:
        """Initialise storage defaults, then apply the current gate state."""
        current = await self.store.get([UNLOCKED_UNTIL_KEY])
        if UNLOCKED_UNTIL_KEY not in current:
            await self.store.set({UNLOCKED_UNTIL_KEY: None})
            logger.info("Initialised grant state", key=UNLOCKED_UNTIL_KEY)

        await self.refresh()

    async def start(self) -> None:
        """Install, subscribe, serve the channel and start the sweep."""
        try:
            await self.install()
        except StoreUnavailableError as e:
            logger.warning("Store unavailable during install, sweep will retry", error=str(e))

        self._unsubscribe = self.store.on_change(self._on_store_change)
        self.channel.serve(self.handle_message)
        self.scheduler.start()

        # Pending one-shots do not survive a restart
        try:
            evaluation = await self.machine.evaluate()
        except StoreUnavailableError as e:
            logger.warning("Could not recover pending grant", error=str(e))
        else:
            if evaluation.is_unlocked:
                self.scheduler.arm(evaluation.expires_at)

        logger.info(
            "Background controller started",
            gate_count=len(self.params.gate_set),
            grant_duration_ms=self.params.grant_duration_ms,
            reconciliation_period_ms=self.params.reconciliation_period_ms
        )

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.channel.close()
        await self.scheduler.stop()
        logger.info("Background controller stopped")

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any]:
        """Answer a channel request."""
        try:
            action = parse_action(message)
        except MalformedMessageError as e:
            logger.warning("Rejected channel message", error=str(e), payload=repr(e.payload))
            return UnlockResponse(success=False).to_dict()

        if action != ACTION_REQUEST_UNLOCK:
            logger.warning("Unsupported request action", action=action)
            return UnlockResponse(success=False).to_dict()

        try:
            result = await self.machine.request_unlock()
        except StoreUnavailableError as e:
            logger.error("Unlock request failed, store unavailable", error=str(e))
            return UnlockResponse(success=False).to_dict()

        self.scheduler.arm(result.granted_until)
        await self.refresh()

        return UnlockResponse(success=True).to_dict()

    async def on_expiry_timer(self) -> None:
        """One-shot deadline callback."""
        cleared = await self.machine.tick(trigger="expiry_timer")
        await self.refresh()
        if cleared:
            await self.channel.broadcast(grant_expired())

    async def reconcile(self) -> bool:
        """Sweep callback; relocks a grant whose one-shot was missed."""
        cleared = await self.machine.tick(trigger="reconciliation_sweep")
        if cleared:
            logger.info("Reconciliation sweep relocked stale grant")
            await self.refresh()
        return cleared

    async def refresh(self) -> Optional[Evaluation]:
        """Re-evaluate from the store and hand the decision to the enforcer."""
        try:
            evaluation = await self.machine.evaluate()
        except StoreUnavailableError as e:
            logger.warning("Could not refresh gate state", error=str(e))
            return None

        self.enforcer.apply(evaluation.is_unlocked, self.params.gate_set, evaluation)
        return evaluation

    async def _on_store_change(self, changes: dict[str, StorageChange]) -> None:
        if UNLOCKED_UNTIL_KEY in changes:
            logger.info(
                "Grant state changed",
                new_value=changes[UNLOCKED_UNTIL_KEY].new_value
            )
            evaluation = await self.refresh()
            # Only this process writes the key, but re-arm in case another did
            if evaluation is not None and evaluation.is_unlocked:
                self.scheduler.arm(evaluation.expires_at)

        if CURRENT_TASK_KEY in changes:
            logger.info("Current task updated", task=changes[CURRENT_TASK_KEY].new_value)
