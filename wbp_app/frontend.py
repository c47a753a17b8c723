"""
Front-end view.

Short-lived side of the gate: may be created and torn down between any two
operations, so it keeps nothing it cannot rebuild from the store. It never
writes the grant deadline; it asks the background controller over the
channel and then re-reads.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import structlog

from .channel.messages import ACTION_GRANT_EXPIRED, UnlockResponse, request_unlock
from .channel.transport import LocalMessageChannel
from .config.defaults import GateParams, ViewParams
from .errors import ChannelUnreachableError, EmptyTaskLabelError, StoreUnavailableError
from .persistence.base import KeyValueStore, StorageChange
from .state.models import CURRENT_TASK_KEY, UNLOCKED_UNTIL_KEY, GateStatus
from .state.runtime import UnlockStateMachine
from .utils.time import Clock, format_remaining, now_ms

logger = structlog.get_logger(__name__)

NO_TASK_LABEL = "No task set"


@dataclass(frozen=True)
class ViewStatus:
    """What a view displays: gate status, countdown and task label."""
    status: GateStatus = GateStatus.LOCKED
    remaining_ms: int = 0
    task_label: str = NO_TASK_LABEL
    message: str = ""

    @property
    def remaining_text(self) -> str:
        """Countdown as ``m:ss``, empty while locked."""
        if self.status != GateStatus.UNLOCKED:
            return ""
        return format_remaining(self.remaining_ms)


class FrontEndView:
    """Popup-style view over the shared gate state."""

    def __init__(
        self,
        store: KeyValueStore,
        channel: LocalMessageChannel,
        params: Optional[ViewParams] = None,
        gate_params: Optional[GateParams] = None,
        clock: Optional[Clock] = None
    ):
        self.store = store
        self.channel = channel
        self.params = params or ViewParams()
        self.clock = clock or now_ms

        # Read-only use: evaluate() never writes
        self._reader = UnlockStateMachine(store, gate_params, self.clock)

        self.status = ViewStatus()
        self._subscriptions: list[Callable[[], None]] = []
        self._countdown_task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return bool(self._subscriptions)

    @property
    def countdown_running(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    async def open(self) -> ViewStatus:
        """Subscribe, load task and status, start the countdown if unlocked."""
        if self.is_open:
            return await self.on_focus()

        self._subscriptions = [
            self.store.on_change(self._on_store_change),
            self.channel.add_listener(self._on_broadcast),
        ]

        await self.load_task()
        status = await self.refresh()
        if status.status == GateStatus.UNLOCKED:
            self.start_countdown()
        return status

    async def close(self) -> None:
        """Tear the view down; nothing is persisted from here."""
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []

        if self._countdown_task is not None:
            self._countdown_task.cancel()
            try:
                await self._countdown_task
            except asyncio.CancelledError:
                pass
            self._countdown_task = None

    async def on_focus(self) -> ViewStatus:
        await self.load_task()
        return await self.refresh()

    async def load_task(self) -> str:
        try:
            label = await self.store.get_value(CURRENT_TASK_KEY)
        except StoreUnavailableError as e:
            logger.warning("Could not load task label", error=str(e))
            return self.status.task_label

        label = label if isinstance(label, str) and label.strip() else NO_TASK_LABEL
        self.status = replace(self.status, task_label=label)
        return label

    async def save_task(self, label: str) -> str:
        """
        Store the current task label.

        Raises:
            EmptyTaskLabelError: If the label is empty after trimming
            StoreUnavailableError: If the store rejected the write
        """
        label = (label or "").strip()
        if not label:
            self.status = replace(self.status, message="Please enter a task")
            raise EmptyTaskLabelError("Task label must not be empty")

        await self.store.set({CURRENT_TASK_KEY: label})
        self.status = replace(self.status, task_label=label, message="Task saved!")
        logger.info("Task saved", task=label)
        return label

    async def request_unlock(self) -> bool:
        """
        Ask the background controller to unlock.

        Returns:
            True if the background acknowledged the grant. On failure the
            displayed status is left as it was.
        """
        try:
            payload = await self.channel.send(request_unlock())
        except ChannelUnreachableError as e:
            logger.warning("Could not unlock", error=str(e))
            self.status = replace(self.status, message="Could not unlock")
            return False

        response = UnlockResponse.from_dict(payload)
        if not response.success:
            logger.warning("Unlock request refused", response=payload)
            self.status = replace(self.status, message="Could not unlock")
            return False

        await self.refresh()
        self.status = replace(self.status, message="Reward unlocked!")
        self.start_countdown()
        return True

    async def refresh(self) -> ViewStatus:
        """Re-derive gate status from the store."""
        try:
            evaluation = await self._reader.evaluate()
        except StoreUnavailableError as e:
            logger.warning("Could not refresh gate status", error=str(e))
            return self.status

        self.status = replace(
            self.status,
            status=evaluation.status,
            remaining_ms=evaluation.remaining_ms,
        )
        return self.status

    def start_countdown(self) -> None:
        if self.countdown_running:
            return
        self._countdown_task = asyncio.create_task(self.run_countdown())

    async def run_countdown(self) -> None:
        """Poll the store every interval until the gate is locked again."""
        interval = self.params.countdown_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            status = await self.refresh()
            if status.status != GateStatus.UNLOCKED:
                logger.info("Countdown finished, gate locked")
                return

    async def _on_store_change(self, changes: dict[str, StorageChange]) -> None:
        if UNLOCKED_UNTIL_KEY in changes:
            status = await self.refresh()
            if status.status == GateStatus.UNLOCKED:
                self.start_countdown()
        if CURRENT_TASK_KEY in changes:
            await self.load_task()

    async def _on_broadcast(self, message: dict[str, Any]) -> None:
        if message.get("action") == ACTION_GRANT_EXPIRED:
            await self.refresh()
