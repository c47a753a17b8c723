"""Expiry scheduler owned by the background controller."""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from ..utils.time import Clock, format_timestamp, now_ms

logger = structlog.get_logger(__name__)

TickCallback = Callable[[], Awaitable[object]]


class ExpiryScheduler:
    """
    Arranges calls to the state machine's tick.

    Two independent triggers, both calling the same idempotent callback:
    - ``arm(deadline)``: one-shot at the grant deadline; best effort, lost
      if the process is suspended or restarted before it fires
    - ``start()``: periodic reconciliation sweep every
      ``reconciliation_period_ms``; guarantees the Locked state is at most
      one period stale

    Re-arming never cancels older one-shots; the callback re-reads the
    persisted deadline, so an outdated one-shot is harmless.
    """

    def __init__(
        self,
        on_expiry: TickCallback,
        reconciliation_period_ms: int = 60000,
        on_sweep: Optional[TickCallback] = None,
        clock: Optional[Clock] = None
    ):
        self.on_expiry = on_expiry
        self.on_sweep = on_sweep or on_expiry
        self.reconciliation_period_ms = reconciliation_period_ms
        self.clock = clock or now_ms

        self._oneshots: dict[int, asyncio.Task] = {}
        self._sweep_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    @property
    def pending_deadlines(self) -> list[int]:
        return sorted(
            deadline for deadline, task in self._oneshots.items() if not task.done()
        )

    def arm(self, deadline_ms: int) -> bool:
        """
        Schedule a one-shot expiry callback at ``deadline_ms``.

        Returns:
            False if a one-shot for the same deadline is already pending
        """
        existing = self._oneshots.get(deadline_ms)
        if existing is not None and not existing.done():
            return False

        delay_ms = max(0, deadline_ms - self.clock())
        task = asyncio.create_task(self._fire_at(deadline_ms, delay_ms / 1000))
        self._oneshots[deadline_ms] = task
        task.add_done_callback(lambda _t, d=deadline_ms: self._forget(d, _t))

        logger.info(
            "Expiry one-shot armed",
            deadline=format_timestamp(deadline_ms),
            delay_ms=delay_ms
        )
        return True

    def start(self) -> None:
        """Start the reconciliation sweep."""
        if self.running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(
            "Reconciliation sweep started",
            period_ms=self.reconciliation_period_ms
        )

    async def stop(self) -> None:
        """Cancel the sweep and every pending one-shot."""
        tasks = [task for task in self._oneshots.values() if not task.done()]
        if self._sweep_task is not None:
            tasks.append(self._sweep_task)

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._oneshots.clear()
        self._sweep_task = None
        logger.info("Expiry scheduler stopped", cancelled=len(tasks))

    def _forget(self, deadline_ms: int, task: asyncio.Task) -> None:
        if self._oneshots.get(deadline_ms) is task:
            del self._oneshots[deadline_ms]

    async def _fire_at(self, deadline_ms: int, delay: float) -> None:
        await asyncio.sleep(delay)
        logger.info("Expiry one-shot fired", deadline=format_timestamp(deadline_ms))
        await self._invoke(self.on_expiry, "expiry")

    async def _sweep_loop(self) -> None:
        period = self.reconciliation_period_ms / 1000
        while True:
            await asyncio.sleep(period)
            await self._invoke(self.on_sweep, "sweep")

    async def _invoke(self, callback: TickCallback, trigger: str) -> None:
        # Failures are retried by the next sweep
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "Scheduled tick failed, will retry on next sweep",
                trigger=trigger,
                error=str(e),
                error_type=type(e).__name__
            )
