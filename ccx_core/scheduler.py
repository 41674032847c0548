"""
Scan Scheduler

Debounces re-scans triggered by structural-change notifications:

    IDLE -> DEBOUNCING -> (SCHEDULED_IDLE | RUNNING) -> IDLE

Notifications arriving while a debounce delay is pending are coalesced into
it. When the delay expires the scan runs only if the document is active
(visible and enabled); with an idle facility the run is deferred to the next
idle slot (bounded by a timeout), otherwise it starts immediately.

Usage:
    scheduler = ScanScheduler(run_scan, is_active, debounce=0.4)
    document.observe(lambda record: scheduler.notify())
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .config import config

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Scheduler lifecycle"""
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SCHEDULED_IDLE = "scheduled_idle"
    RUNNING = "running"


class IdleScheduler:
    """Defers a callback until the host is idle, or until ``timeout`` seconds pass."""

    def request(self, callback: Callable[[], None], timeout: float) -> Any:
        raise NotImplementedError

    def cancel(self, handle: Any) -> None:
        raise NotImplementedError


class LoopIdleScheduler(IdleScheduler):
    """
    Idle facility on the running event loop.

    The loop has no notion of idle time, so the callback runs after a short
    grace period, never later than the timeout.
    """

    def __init__(self, grace: float = 0.0):
        self.grace = grace

    def request(self, callback: Callable[[], None], timeout: float) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(min(self.grace, timeout), callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class ScanScheduler:
    """
    Debounced scan trigger.

    Args:
        run_scan: Coroutine function performing one scan, including the
            per-candidate work it starts
        is_active: Returns False when the document is hidden or disabled
        debounce: Delay in seconds before a notification triggers a scan
        idle: Optional IdleScheduler
        idle_timeout: Upper bound in seconds for the idle wait
    """

    def __init__(
        self,
        run_scan: Callable[[], Awaitable[None]],
        is_active: Callable[[], bool],
        debounce: Optional[float] = None,
        idle: Optional[IdleScheduler] = None,
        idle_timeout: Optional[float] = None,
    ):
        self.run_scan = run_scan
        self.is_active = is_active
        self.debounce = debounce if debounce is not None else config.scan_debounce
        self.idle = idle
        self.idle_timeout = idle_timeout if idle_timeout is not None else config.idle_timeout
        self.run_count = 0
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._idle_handle: Any = None
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SchedulerState:
        if self._task is not None and not self._task.done():
            return SchedulerState.RUNNING
        if self._debounce_handle is not None:
            return SchedulerState.DEBOUNCING
        if self._idle_handle is not None:
            return SchedulerState.SCHEDULED_IDLE
        return SchedulerState.IDLE

    def notify(self) -> None:
        """Structural change seen; start the debounce delay unless one is pending."""
        if self._debounce_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.debounce, self._on_debounce)

    def _on_debounce(self) -> None:
        self._debounce_handle = None
        if not self.is_active():
            logger.debug("Skipping scan: document hidden or disabled")
            return

        if self.idle is not None:
            if self._idle_handle is None:
                self._idle_handle = self.idle.request(self._on_idle, self.idle_timeout)
            return
        self._launch()

    def _on_idle(self) -> None:
        self._idle_handle = None
        if not self.is_active():
            return
        self._launch()

    def _launch(self) -> None:
        self.run_count += 1
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        try:
            await self.run_scan()
        except Exception:
            logger.exception("Scheduled scan failed")

    def cancel(self) -> None:
        """Drop a pending debounce delay or idle request; a running scan finishes."""
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._idle_handle is not None and self.idle is not None:
            self.idle.cancel(self._idle_handle)
        self._idle_handle = None

    async def wait(self) -> None:
        """Wait for the scan currently running, if any."""
        if self._task is not None:
            await asyncio.shield(self._task)
