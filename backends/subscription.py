"""
Subscriptions — cancellable handles for long-lived update streams.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from tools.log import get_logger

log = get_logger(__name__)


class Subscription:
    """
    Handle returned by every listen/subscribe call.

    cancel() detaches the listener and/or stops the background task. It is
    idempotent, so every teardown path may call it unconditionally.
    """

    def __init__(
        self,
        cancel: Optional[Callable[[], None]] = None,
        task: Optional[asyncio.Task] = None,
        name: str = "subscription",
    ) -> None:
        self._cancel = cancel
        self._task = task
        self.name = name
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._cancel is not None:
            try:
                self._cancel()
            except Exception as e:
                log.warning("Cancelling %s raised: %s", self.name, e)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        log.debug("Cancelled %s", self.name)

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"Subscription({self.name!r}, {state})"


class PollingSubscription(Subscription):
    """
    Degraded-mode subscription: re-fetch the full collection every
    `interval` seconds and push it to the callback.

    A failed poll is logged and retried on the next tick; the loop only ends
    when the subscription is cancelled.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[list[dict]]],
        callback: Callable[[list[dict]], None],
        interval: float,
        name: str = "polling",
    ) -> None:
        self._fetch = fetch
        self._callback = callback
        self.interval = interval
        self.polls = 0
        self.failures = 0
        self._wake = asyncio.Event()
        task = asyncio.get_running_loop().create_task(self._run(), name=name)
        super().__init__(task=task, name=name)

    def poll_now(self) -> None:
        """Cut the current wait short so the next fetch starts right away."""
        if self.active:
            self._wake.set()

    async def _run(self) -> None:
        while True:
            self.polls += 1
            try:
                records = await self._fetch()
            except Exception as e:
                self.failures += 1
                log.warning("%s: poll #%d failed: %s", self.name, self.polls, e)
            else:
                try:
                    self._callback(records)
                except Exception as e:
                    log.error("%s: update callback failed: %s", self.name, e)
            try:
                await asyncio.wait_for(self._wake.wait(), self.interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()
