"""Self-rescheduling notification loop.

The next pass is armed only after the current one finished, so a slow pass
pushes the following one back instead of overlapping it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable

from core.dispatch import NotificationDispatcher
from core.ports import HeartbeatStorePort

LOGGER = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class NotificationScheduler:
    """Runs dispatch passes over all heartbeats, one at a time, forever."""

    def __init__(
        self,
        heartbeats: HeartbeatStorePort,
        dispatcher: NotificationDispatcher,
        check_interval: timedelta,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._heartbeats = heartbeats
        self._dispatcher = dispatcher
        self._check_interval = check_interval
        self._sleep = sleep
        self._stopped = asyncio.Event()

    async def run_once(self) -> int:
        """Run a single pass and return the number of users notified."""

        LOGGER.debug("Preparing notifications to send out")
        notified = await self._dispatcher.evaluate(self._heartbeats.load_all_heartbeats())
        LOGGER.info("Scheduled %s notification emails", notified)
        return notified

    async def run(self) -> None:
        """Run passes until stopped; the first pass starts immediately.

        A scheduler stopped before ``run()`` returns without running a pass.
        """

        while not self._stopped.is_set():
            try:
                await self.run_once()
            except Exception:
                # A failed pass never stops the loop.
                LOGGER.exception("Notification pass failed")

            if self._stopped.is_set():
                break
            LOGGER.debug("Scheduling next preparation in %s", self._check_interval)
            await self._wait_for_next_pass()

    def stop(self) -> None:
        self._stopped.set()

    async def _wait_for_next_pass(self) -> None:
        sleeper = asyncio.ensure_future(self._sleep(self._check_interval.total_seconds()))
        stopper = asyncio.ensure_future(self._stopped.wait())
        try:
            await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, stopper):
                if not task.done():
                    task.cancel()
