"""Background coalescing of campaign modifications into periodic touches."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from siegekeeper.errors import EntityNotFoundError, SnapshotError

logger = logging.getLogger(__name__)


class AutosaveCoordinator:
    """Touch modified campaigns once they have been quiet for a while.

    ``mark_modified`` only records a timestamp, so callers on the write path
    never wait for storage. A background loop wakes every
    ``check_interval_seconds`` and touches each campaign whose last mark is at
    least ``delay_seconds`` old. Any number of marks inside one quiet period
    therefore produce a single touch.
    """

    MIN_INTERVAL_SECONDS = 0.01

    def __init__(
        self,
        touch: Callable[[int], object],
        *,
        delay_seconds: float,
        check_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._touch = touch
        self._delay = max(delay_seconds, 0.0)
        self._interval = max(check_interval_seconds, self.MIN_INTERVAL_SECONDS)
        self._clock = clock
        self._dirty: dict[int, float] = {}
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._flush_lock = asyncio.Lock()

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def check_interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def mark_modified(self, campaign_id: int) -> None:
        """Record that ``campaign_id`` changed just now."""

        self._dirty[campaign_id] = self._clock()

    def is_dirty(self, campaign_id: int) -> bool:
        return campaign_id in self._dirty

    def pending(self) -> dict[int, float]:
        """Dirty campaigns mapped to the clock reading of their last mark."""

        return dict(self._dirty)

    def due(self) -> list[int]:
        now = self._clock()
        return sorted(cid for cid, marked in self._dirty.items() if now - marked >= self._delay)

    def start(self) -> None:
        """Start the background loop on the running event loop."""

        if self.running:
            return
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run_loop(), name="siegekeeper-autosave-loop")

    async def stop(self, *, flush: bool = True) -> None:
        """Stop the loop; by default touch whatever is still dirty first."""

        task = self._task
        if task is not None:
            self._stop_event.set()
            await task
            self._task = None
        if flush:
            await self.flush_all()

    async def flush_due(self) -> list[int]:
        """Touch every campaign whose quiet period has elapsed."""

        return await self._flush(self.due())

    async def flush_all(self) -> list[int]:
        """Touch every dirty campaign regardless of how recently it changed."""

        return await self._flush(sorted(self._dirty))

    async def _flush(self, campaign_ids: list[int]) -> list[int]:
        touched: list[int] = []
        if not campaign_ids:
            return touched
        async with self._flush_lock:
            for campaign_id in campaign_ids:
                marked = self._dirty.get(campaign_id)
                if marked is None:
                    continue
                if await asyncio.to_thread(self._touch_sync, campaign_id):
                    touched.append(campaign_id)
                # A mark that arrived during the touch keeps the campaign dirty.
                if self._dirty.get(campaign_id) == marked:
                    del self._dirty[campaign_id]
        return touched

    def _touch_sync(self, campaign_id: int) -> bool:
        try:
            self._touch(campaign_id)
        except EntityNotFoundError:
            logger.warning("campaign %s no longer exists; dropping auto-save", campaign_id)
            return False
        return True

    async def _run_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                    break
                except TimeoutError:
                    pass
                try:
                    await self.flush_due()
                except SnapshotError as exc:
                    # Dirty marks stay in place and the next cycle retries.
                    logger.warning("auto-save touch failed: %s", exc)
        finally:
            self._task = None
