from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

class PacingScheduler:
    """Delayed callbacks keyed by chat. Scheduling again for a key replaces the pending one."""

    def __init__(self, delay_s: float):
        self.delay_s = delay_s
        self._tasks: dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, callback: Callable[[], Awaitable[None]], *, delay_s: float | None = None) -> asyncio.Task:
        self.cancel(key)
        delay = self.delay_s if delay_s is None else delay_s
        task = asyncio.create_task(self._run(key, delay, callback))
        self._tasks[key] = task
        return task

    async def _run(self, key: Hashable, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        try:
            if delay > 0:
                await asyncio.sleep(delay)
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("pacing_callback_failed key=%s", key)
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                self._tasks.pop(key, None)

    def cancel(self, key: Hashable) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info("pacing_cancelled key=%s", key)
        return True

    def cancel_all(self) -> int:
        keys = list(self._tasks)
        return sum(1 for key in keys if self.cancel(key))

    def pending(self, key: Hashable) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()
