import asyncio
from typing import Awaitable, Callable, Hashable

from ticket_router.logging_config import get_logger

logger = get_logger("debounce")

Action = Callable[[], Awaitable[None]]


class Debouncer:
    """One pending delayed action per key; scheduling again replaces it.

    schedule() and cancel() never await, so cancel-and-replace for a key is
    atomic on the event loop. A timer that wakes up after being superseded
    finds another task under its key and exits without running.
    """

    def __init__(self, delay_seconds: float, sleep_func: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.delay_seconds = delay_seconds
        self._sleep = sleep_func
        self._pending: dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, action: Action) -> asyncio.Task:
        existing = self._pending.get(key)
        if existing is not None:
            existing.cancel()
            logger.debug("Debounce rescheduled", extra={"context": {"key": str(key)}})
        task = asyncio.create_task(self._run(key, action))
        self._pending[key] = task
        return task

    def cancel(self, key: Hashable) -> bool:
        task = self._pending.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def _run(self, key: Hashable, action: Action) -> None:
        try:
            await self._sleep(self.delay_seconds)
        except asyncio.CancelledError:
            return
        if self._pending.get(key) is not asyncio.current_task():
            return
        del self._pending[key]
        try:
            await action()
        except Exception as e:
            logger.error(
                "Debounced action failed",
                extra={"context": {"key": str(key), "error": str(e)}},
                exc_info=True,
            )

    async def shutdown(self) -> None:
        tasks = list(self._pending.values())
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
