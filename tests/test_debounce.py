import asyncio

import pytest

from ticket_router.services.debounce import Debouncer


class ManualSleep:
    """sleep_func replacement whose timers fire only when released."""

    def __init__(self, swallow_cancel: bool = False):
        self.waiters: list[asyncio.Future] = []
        self.swallow_cancel = swallow_cancel

    async def __call__(self, delay: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        self.waiters.append(fut)
        if self.swallow_cancel:
            try:
                await fut
            except asyncio.CancelledError:
                pass
            return
        await fut

    def release_all(self) -> None:
        for fut in self.waiters:
            if not fut.done():
                fut.set_result(None)
        self.waiters.clear()


def _recorder(calls: list, label: str):
    async def action():
        calls.append(label)

    return action


class TestDebouncer:
    @pytest.mark.asyncio
    async def test_only_latest_action_runs(self):
        sleep = ManualSleep()
        debouncer = Debouncer(3.0, sleep_func=sleep)
        calls = []

        debouncer.schedule(1, _recorder(calls, "first"))
        debouncer.schedule(1, _recorder(calls, "second"))
        last = debouncer.schedule(1, _recorder(calls, "third"))
        await asyncio.sleep(0)

        sleep.release_all()
        await last

        assert calls == ["third"]
        assert debouncer.is_pending(1) is False

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        sleep = ManualSleep()
        debouncer = Debouncer(3.0, sleep_func=sleep)
        calls = []

        task_a = debouncer.schedule("a", _recorder(calls, "a"))
        task_b = debouncer.schedule("b", _recorder(calls, "b"))
        await asyncio.sleep(0)

        sleep.release_all()
        await asyncio.gather(task_a, task_b)

        assert sorted(calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_cancel_prevents_run(self):
        sleep = ManualSleep()
        debouncer = Debouncer(3.0, sleep_func=sleep)
        calls = []

        task = debouncer.schedule(1, _recorder(calls, "menu"))
        await asyncio.sleep(0)

        assert debouncer.cancel(1) is True
        sleep.release_all()
        await asyncio.gather(task, return_exceptions=True)

        assert calls == []
        assert debouncer.is_pending(1) is False

    def test_cancel_unknown_key(self):
        debouncer = Debouncer(3.0)
        assert debouncer.cancel(42) is False

    @pytest.mark.asyncio
    async def test_superseded_timer_does_not_run(self):
        # the old timer keeps going after cancel; it must notice it was replaced
        sleep = ManualSleep(swallow_cancel=True)
        debouncer = Debouncer(3.0, sleep_func=sleep)
        calls = []

        old = debouncer.schedule(1, _recorder(calls, "old"))
        await asyncio.sleep(0)
        new = debouncer.schedule(1, _recorder(calls, "new"))
        await old

        assert calls == []
        assert debouncer.is_pending(1) is True

        await asyncio.sleep(0)
        sleep.release_all()
        await new

        assert calls == ["new"]

    @pytest.mark.asyncio
    async def test_failing_action_is_contained(self):
        sleep = ManualSleep()
        debouncer = Debouncer(3.0, sleep_func=sleep)

        async def boom():
            raise RuntimeError("provider down")

        task = debouncer.schedule(1, boom)
        await asyncio.sleep(0)
        sleep.release_all()
        await task

        assert task.exception() is None
        assert debouncer.is_pending(1) is False

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending(self):
        sleep = ManualSleep()
        debouncer = Debouncer(3.0, sleep_func=sleep)
        calls = []

        debouncer.schedule(1, _recorder(calls, "one"))
        debouncer.schedule(2, _recorder(calls, "two"))
        await asyncio.sleep(0)

        await debouncer.shutdown()
        sleep.release_all()
        await asyncio.sleep(0)

        assert calls == []
        assert debouncer.is_pending(1) is False
        assert debouncer.is_pending(2) is False

    @pytest.mark.asyncio
    async def test_fires_after_quiet_period(self):
        debouncer = Debouncer(0.1)
        loop = asyncio.get_running_loop()
        fired_at = []

        async def action():
            fired_at.append(loop.time())

        for _ in range(3):
            scheduled_at = loop.time()
            task = debouncer.schedule("ticket", action)
            await asyncio.sleep(0.03)

        await task

        assert len(fired_at) == 1
        assert fired_at[0] - scheduled_at >= 0.09
