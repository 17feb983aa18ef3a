import asyncio

from mathcamp.pacing import PacingScheduler


def test_callback_runs_after_delay():
    async def _run():
        seen = []

        async def cb():
            seen.append("next")

        pacing = PacingScheduler(0.01)
        task = pacing.schedule(1, cb)
        assert pacing.pending(1)
        await task
        assert seen == ["next"]
        assert not pacing.pending(1)
    asyncio.run(_run())


def test_cancel_prevents_callback():
    async def _run():
        seen = []

        async def cb():
            seen.append("next")

        pacing = PacingScheduler(0.05)
        pacing.schedule(1, cb)
        assert pacing.cancel(1)
        await asyncio.sleep(0.1)
        assert seen == []
        assert not pacing.cancel(1)
    asyncio.run(_run())


def test_reschedule_replaces_pending_callback():
    async def _run():
        seen = []

        def make(tag):
            async def cb():
                seen.append(tag)
            return cb

        pacing = PacingScheduler(0.05)
        pacing.schedule(1, make("first"))
        task = pacing.schedule(1, make("second"))
        await task
        await asyncio.sleep(0.01)
        assert seen == ["second"]
    asyncio.run(_run())


def test_cancel_all_counts_pending():
    async def _run():
        async def cb():
            pass

        pacing = PacingScheduler(1.0)
        pacing.schedule(1, cb)
        pacing.schedule(2, cb)
        assert pacing.cancel_all() == 2
        assert not pacing.pending(1)
        assert not pacing.pending(2)
    asyncio.run(_run())


def test_failing_callback_is_logged_not_raised(caplog):
    async def _run():
        async def cb():
            raise RuntimeError("send failed")

        pacing = PacingScheduler(0)
        await pacing.schedule("chat", cb)
    asyncio.run(_run())
    assert "pacing_callback_failed" in caplog.text
