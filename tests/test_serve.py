import asyncio

from wirehead.utils.serve import serve_until_signal


def test_returns_when_watched_task_finishes():
    stopped = []

    async def on_stop():
        stopped.append(True)

    async def scenario():
        quick = asyncio.create_task(asyncio.sleep(0.01))
        slow = asyncio.create_task(asyncio.sleep(60))
        await asyncio.wait_for(
            serve_until_signal(watch=(quick, slow), on_stop=on_stop), timeout=2.0
        )
        return slow

    slow = asyncio.run(scenario())
    assert stopped == [True]
    assert slow.cancelled()


def test_on_stop_failure_does_not_block_shutdown():
    async def on_stop():
        raise RuntimeError("boom")

    async def scenario():
        done = asyncio.create_task(asyncio.sleep(0))
        await serve_until_signal(watch=(done,), on_stop=on_stop)

    asyncio.run(scenario())
