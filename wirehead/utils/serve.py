import asyncio
from collections.abc import Awaitable, Callable, Iterable
import contextlib
import signal

from loguru import logger

_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def serve_until_signal(
    *,
    watch: Iterable[asyncio.Future] = (),
    on_stop: Callable[[], Awaitable[None]] | None = None,
) -> None:
    """
    Block until SIGINT/SIGTERM arrives or any watched task finishes, then:
      1) await ``on_stop()`` (e.g. SessionManager.close)
      2) cancel & await the watched tasks that are still running
    """
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _set() -> None:
        if not stop_event.is_set():
            logger.info("[serve] Stop requested")
            stop_event.set()

    installed: list[signal.Signals] = []
    for sig in _SIGNALS:
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _set)
            installed.append(sig)

    watched = [t for t in watch if t is not None]
    try:
        waiter = asyncio.create_task(stop_event.wait(), name="serve-stop-event")
        pending_watch = [t for t in watched if not t.done()]
        done, _ = await asyncio.wait(
            [waiter, *pending_watch], return_when=asyncio.FIRST_COMPLETED
        )
        for task in done:
            if task is not waiter:
                logger.info("[serve] Watched task finished, shutting down")
        if not waiter.done():
            waiter.cancel()

        if on_stop is not None:
            try:
                await on_stop()
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("[serve] on_stop failed: {}", exc)

        leftovers = [t for t in watched if not t.done()]
        for task in leftovers:
            task.cancel()
        if leftovers:
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(*leftovers, return_exceptions=True)

        # final turn for callbacks scheduled during cancellation
        await asyncio.sleep(0)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
