import asyncio

from typing import Awaitable, List


async def race_hard(*awaitables: Awaitable) -> asyncio.Future:
    """
    Runs several awaitables concurrently until the first one of them finishes, then ensures that all the others are
    canceled and waited for before the function returns. Thus, we can rely on the fact that once this function has
    returned, none of the tasks are executing anymore.

    Args:
        *awaitables: The awaitable objects to run concurrently (Tasks, coroutines, futures etc)

    Returns:
        The future that finished first (call `.result()` on it to get its result or re-raise its exception). If several
        finished at the same time, the one passed first in the arguments wins.
    """
    futures: List[asyncio.Future] = []
    try:
        # We convert them one by one. Keep in mind that some of them might be already scheduled tasks!
        for item in awaitables:
            futures.append(asyncio.ensure_future(item))

        done, _pending = await asyncio.wait(futures, return_when=asyncio.FIRST_COMPLETED)

        return next(fu for fu in futures if fu in done)
    finally:
        await _cancel_and_wait([fu for fu in futures if not fu.done()])


async def _cancel_and_wait(futures: List[asyncio.Future]) -> None:
    for item in futures:
        item.cancel()

    if len(futures) > 0:
        await asyncio.gather(*futures, return_exceptions=True)
