import asyncio
import inspect
from typing import Any, Callable, Optional, Tuple


class Deferred:
    """
    A lazy, memoizing computation, the asyncio take on `righto`.

    `Deferred(fn, *args)` does nothing until it is driven, either by awaiting
    it or by calling it with a `callback(error, result)`. Arguments that are
    themselves Deferreds are resolved first (concurrently) and their results
    passed to `fn`; `fn` may be a plain function or a coroutine function.
    The work runs once; every later await or callback shares that outcome.

    Called with a callback outside a running event loop, the work is driven
    to completion on a fresh loop and the callback fires before the call
    returns.

        user = prequel["User"].get(1)
        accounts = Deferred(load_accounts, user)
        accounts(lambda error, result: ...)   # runs user, then load_accounts
    """

    def __init__(self, fn: Callable, *args: Any):
        self._fn = fn
        self._args = args
        self._task: Optional[asyncio.Future] = None
        # (error, result) of a run driven without a loop
        self._outcome: Optional[Tuple[Optional[BaseException], Any]] = None

    @property
    def started(self) -> bool:
        return self._task is not None or self._outcome is not None

    def _start(self) -> asyncio.Future:
        if self._task is None:
            if self._outcome is None:
                self._task = asyncio.ensure_future(self._run())
            else:
                self._task = self._settled()
        return self._task

    def _settled(self) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        error, result = self._outcome
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
        return future

    def _run_blocking(self) -> Tuple[Optional[BaseException], Any]:
        if self._outcome is None:
            try:
                self._outcome = (None, asyncio.run(self._run()))
            except Exception as error:
                self._outcome = (error, None)
        return self._outcome

    async def _run(self):
        args = await asyncio.gather(*(resolve(arg) for arg in self._args))
        result = self._fn(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __await__(self):
        return self._start().__await__()

    def __call__(self, callback: Callable[[Optional[BaseException], Any], Any]):
        """Start now and hand the outcome to `callback` exactly once."""
        if self._task is None:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                callback(*self._run_blocking())
                return self

        task = self._start()

        def done(finished: asyncio.Future):
            if finished.cancelled():
                return callback(asyncio.CancelledError(), None)
            error = finished.exception()
            if error is not None:
                return callback(error, None)
            callback(None, finished.result())

        task.add_done_callback(done)
        return self


async def resolve(value):
    if isinstance(value, Deferred):
        return await value
    return value


def run(result: Deferred, callback: Optional[Callable] = None) -> Deferred:
    # Operations return their Deferred either way; a callback just starts it
    if callback is not None:
        result(callback)
    return result
