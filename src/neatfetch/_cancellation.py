"""Cooperative cancellation for in-flight requests."""

import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

from .models.exceptions import RequestCancelled

T = TypeVar("T")


class CancellationToken:
    """A handle that, once cancelled, aborts whatever attempt is racing it.

    Tokens can be created outside a running event loop. Cancelling is
    idempotent and the first reason wins.

    Examples:
        ```python
        token = CancellationToken()
        request = fetch("https://api.example.com/slow", signal=token)
        task = asyncio.create_task(request.execute())
        token.cancel()
        response, error = await task  # error is RequestCancelled
        ```
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[BaseException] = None
        self._callbacks: List[Callable[[BaseException], None]] = []

    @classmethod
    def link(cls, *parents: Optional["CancellationToken"]) -> "LinkedToken":
        """Create a child token that fires as soon as any parent fires."""
        return LinkedToken(*parents)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[BaseException]:
        return self._reason

    def cancel(self, reason: Optional[BaseException] = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason if reason is not None else RequestCancelled()
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self._reason)

    def cancel_after(
        self, delay: float, reason: Optional[BaseException] = None
    ) -> asyncio.TimerHandle:
        """Schedule cancellation on the running loop; cancel the handle to disarm."""
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self.cancel, reason)

    def on_cancel(
        self, callback: Callable[[BaseException], None]
    ) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it.

        If the token is already cancelled the callback runs immediately.
        """
        if self._reason is not None:
            callback(self._reason)
            return lambda: None

        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    async def wait(self) -> BaseException:
        await self._event.wait()
        assert self._reason is not None
        return self._reason

    def __repr__(self) -> str:
        state = f"cancelled reason={self._reason!r}" if self.cancelled else "active"
        return f"<{type(self).__name__} {state}>"


class LinkedToken(CancellationToken):
    """Token fired by its own ``cancel`` or by any of its parents."""

    def __init__(self, *parents: Optional[CancellationToken]) -> None:
        super().__init__()
        self._unregister = [
            parent.on_cancel(self.cancel) for parent in parents if parent is not None
        ]

    def release(self) -> None:
        """Detach from the parents once the attempt owning this token settles."""
        for unregister in self._unregister:
            unregister()
        self._unregister = []


def _discard_outcome(task: "asyncio.Future[object]") -> None:
    if not task.cancelled():
        task.exception()


async def race(awaitable: Awaitable[T], token: CancellationToken) -> T:
    """Await ``awaitable`` unless ``token`` fires first.

    Raises the token's reason when it wins; the losing task is cancelled and
    not awaited, so a transport that ignores cancellation cannot hang us.
    """
    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise token.reason  # type: ignore[misc]

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait(
            {task, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
        if task in done:
            return task.result()
        raise waiter.result()
    finally:
        for pending in (task, waiter):
            if not pending.done():
                pending.cancel()
                pending.add_done_callback(_discard_outcome)
