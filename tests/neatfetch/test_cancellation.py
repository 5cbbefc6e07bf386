import asyncio

import pytest

from neatfetch import CancellationToken, RequestCancelled
from neatfetch._cancellation import race


class TestCancellationToken:
    def test_default_reason(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        assert isinstance(token.reason, RequestCancelled)

    def test_first_reason_wins(self) -> None:
        token = CancellationToken()
        first, second = ValueError("first"), ValueError("second")
        token.cancel(first)
        token.cancel(second)
        assert token.reason is first

    def test_callbacks_run_once_and_can_unregister(self) -> None:
        token = CancellationToken()
        seen: list[BaseException] = []
        unregister = token.on_cancel(seen.append)
        other: list[BaseException] = []
        token.on_cancel(other.append)
        unregister()
        token.cancel()
        token.cancel()
        assert seen == []
        assert len(other) == 1

    def test_callback_on_cancelled_token_runs_immediately(self) -> None:
        token = CancellationToken()
        token.cancel()
        seen: list[BaseException] = []
        token.on_cancel(seen.append)
        assert seen == [token.reason]

    def test_linked_token_follows_any_parent(self) -> None:
        a, b = CancellationToken(), CancellationToken()
        child = CancellationToken.link(a, None, b)
        b.cancel(ValueError("b"))
        assert child.cancelled
        assert str(child.reason) == "b"
        assert not a.cancelled

    def test_released_link_ignores_parent(self) -> None:
        parent = CancellationToken()
        child = CancellationToken.link(parent)
        child.release()
        parent.cancel()
        assert not child.cancelled

    @pytest.mark.asyncio
    async def test_cancel_after(self) -> None:
        token = CancellationToken()
        token.cancel_after(0.01, TimeoutError("late"))
        reason = await asyncio.wait_for(token.wait(), timeout=1)
        assert isinstance(reason, TimeoutError)

    @pytest.mark.asyncio
    async def test_disarmed_timer_never_fires(self) -> None:
        token = CancellationToken()
        handle = token.cancel_after(0.01)
        handle.cancel()
        await asyncio.sleep(0.03)
        assert not token.cancelled


class TestRace:
    @pytest.mark.asyncio
    async def test_result_wins(self) -> None:
        async def work() -> int:
            return 42

        assert await race(work(), CancellationToken()) == 42

    @pytest.mark.asyncio
    async def test_token_wins_and_work_is_cancelled(self) -> None:
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def work() -> None:
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        token = CancellationToken()
        task = asyncio.ensure_future(race(work(), token))
        await started.wait()
        token.cancel(ValueError("stop"))

        with pytest.raises(ValueError, match="stop"):
            await task
        await asyncio.wait_for(cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_already_cancelled_token_raises_immediately(self) -> None:
        calls = 0

        async def work() -> None:
            nonlocal calls
            calls += 1

        token = CancellationToken()
        token.cancel()
        coroutine = work()
        with pytest.raises(RequestCancelled):
            await race(coroutine, token)
        coroutine.close()
        assert calls == 0
