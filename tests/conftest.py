import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Union

import httpx
import pytest

# Ensure local source package (src/neatfetch) is importable before tests collect
_PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
_SRC_PATH: Path = _PROJECT_ROOT / "src"
if _SRC_PATH.exists():
    sys.path.insert(0, str(_SRC_PATH))

from neatfetch import (  # noqa: E402
    HttpxResponse,
    TransportOptions,
    clear_settings_cache,
    set_default_transport,
)

Outcome = Union[int, httpx.Response, BaseException, Callable[..., Any]]


class FakeTransport:
    """Scripted transport: plays ``outcomes`` in order, repeating the last one.

    An outcome is a status code, an ``httpx.Response``, an exception to raise,
    or an async callable ``(url, options)`` returning either of the first two.
    """

    def __init__(self, *outcomes: Outcome) -> None:
        self._outcomes = list(outcomes) or [200]
        self.calls: list[tuple[str, TransportOptions]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def __call__(self, url: str, options: TransportOptions) -> HttpxResponse:
        self.calls.append((url, options))
        outcome = self._outcomes[min(len(self.calls), len(self._outcomes)) - 1]

        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome) and not isinstance(outcome, httpx.Response):
            outcome = await outcome(url, options)
        if isinstance(outcome, int):
            outcome = httpx.Response(outcome)

        outcome.request = httpx.Request(options.method, url)
        return HttpxResponse(outcome, method=options.method)


async def never_settles(url: str, options: TransportOptions) -> httpx.Response:
    await asyncio.Event().wait()
    raise AssertionError("unreachable")


@pytest.fixture
def transport_factory() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Clean NEATFETCH_* environment variables and cached settings before each test."""
    for name in (
        "NEATFETCH_TIMEOUT",
        "NEATFETCH_TOTAL_TIMEOUT",
        "NEATFETCH_RETRY",
        "NEATFETCH_RETRY_DELAY",
        "NEATFETCH_BASE_URL",
        "NEATFETCH_ORIGIN",
        "NEATFETCH_DISABLE_SSL",
        "NEATFETCH_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
    set_default_transport(None)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    """Records requested delays instead of waiting."""

    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return sleep


@pytest.fixture
def hanging_transport() -> Callable[..., Any]:
    return never_settles
