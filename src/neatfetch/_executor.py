import asyncio
import math
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from logging import getLogger
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
)

from ._cancellation import CancellationToken, LinkedToken, race
from ._transport import RawResponse, Transport, TransportOptions
from ._utils.constants import DEFAULT_RETRY_DELAY, HEADER_RETRY_AFTER, LOGGER_NAME
from .models.exceptions import (
    DeadlineExceeded,
    FetchError,
    HTTPError,
    RequestCancelled,
    RequestTimeout,
    TransportError,
)
from .models.result import FetchResult

Sleep = Callable[[float], Awaitable[Any]]

# raised by a transport that was called wrongly, never by the network
PROGRAMMING_ERRORS = (
    TypeError,
    ValueError,
    AttributeError,
    LookupError,
    NotImplementedError,
    RuntimeError,
)


@dataclass(frozen=True)
class ComposedRequest:
    """The fully resolved URL and transport options of a request.

    Built once per ``FetchRequest`` and reused by every attempt.
    """

    url: str
    options: TransportOptions


def is_retryable_exception(exception: BaseException) -> bool:
    # timeouts of a single attempt are retried, the overall deadline is not
    if not isinstance(exception, TransportError) or not exception.retryable:
        return False
    return not isinstance(exception, DeadlineExceeded)


def is_retryable_status_code(response: RawResponse) -> bool:
    return response.status_code >= 500 or response.status_code == 429


def parse_retry_after(headers: Any) -> float:
    """Parse a Retry-After header (RFC 7231) into seconds to wait.

    Args:
        headers: Response headers supporting case-insensitive ``get``.

    Returns:
        float: Seconds to wait, ``0.0`` when the header is missing, invalid or
            in the past.
    """
    retry_after = headers.get(HEADER_RETRY_AFTER)
    if not retry_after:
        return 0.0

    try:
        seconds = float(retry_after)
        return max(seconds, 0.0) if math.isfinite(seconds) else 0.0
    except ValueError:
        pass

    try:
        retry_date = parsedate_to_datetime(retry_after)
        delta = (retry_date - datetime.now(retry_date.tzinfo)).total_seconds()
        return max(delta, 0.0)
    except (ValueError, TypeError):
        return 0.0


def _last_outcome(retry_state: RetryCallState) -> Any:
    # hand back the final response (or raise the final error) instead of RetryError
    assert retry_state.outcome is not None
    return retry_state.outcome.result()


class RetryExecutor:
    """Runs the attempt loop for one composed request.

    Each attempt gets a fresh cancellation token linked to the caller's
    ``signal`` and to the overall deadline, plus its own ``timeout`` timer.
    Failed statuses >= 500 and 429 are retried, as are transport failures
    and per-attempt timeouts; caller cancellation and the overall deadline
    are terminal. Backoff is linear: ``retry_delay * attempt_number``.

    Nothing is raised from :meth:`execute`: every outcome is a
    :class:`FetchResult`.
    """

    def __init__(
        self,
        composed: ComposedRequest,
        *,
        transport: Transport,
        timeout: Optional[float] = None,
        total_timeout: Optional[float] = None,
        retry: int = 0,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        signal: Optional[CancellationToken] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._logger = getLogger(LOGGER_NAME)
        self._composed = composed
        self._transport = transport
        self._timeout = timeout
        self._total_timeout = total_timeout
        self._retry = retry
        self._retry_delay = retry_delay
        self._signal = signal
        self._sleep = sleep
        self.attempts = 0

    @property
    def url(self) -> str:
        return self._composed.url

    @property
    def method(self) -> str:
        return self._composed.options.method

    async def execute(self) -> FetchResult[RawResponse]:
        deadline: Optional[CancellationToken] = None
        deadline_timer: Optional[asyncio.TimerHandle] = None
        if self._total_timeout:
            deadline = CancellationToken()
            deadline_timer = deadline.cancel_after(
                self._total_timeout, DeadlineExceeded(self._total_timeout, self.url)
            )
        execution_token = CancellationToken.link(self._signal, deadline)

        async def sleep(seconds: float) -> None:
            await self._cancellable(self._sleep(seconds), execution_token)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._retry + 1),
            wait=wait_incrementing(
                start=self._retry_delay, increment=self._retry_delay
            ),
            retry=(
                retry_if_exception(is_retryable_exception)
                | retry_if_result(is_retryable_status_code)
            ),
            retry_error_callback=_last_outcome,
            before_sleep=self._log_retry,
            sleep=sleep,
        )

        try:
            response = await retrying(self._attempt, execution_token, sleep)
        except FetchError as error:
            self._logger.debug(f"Request failed: {self.method} {self.url}: {error}")
            return FetchResult.fail(error)
        finally:
            if deadline_timer is not None:
                deadline_timer.cancel()
            execution_token.release()

        if not response.ok:
            return FetchResult.fail(
                HTTPError(
                    response.status_code,
                    response.status_text,
                    self.url,
                    response=response.clone(),
                )
            )

        return FetchResult.ok(response)

    async def _attempt(
        self, execution_token: CancellationToken, sleep: Sleep
    ) -> RawResponse:
        self.attempts += 1
        self._logger.debug(
            f"Request: {self.method} {self.url} (attempt {self.attempts})"
        )

        attempt_token = CancellationToken.link(execution_token)
        timer: Optional[asyncio.TimerHandle] = None
        if self._timeout:
            timer = attempt_token.cancel_after(
                self._timeout, RequestTimeout(self._timeout, self.url)
            )

        options = self._composed.options.model_copy(update={"signal": attempt_token})
        try:
            response = await self._cancellable(
                self._transport(self.url, options), attempt_token
            )
        finally:
            if timer is not None:
                timer.cancel()
            attempt_token.release()

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers)
            if retry_after > 0:
                self._logger.warning(
                    f"Rate limited (429). Waiting {retry_after:.2f}s "
                    f"(attempt {self.attempts}/{self._retry + 1})"
                )
                await sleep(retry_after)

        return response

    async def _cancellable(self, awaitable: Awaitable[Any], token: LinkedToken) -> Any:
        """Await ``awaitable`` racing ``token``; every failure becomes a FetchError."""
        try:
            return await race(awaitable, token)
        except asyncio.CancelledError:
            raise
        except FetchError:
            if not token.cancelled:
                raise
            raise self._cancellation_error(token) from None
        except Exception as error:
            if token.cancelled:
                raise self._cancellation_error(token) from error
            message = type(error).__name__
            if str(error):
                message = f"{message}: {error}"
            raise TransportError(
                message,
                url=self.url,
                retryable=not isinstance(error, PROGRAMMING_ERRORS),
            ) from error

    def _cancellation_error(self, token: CancellationToken) -> FetchError:
        if self._signal is not None and self._signal.cancelled:
            reason = self._signal.reason
            if isinstance(reason, RequestCancelled):
                return reason
            error = RequestCancelled(f"Request was cancelled: {reason}")
            error.__cause__ = reason
            return error

        reason = token.reason
        if isinstance(reason, FetchError):
            return reason
        return RequestCancelled(f"Request was cancelled: {reason}")

    def _log_retry(self, retry_state: RetryCallState) -> None:
        assert retry_state.outcome is not None
        if retry_state.outcome.failed:
            cause: Any = retry_state.outcome.exception()
        else:
            result = retry_state.outcome.result()
            cause = f"HTTP {result.status_code}"
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self._logger.warning(
            f"Retrying {self.method} {self.url} in {delay:.2f}s "
            f"(attempt {retry_state.attempt_number}/{self._retry + 1}): {cause}"
        )
