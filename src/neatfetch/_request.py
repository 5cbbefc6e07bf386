import asyncio
import threading
from typing import Any, AsyncIterator, Callable, Optional

from ._cancellation import CancellationToken
from ._config import RequestConfig, Settings, get_settings
from ._decoder import BodyKind, ResponseDecoder, decode
from ._executor import ComposedRequest, RetryExecutor
from ._transport import RawResponse, TransportOptions, get_default_transport
from ._utils import compose_url, normalize_headers, serialize_body
from ._utils.constants import DEFAULT_RETRY_DELAY
from .models.body import Blob, FormData
from .models.result import FetchResult


class FetchRequest:
    """Chainable, immutable request that reports failures as values.

    Configuration methods (``timeout``, ``retry``, ``base_url``, ``headers``,
    ``query``, ``signal``, ``clone``) return new requests and never send
    anything. The first consumption (``execute`` or any body method) runs the
    retry loop once; later consumptions of the same instance reuse that
    outcome.

    Examples:
        ```python
        from neatfetch import fetch

        users = fetch("/users", base_url="https://api.example.com").retry(2)

        data, error = await users.query({"page": 1}).json()
        if error:
            print(error)
        ```
    """

    def __init__(
        self, url: str, config: Optional[RequestConfig] = None, **overrides: Any
    ) -> None:
        if config is None:
            config = RequestConfig(**overrides)
        elif overrides:
            config = config.derive(**overrides)

        self._target = url
        self._config = config
        self._settings: Settings = get_settings()
        self._composed = ComposedRequest(
            url=compose_url(
                url,
                config.base_url or self._settings.base_url,
                config.params,
                fallback_origin=self._settings.origin,
            ),
            options=TransportOptions(
                method=config.method,
                body=config.body,
                headers=dict(config.headers),
                signal=config.signal,
                **config.passthrough,
            ),
        )
        self._execution: Optional["asyncio.Future[FetchResult[RawResponse]]"] = None
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return self._composed.url

    @property
    def config(self) -> RequestConfig:
        return self._config

    @property
    def composed(self) -> ComposedRequest:
        return self._composed

    def _derive(self, **overrides: Any) -> "FetchRequest":
        return FetchRequest(self._target, self._config.derive(**overrides))

    def _executor(self) -> RetryExecutor:
        config, settings = self._config, self._settings
        return RetryExecutor(
            self._composed,
            transport=config.transport or get_default_transport(),
            timeout=config.timeout if config.timeout is not None else settings.timeout,
            total_timeout=(
                config.total_timeout
                if config.total_timeout is not None
                else settings.total_timeout
            ),
            retry=config.retry if config.retry is not None else settings.retry,
            retry_delay=(
                config.retry_delay
                if config.retry_delay is not None
                else settings.retry_delay
            ),
            signal=config.signal,
        )

    async def execute(self) -> FetchResult[RawResponse]:
        """Send the request (once) and return the raw response or the error.

        Safe to call any number of times: only the first call reaches the
        transport. Cancelling one awaiting caller does not cancel the shared
        execution.
        """
        with self._lock:
            if self._execution is None:
                self._execution = asyncio.ensure_future(self._executor().execute())
            execution = self._execution
        return await asyncio.shield(execution)

    async def _decode(self, kind: BodyKind) -> FetchResult[Any]:
        response, error = await self.execute()
        if error is not None:
            return FetchResult.fail(error)
        assert response is not None
        return await decode(response, kind)

    async def json(self) -> FetchResult[Any]:
        return await self._decode("json")

    async def text(self) -> FetchResult[str]:
        return await self._decode("text")

    async def blob(self) -> FetchResult[Blob]:
        return await self._decode("blob")

    async def array_buffer(self) -> FetchResult[bytes]:
        return await self._decode("array_buffer")

    async def form_data(self) -> FetchResult[FormData]:
        return await self._decode("form_data")

    async def stream(self) -> FetchResult[Optional[AsyncIterator[bytes]]]:
        return await self._decode("stream")

    def _with_body(self, method: str, data: Any) -> "FetchRequest":
        serialized = serialize_body(data, self._config.headers)
        return self._derive(
            method=method,
            body=serialized.body,
            headers={**self._config.headers, **serialized.headers},
        )

    async def get(self) -> FetchResult[Any]:
        return await self._derive(method="GET").json()

    async def post(self, data: Any = None) -> FetchResult[Any]:
        return await self._with_body("POST", data).json()

    async def put(self, data: Any = None) -> FetchResult[Any]:
        return await self._with_body("PUT", data).json()

    async def patch(self, data: Any = None) -> FetchResult[Any]:
        return await self._with_body("PATCH", data).json()

    async def delete(self) -> FetchResult[RawResponse]:
        return await self._derive(method="DELETE").execute()

    async def head(self) -> FetchResult[RawResponse]:
        return await self._derive(method="HEAD").execute()

    async def options(self) -> FetchResult[RawResponse]:
        return await self._derive(method="OPTIONS").execute()

    def clone(self) -> "FetchRequest":
        return self._derive()

    def timeout(self, seconds: float) -> "FetchRequest":
        """Per-attempt timeout; every retry gets a fresh window."""
        return self._derive(timeout=seconds)

    def total_timeout(self, seconds: float) -> "FetchRequest":
        """Deadline covering every attempt and backoff; never retried."""
        return self._derive(total_timeout=seconds)

    def retry(self, count: int, delay: float = DEFAULT_RETRY_DELAY) -> "FetchRequest":
        return self._derive(retry=count, retry_delay=delay)

    def base_url(self, url: str) -> "FetchRequest":
        return self._derive(base_url=url)

    def headers(self, request_headers: Any) -> "FetchRequest":
        return self._derive(
            headers={**self._config.headers, **normalize_headers(request_headers)}
        )

    def query(self, query_params: dict[str, Any]) -> "FetchRequest":
        return self._derive(params={**self._config.params, **query_params})

    def signal(self, token: Optional[CancellationToken]) -> "FetchRequest":
        return self._derive(signal=token)

    def from_response(self, response: RawResponse) -> ResponseDecoder:
        return ResponseDecoder(response)

    def __repr__(self) -> str:
        return f"<FetchRequest {self._config.method} {self.url}>"


def fetch(
    url: str, config: Optional[RequestConfig] = None, **overrides: Any
) -> FetchRequest:
    """Create a request for ``url``.

    Args:
        url: Absolute URL, or a path resolved against ``base_url``.
        config: A prepared :class:`RequestConfig`.
        **overrides: Config fields (``method``, ``headers``, ``params``,
            ``timeout``, ``retry``, ``transport``...) and transport
            pass-through options.
    """
    return FetchRequest(url, config, **overrides)


def create_fetch(
    base_config: Optional[RequestConfig] = None, **overrides: Any
) -> Callable[..., FetchRequest]:
    """Build a ``fetch`` with shared defaults.

    The returned factory merges its own config over the base one: header and
    query mappings are merged key by key (factory call wins), every other
    field explicitly set on the call replaces the base value, and the
    transport falls back from the call to the base to the process default.

    Examples:
        ```python
        api = create_fetch(base_url="https://api.example.com", retry=2)
        user, error = await api("/users/1", headers={"x-trace": "1"}).json()
        ```
    """
    if base_config is None:
        base = RequestConfig(**overrides)
    else:
        base = base_config.derive(**overrides) if overrides else base_config

    def factory(
        url: str, config: Optional[RequestConfig] = None, **instance_overrides: Any
    ) -> FetchRequest:
        if config is None:
            instance = RequestConfig(**instance_overrides)
        elif instance_overrides:
            instance = config.derive(**instance_overrides)
        else:
            instance = config

        base_fields = base.copy_fields()
        instance_fields = instance.copy_fields()

        merged = {
            **{key: base_fields[key] for key in base.explicit_fields},
            **{key: instance_fields[key] for key in instance.explicit_fields},
            "headers": {**base_fields["headers"], **instance_fields["headers"]},
            "params": {**base_fields["params"], **instance_fields["params"]},
            "transport": instance.transport or base.transport,
        }
        return FetchRequest(url, RequestConfig(**merged))

    return factory
