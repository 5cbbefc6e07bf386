"""neatfetch - HTTP requests that return ``(value, error)`` instead of raising.

Layers per-attempt timeouts, bounded retries with linear backoff, Retry-After
cooperation, URL and query composition and JSON body serialization over an
injectable async transport (``httpx`` by default).
"""

from ._cancellation import CancellationToken
from ._config import RequestConfig, Settings, clear_settings_cache, get_settings
from ._decoder import ResponseDecoder, from_response
from ._executor import ComposedRequest, RetryExecutor, parse_retry_after
from ._request import FetchRequest, create_fetch, fetch
from ._transport import (
    HttpxResponse,
    HttpxTransport,
    RawResponse,
    Transport,
    TransportOptions,
    get_default_transport,
    set_default_transport,
)
from ._utils import compose_url, normalize_headers, serialize_body
from .models import (
    Blob,
    BodyConsumedError,
    DeadlineExceeded,
    DecodeError,
    FetchError,
    FetchResult,
    FormData,
    FormFile,
    HTTPError,
    RequestCancelled,
    RequestTimeout,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "Blob",
    "BodyConsumedError",
    "CancellationToken",
    "ComposedRequest",
    "DeadlineExceeded",
    "DecodeError",
    "FetchError",
    "FetchRequest",
    "FetchResult",
    "FormData",
    "FormFile",
    "HTTPError",
    "HttpxResponse",
    "HttpxTransport",
    "RawResponse",
    "RequestCancelled",
    "RequestConfig",
    "RequestTimeout",
    "ResponseDecoder",
    "RetryExecutor",
    "Settings",
    "Transport",
    "TransportError",
    "TransportOptions",
    "clear_settings_cache",
    "compose_url",
    "create_fetch",
    "fetch",
    "from_response",
    "get_default_transport",
    "get_settings",
    "normalize_headers",
    "parse_retry_after",
    "serialize_body",
    "set_default_transport",
]
