"""Turn raw responses into value-or-error results."""

from logging import getLogger
from typing import Any, AsyncIterator, Literal, Optional

from ._transport import RawResponse
from ._utils.constants import HEADER_CONTENT_LENGTH, LOGGER_NAME
from .models.body import Blob, FormData
from .models.exceptions import DecodeError
from .models.result import FetchResult

logger = getLogger(LOGGER_NAME)

BodyKind = Literal["json", "text", "blob", "array_buffer", "form_data", "stream"]

BODY_KINDS: tuple[str, ...] = (
    "json",
    "text",
    "blob",
    "array_buffer",
    "form_data",
    "stream",
)


def has_empty_body(response: RawResponse) -> bool:
    return (
        response.status_code == 204
        or response.headers.get(HEADER_CONTENT_LENGTH) == "0"
    )


async def read_body(response: RawResponse, kind: BodyKind) -> FetchResult[Any]:
    """Call the body operation ``kind`` on ``response``.

    Any failure (malformed body, body already consumed...) comes back as a
    :class:`DecodeError` in the error slot.
    """
    if kind not in BODY_KINDS:
        raise ValueError(f"Unknown body kind: {kind!r}")

    try:
        value = await getattr(response, kind)()
    except Exception as error:
        logger.debug(f"Could not decode response as {kind}: {error!r}")
        decode_error = DecodeError(f"Could not decode response as {kind}: {error}")
        decode_error.__cause__ = error
        return FetchResult.fail(decode_error)

    return FetchResult.ok(value)


async def decode(response: RawResponse, kind: BodyKind) -> FetchResult[Any]:
    """Decode a successful response.

    Same as :func:`read_body`, except that an empty JSON body (status 204 or
    ``Content-Length: 0``) decodes to ``(None, None)``.
    """
    if kind == "json" and has_empty_body(response):
        return FetchResult.ok(None)
    return await read_body(response, kind)


class ResponseDecoder:
    """Decoding operations over a response the caller already holds.

    Typically used on ``HTTPError.response`` to read an error body:

    ```python
    _, error = await fetch(url).json()
    if isinstance(error, HTTPError):
        details, _ = await request.from_response(error.response).json()
    ```
    """

    def __init__(self, response: RawResponse) -> None:
        self._response = response

    async def json(self) -> FetchResult[Any]:
        return await read_body(self._response, "json")

    async def text(self) -> FetchResult[str]:
        return await read_body(self._response, "text")

    async def blob(self) -> FetchResult[Blob]:
        return await read_body(self._response, "blob")

    async def array_buffer(self) -> FetchResult[bytes]:
        return await read_body(self._response, "array_buffer")

    async def form_data(self) -> FetchResult[FormData]:
        return await read_body(self._response, "form_data")


def from_response(response: RawResponse) -> ResponseDecoder:
    return ResponseDecoder(response)


StreamResult = FetchResult[Optional[AsyncIterator[bytes]]]
