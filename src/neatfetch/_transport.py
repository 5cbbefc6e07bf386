"""Transport boundary: the injected network primitive and its response shape.

The retry executor only relies on the :class:`Transport` and
:class:`RawResponse` protocols. :class:`HttpxTransport` is the default
implementation, built on ``httpx.AsyncClient``.
"""

import inspect
import json
from email.parser import BytesParser
from email.policy import HTTP
from logging import getLogger
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Iterable,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ._cancellation import CancellationToken
from ._utils import get_httpx_client_kwargs, has_header
from ._utils.constants import HEADER_CONTENT_TYPE, LOGGER_NAME
from .models.body import Blob, FormData, FormFile
from .models.exceptions import BodyConsumedError

logger = getLogger(LOGGER_NAME)


class TransportOptions(BaseModel):
    """Everything the transport needs besides the URL.

    Unknown keyword arguments are kept as extra fields and forwarded to the
    transport untouched (``model_extra``).
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        extra="allow",
    )

    method: str = "GET"
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)
    signal: Optional[CancellationToken] = None

    @property
    def passthrough(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


@runtime_checkable
class RawResponse(Protocol):
    """What a transport must return.

    Each body operation may be used once per response object; ``clone``
    returns an unread duplicate.
    """

    @property
    def status_code(self) -> int: ...

    @property
    def status_text(self) -> str: ...

    @property
    def headers(self) -> httpx.Headers: ...

    @property
    def url(self) -> str: ...

    @property
    def ok(self) -> bool: ...

    @property
    def body_used(self) -> bool: ...

    def clone(self) -> "RawResponse": ...

    async def json(self) -> Any: ...

    async def text(self) -> str: ...

    async def blob(self) -> Blob: ...

    async def array_buffer(self) -> bytes: ...

    async def form_data(self) -> FormData: ...

    async def stream(self) -> Optional[AsyncIterator[bytes]]: ...


class Transport(Protocol):
    def __call__(
        self, url: str, options: TransportOptions
    ) -> Awaitable[RawResponse]: ...


def is_ok_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def parse_form_data(content: bytes, content_type: str) -> FormData:
    """Parse an urlencoded or multipart/form-data body.

    Raises:
        ValueError: If the content type is not a form type.
    """
    media_type = content_type.split(";", 1)[0].strip().lower()

    if media_type == "application/x-www-form-urlencoded":
        params = httpx.QueryParams(content.decode("utf-8"))
        return FormData(list(params.multi_items()))

    if media_type == "multipart/form-data":
        if "boundary=" not in content_type.lower():
            raise ValueError("Multipart body without a boundary")
        header = f"Content-Type: {content_type}\r\n\r\n".encode("latin-1")
        message = BytesParser(policy=HTTP).parsebytes(header + content)
        if not message.is_multipart():
            raise ValueError("Malformed multipart body")

        form = FormData()
        for part in message.iter_parts():
            name = part.get_param("name", header="content-disposition")
            if name is None:
                continue
            payload = part.get_payload(decode=True) or b""
            filename = part.get_filename()
            if filename is not None:
                form.append(
                    str(name),
                    FormFile(
                        filename=filename,
                        content=payload,
                        content_type=part.get_content_type(),
                    ),
                )
            else:
                charset = part.get_content_charset() or "utf-8"
                form.append(str(name), payload.decode(charset))
        return form

    raise ValueError(f"Could not parse content of type {content_type!r} as form data")


class HttpxResponse:
    """:class:`RawResponse` over an already read ``httpx.Response``."""

    def __init__(self, response: httpx.Response, method: str = "GET") -> None:
        self._response = response
        self._method = method.upper()
        self._body_used = False

    @property
    def raw(self) -> httpx.Response:
        return self._response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def status_text(self) -> str:
        return self._response.reason_phrase

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def url(self) -> str:
        return str(self._response.url)

    @property
    def ok(self) -> bool:
        return is_ok_status(self.status_code)

    @property
    def body_used(self) -> bool:
        return self._body_used

    def clone(self) -> "HttpxResponse":
        if self._body_used:
            raise BodyConsumedError("Cannot clone a response whose body was read")
        return HttpxResponse(self._response, method=self._method)

    def _consume(self) -> bytes:
        if self._body_used:
            raise BodyConsumedError()
        self._body_used = True
        return self._response.content

    async def json(self) -> Any:
        return json.loads(self._consume())

    async def text(self) -> str:
        self._consume()
        return self._response.text

    async def blob(self) -> Blob:
        content = self._consume()
        return Blob(
            data=content,
            content_type=self._response.headers.get(HEADER_CONTENT_TYPE, ""),
        )

    async def array_buffer(self) -> bytes:
        return self._consume()

    async def form_data(self) -> FormData:
        content = self._consume()
        return parse_form_data(
            content, self._response.headers.get(HEADER_CONTENT_TYPE, "")
        )

    async def stream(self) -> Optional[AsyncIterator[bytes]]:
        if self._method == "HEAD" or self.status_code in (204, 304):
            return None
        self._consume()
        return self._response.aiter_bytes()

    def __repr__(self) -> str:
        return f"<HttpxResponse [{self.status_code} {self.status_text}]>"


async def _aiter_chunks(chunks: Iterable[Any]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)


class HttpxTransport:
    """Default transport issuing requests through ``httpx.AsyncClient``.

    Args:
        client: An existing client to reuse. When omitted a client is built
            from :func:`get_httpx_client_kwargs` plus ``client_kwargs`` and is
            closed by :meth:`aclose`.
    """

    def __init__(
        self, client: Optional[httpx.AsyncClient] = None, **client_kwargs: Any
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                **{**get_httpx_client_kwargs(), **client_kwargs}
            )
        self._client = client

    async def __call__(self, url: str, options: TransportOptions) -> HttpxResponse:
        headers = dict(options.headers)
        body_kwargs = await self._body_kwargs(options.body, headers)

        logger.debug(f"Request: {options.method} {url}")
        logger.debug(f"HEADERS: {headers}")

        response = await self._client.request(
            options.method,
            url,
            headers=headers,
            **body_kwargs,
            **options.passthrough,
        )
        logger.debug(f"Response: {response.status_code} {options.method} {url}")
        return HttpxResponse(response, method=options.method)

    @staticmethod
    async def _body_kwargs(body: Any, headers: dict[str, str]) -> dict[str, Any]:
        """Map a transport body onto ``AsyncClient.request`` keyword arguments.

        File objects are read into memory and sync byte iterators are wrapped
        in an async generator; only async iterables are streamed as they are.
        Streams are single use, so a retried attempt sends what is left of them.
        """
        if body is None:
            return {}

        if isinstance(body, Blob):
            if body.content_type and not has_header(headers, HEADER_CONTENT_TYPE):
                headers[HEADER_CONTENT_TYPE] = body.content_type
            return {"content": body.data}

        if isinstance(body, FormData):
            data: dict[str, list[str]] = {}
            for name, value in body.fields():
                data.setdefault(name, []).append(value)
            files = [
                (name, (file.filename, file.content, file.content_type))
                for name, file in body.files()
            ]
            if files:
                return {"data": data, "files": files}
            return {"data": data}

        if isinstance(body, (bytearray, memoryview)):
            return {"content": bytes(body)}

        if isinstance(body, (str, bytes)) or hasattr(body, "__aiter__"):
            return {"content": body}

        if hasattr(body, "read"):
            content = body.read()
            if inspect.isawaitable(content):
                content = await content
            return {"content": content}

        if isinstance(body, Iterable):
            return {"content": _aiter_chunks(body)}

        return {"content": body}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


_default_transport: Optional[Transport] = None


def get_default_transport() -> Transport:
    """Return the process-wide transport used when none is injected."""
    global _default_transport
    if _default_transport is None:
        _default_transport = HttpxTransport()
    return _default_transport


def set_default_transport(transport: Union[Transport, None]) -> None:
    """Replace the process-wide transport; ``None`` restores the lazy default."""
    global _default_transport
    _default_transport = transport
