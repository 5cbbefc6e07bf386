from collections.abc import Iterator
from typing import Any, Mapping, NamedTuple, Optional

from pydantic_core import to_json

from ..models.body import Blob, FormData
from ._headers import has_header
from .constants import HEADER_CONTENT_TYPE

JSON_CONTENT_TYPE = "application/json"

_PASSTHROUGH_TYPES = (str, bytes, bytearray, memoryview, Blob, FormData)


class SerializedBody(NamedTuple):
    body: Any = None
    headers: dict[str, str] = {}


def is_transport_body(payload: Any) -> bool:
    """Whether ``payload`` can be handed to the transport unchanged."""
    if isinstance(payload, _PASSTHROUGH_TYPES):
        return True
    # file objects and byte streams
    return (
        hasattr(payload, "read")
        or hasattr(payload, "__aiter__")
        or isinstance(payload, Iterator)
    )


def serialize_body(
    payload: Any, headers: Optional[Mapping[str, str]] = None
) -> SerializedBody:
    """Turn a request payload into a transport body.

    Strings, bytes, blobs, forms, files and byte streams pass through without
    headers so the transport picks its own defaults. Anything else is JSON
    encoded and gets ``content-type: application/json`` unless the caller
    already set a content type.
    """
    if payload is None:
        return SerializedBody()

    if is_transport_body(payload):
        return SerializedBody(body=payload)

    extra_headers: dict[str, str] = {}
    if not has_header(headers or {}, HEADER_CONTENT_TYPE):
        extra_headers[HEADER_CONTENT_TYPE] = JSON_CONTENT_TYPE

    return SerializedBody(body=to_json(payload).decode("utf-8"), headers=extra_headers)
