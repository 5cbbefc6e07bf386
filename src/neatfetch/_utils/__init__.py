from ._body import SerializedBody, is_transport_body, serialize_body
from ._headers import has_header, normalize_headers
from ._ssl_context import get_httpx_client_kwargs
from ._url import compose_url, is_absolute_url, join_base_url, query_pairs

__all__ = [
    "SerializedBody",
    "compose_url",
    "get_httpx_client_kwargs",
    "has_header",
    "is_absolute_url",
    "is_transport_body",
    "join_base_url",
    "normalize_headers",
    "query_pairs",
    "serialize_body",
]
