from typing import Any, Iterable, Mapping, Tuple, Union

HeadersInput = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]


def normalize_headers(headers: HeadersInput) -> dict[str, str]:
    """Canonicalize a header collection into a lowercase-keyed dict.

    Accepts a mapping (including ``httpx.Headers``), a sequence of
    ``(name, value)`` pairs, or ``None``. Later duplicates win.
    """
    if not headers:
        return {}

    if isinstance(headers, Mapping):
        entries = headers.items()
    else:
        entries = headers

    return {str(key).lower(): str(value) for key, value in entries}


def has_header(headers: Mapping[str, str], name: str) -> bool:
    name = name.lower()
    return any(key.lower() == name for key in headers)
