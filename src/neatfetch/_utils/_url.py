"""URL composition: base URL joining, relative resolution and query encoding."""

from typing import Any, Mapping, Optional

import httpx

DEFAULT_ORIGIN = "http://localhost"

QueryParams = Mapping[str, Any]


def is_absolute_url(target: str) -> bool:
    try:
        return httpx.URL(target).is_absolute_url
    except (httpx.InvalidURL, TypeError):
        return False


def join_base_url(base_url: str, target: str) -> str:
    """Join a base and a relative target with exactly one slash.

    Only a single trailing slash is stripped from the base and a single
    leading slash from the target, matching how the caller wrote them.
    """
    base = base_url[:-1] if base_url.endswith("/") else base_url
    path = target[1:] if target.startswith("/") else target
    return f"{base}/{path}"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def query_pairs(params: Optional[QueryParams]) -> list[tuple[str, str]]:
    """Flatten a params mapping into ordered ``(key, value)`` pairs.

    ``None`` values are skipped and list or tuple values expand into one pair
    per element.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend(
                (str(key), _query_value(item)) for item in value if item is not None
            )
        else:
            pairs.append((str(key), _query_value(value)))
    return pairs


def compose_url(
    target: str,
    base_url: Optional[str] = None,
    params: Optional[QueryParams] = None,
    *,
    fallback_origin: Optional[str] = None,
) -> str:
    """Build a fully qualified, query-encoded URL.

    Args:
        target: Absolute URL or path.
        base_url: Prefix applied when ``target`` is relative.
        params: Query parameters appended after any query already present in
            ``target``. Values are encoded exactly once, so pre-encoded input
            is encoded again.
        fallback_origin: Origin used to resolve a target that is still
            relative after applying ``base_url``. Defaults to
            ``http://localhost``.

    Returns:
        The serialized absolute URL.

    Examples:
        >>> compose_url("users", "https://api.test/", {"page": 1, "tag": ["a", "b"]})
        'https://api.test/users?page=1&tag=a&tag=b'
    """
    joined = target
    if base_url and not is_absolute_url(target):
        joined = join_base_url(base_url, target)

    if is_absolute_url(joined):
        url = httpx.URL(joined)
    else:
        url = httpx.URL(fallback_origin or DEFAULT_ORIGIN).join(joined)

    pairs = query_pairs(params)
    if pairs:
        encoded = str(httpx.QueryParams(pairs))
        existing = url.query.decode("ascii")
        query = f"{existing}&{encoded}" if existing else encoded
        url = url.copy_with(query=query.encode("ascii"))

    return str(url)
