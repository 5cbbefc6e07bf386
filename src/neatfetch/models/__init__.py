from .body import Blob, FormData, FormFile, FormValue
from .exceptions import (
    BodyConsumedError,
    DeadlineExceeded,
    DecodeError,
    FetchError,
    HTTPError,
    RequestCancelled,
    RequestTimeout,
    TransportError,
)
from .result import FetchResult

__all__ = [
    "Blob",
    "BodyConsumedError",
    "DeadlineExceeded",
    "DecodeError",
    "FetchError",
    "FetchResult",
    "FormData",
    "FormFile",
    "FormValue",
    "HTTPError",
    "RequestCancelled",
    "RequestTimeout",
    "TransportError",
]
