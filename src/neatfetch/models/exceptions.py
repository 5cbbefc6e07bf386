from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .._transport import RawResponse


class FetchError(Exception):
    """Base class for every failure returned in the error slot of a result."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class HTTPError(FetchError):
    """The server answered with a status outside 200-399.

    Attributes:
        status_code: Numeric HTTP status.
        status_text: Reason phrase sent by the server.
        url: The composed request URL.
        response: An unread duplicate of the raw response, so the body can be
            inspected with ``FetchRequest.from_response``.
    """

    def __init__(
        self,
        status_code: int,
        status_text: str,
        url: str,
        response: Optional["RawResponse"] = None,
    ):
        self.status_code = status_code
        self.status_text = status_text
        self.url = url
        self.response = response
        super().__init__(f"HTTP {status_code}: {status_text}")


class TransportError(FetchError):
    """The transport call itself failed (DNS, refused connection, reset...).

    Attributes:
        url: The composed request URL.
        retryable: False when the transport rejected the call outright (bad
            arguments, closed client), so sending it again cannot help.
    """

    def __init__(
        self, message: str, url: Optional[str] = None, retryable: bool = True
    ):
        self.url = url
        self.retryable = retryable
        super().__init__(message)


class RequestTimeout(TransportError):
    def __init__(self, timeout: float, url: Optional[str] = None):
        self.timeout = timeout
        super().__init__(f"Request timed out after {timeout}s", url=url)


class DeadlineExceeded(RequestTimeout):
    """The overall deadline spanning every attempt elapsed."""

    def __init__(self, timeout: float, url: Optional[str] = None):
        super().__init__(timeout, url=url)
        self.message = f"Deadline of {timeout}s exceeded"
        self.args = (self.message,)


class RequestCancelled(FetchError):
    """The caller's cancellation token fired. Never retried."""

    def __init__(self, message: str = "Request was cancelled"):
        super().__init__(message)


class DecodeError(FetchError):
    """A successful response body could not be read as the requested kind."""


class BodyConsumedError(FetchError):
    def __init__(self, message: str = "Response body has already been consumed"):
        super().__init__(message)
