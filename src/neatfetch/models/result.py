from typing import Any, Generic, NamedTuple, Optional, TypeVar

from .exceptions import FetchError

T = TypeVar("T")


class FetchResult(NamedTuple, Generic[T]):
    """A value-or-error pair returned by every terminal operation.

    Unpack it and check the error before trusting the value:

    ```python
    data, error = await fetch("https://api.example.com/users").json()
    if error:
        ...
    ```

    A successful decode of an empty body is ``(None, None)``; a failure is
    always ``(None, error)``.
    """

    value: Optional[T]
    error: Optional[FetchError]

    @classmethod
    def ok(cls, value: Any) -> "FetchResult[Any]":
        return cls(value, None)

    @classmethod
    def fail(cls, error: FetchError) -> "FetchResult[Any]":
        if error is None:
            raise ValueError("A failed result requires an error")
        return cls(None, error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def unwrap(self) -> Optional[T]:
        """Return the value, raising the error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value
