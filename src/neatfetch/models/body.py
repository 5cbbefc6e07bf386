from typing import Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict


class Blob(BaseModel):
    """Raw bytes together with their media type."""

    model_config = ConfigDict(frozen=True)

    data: bytes = b""
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.data)

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding)


class FormFile(BaseModel):
    """A file part of a multipart form."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes = b""
    content_type: str = "application/octet-stream"


FormValue = Union[str, FormFile]


class FormData:
    """An ordered multi-valued collection of form fields.

    Mirrors the browser ``FormData``: a name may appear several times and
    insertion order is preserved.
    """

    def __init__(self, items: Optional[List[Tuple[str, FormValue]]] = None):
        self._items: List[Tuple[str, FormValue]] = list(items or [])

    def append(self, name: str, value: FormValue) -> None:
        self._items.append((name, value))

    def get(self, name: str) -> Optional[FormValue]:
        for key, value in self._items:
            if key == name:
                return value
        return None

    def get_all(self, name: str) -> List[FormValue]:
        return [value for key, value in self._items if key == name]

    def items(self) -> List[Tuple[str, FormValue]]:
        return list(self._items)

    def fields(self) -> List[Tuple[str, str]]:
        return [(k, v) for k, v in self._items if isinstance(v, str)]

    def files(self) -> List[Tuple[str, FormFile]]:
        return [(k, v) for k, v in self._items if isinstance(v, FormFile)]

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self._items)

    def __iter__(self) -> Iterator[Tuple[str, FormValue]]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormData):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"FormData({self._items!r})"
