"""Open metadata record attached to a conversion."""

from __future__ import annotations

from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

__all__ = ["DocumentMetadata", "format_date"]


class DocumentMetadata(Mapping[str, Any]):
    """Read-only mapping with typed accessors for the recognised keys.

    Keys other than ``title``, ``author``, ``date``, ``description`` and
    ``keywords`` are kept in caller order and passed through untouched.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data = MappingProxyType(dict(data or {}))

    @classmethod
    def from_value(
        cls, value: "Mapping[str, Any] | DocumentMetadata | None"
    ) -> Optional["DocumentMetadata"]:
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        return cls(value)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"DocumentMetadata({dict(self._data)!r})"

    @property
    def title(self) -> Optional[str]:
        return _optional_text(self._data.get("title"))

    @property
    def author(self) -> Optional[str]:
        return _optional_text(self._data.get("author"))

    @property
    def description(self) -> Optional[str]:
        return _optional_text(self._data.get("description"))

    @property
    def date(self) -> Optional[str]:
        return format_date(self._data.get("date"))

    @property
    def keywords(self) -> tuple[str, ...]:
        raw = self._data.get("keywords")
        if raw is None:
            return ()
        if isinstance(raw, str):
            raw = [raw]
        try:
            items = list(raw)
        except TypeError:
            return (str(raw),)
        return tuple(str(item) for item in items if item is not None)

    def has_values(self) -> bool:
        return any(value is not None for value in self._data.values())


def format_date(value: Any) -> Optional[str]:
    """Render a date-like value as text, ``None`` when absent."""

    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
