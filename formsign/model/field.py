"""Form field model definitions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class FieldType(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    CHOICE = "choice"
    SIGNATURE = "signature"


@dataclass(frozen=True, slots=True)
class FieldObject:
    id: str
    name: str
    page_index: int
    field_type: FieldType
    x: float
    y: float
    width: float
    height: float
    default_value: str = ""
    on_state: str = ""


class FieldSchema(Mapping[str, tuple[FieldObject, ...]]):
    """Read-only mapping of field name to every widget carrying that name.

    A name may occur on several pages; occurrences keep document order.
    """

    __slots__ = ("_by_name",)

    def __init__(self, fields: Iterable[FieldObject] = ()) -> None:
        grouped: dict[str, list[FieldObject]] = {}
        seen_ids: set[str] = set()
        for field in fields:
            if field.id in seen_ids:
                continue
            seen_ids.add(field.id)
            grouped.setdefault(field.name, []).append(field)
        self._by_name = MappingProxyType({name: tuple(items) for name, items in grouped.items()})

    def __getitem__(self, name: str) -> tuple[FieldObject, ...]:
        return self._by_name[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    def __repr__(self) -> str:
        return f"FieldSchema({len(self)} names, {len(self.field_ids())} fields)"

    def all_fields(self) -> list[FieldObject]:
        merged: list[FieldObject] = []
        for items in self._by_name.values():
            merged.extend(items)
        return merged

    def field_ids(self) -> set[str]:
        return {field.id for field in self.all_fields()}

    def first(self, name: str) -> FieldObject | None:
        items = self._by_name.get(name)
        return items[0] if items else None

    def page_fields(self, page_index: int) -> list[FieldObject]:
        return [field for field in self.all_fields() if field.page_index == page_index]
