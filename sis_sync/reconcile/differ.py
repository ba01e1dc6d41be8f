"""
Allow-list field differ for matched (local, remote) pairs.

Only fields named in a table are compared, so SIS bookkeeping such as internal
ids or audit timestamps never shows up as a change.
"""

from __future__ import annotations

from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Iterable, Literal, Sequence

from .normalize import normalize, normalize_bool

FieldKind = Literal["text", "bool", "date"]

_NORMALIZERS: dict[str, Callable[[Any], "str | None"]] = {
    "text": normalize,
    "bool": normalize_bool,
    # Dates already collapse to YYYY-MM-DD in normalize().
    "date": normalize,
}


@dataclass(frozen=True)
class FieldChange:
    field: str
    old_value: str | None
    new_value: str | None

    def as_dict(self) -> dict[str, str | None]:
        return {"Field": self.field, "OldValue": self.old_value, "NewValue": self.new_value}


@dataclass(frozen=True)
class DiffField:
    """
    One entry of a field table.

    ``name`` is the label reported in changes; ``local_attr`` and
    ``remote_attr`` address the two record shapes (the remote attribute
    defaults to the local one).
    """

    name: str
    local_attr: str
    remote_attr: str | None = None
    kind: FieldKind = "text"

    def __post_init__(self) -> None:
        if self.kind not in _NORMALIZERS:
            raise ValueError(f"Unknown field kind '{self.kind}' for {self.name}")


class FieldDiffer:
    """Compare a matched pair over a fixed list of fields."""

    def __init__(self, fields: Iterable[DiffField]):
        self.fields: tuple[DiffField, ...] = tuple(fields)
        names = [item.name for item in self.fields]
        if len(names) != len(set(names)):
            raise ValueError("Field table contains duplicate field names.")
        # Accessors are resolved once so diffing never looks names up dynamically.
        self._plan = tuple(
            (
                item.name,
                attrgetter(item.local_attr),
                attrgetter(item.remote_attr or item.local_attr),
                _NORMALIZERS[item.kind],
            )
            for item in self.fields
        )

    @property
    def field_names(self) -> Sequence[str]:
        return tuple(item.name for item in self.fields)

    def diff(self, local: Any, remote: Any) -> tuple[FieldChange, ...]:
        changes: list[FieldChange] = []
        for name, local_get, remote_get, canonical in self._plan:
            new_value = canonical(local_get(local))
            old_value = canonical(remote_get(remote))
            if new_value != old_value:
                changes.append(FieldChange(field=name, old_value=old_value, new_value=new_value))
        return tuple(changes)

    __call__ = diff
