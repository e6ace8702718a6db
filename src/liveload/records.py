"""Structural records for data that must outlive a reload.

A class defined in a reloadable module is a new class after every reload,
so instances created before the reload no longer compare equal to (or pass
isinstance checks against) instances created after it. Values stored in
persistent state should instead be Records: a tag plus an ordered list of
named fields, compared by value.
"""

import dataclasses
from typing import Any

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    """A tagged, ordered, immutable record compared structurally."""

    model_config = ConfigDict(frozen=True)

    tag: str
    data: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, tag: str, **fields: Any) -> "Record":
        """Build a record from keyword fields, keeping their order."""
        return cls(tag=tag, data=tuple(fields.items()))

    @classmethod
    def from_object(cls, obj: Any) -> "Record":
        """Convert a dataclass or pydantic model instance into a Record.

        The tag is the object's class name, so a record built from an
        instance of the old class equals one built from the reloaded class
        as long as the field values match.
        """
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            pairs = tuple((f.name, getattr(obj, f.name)) for f in dataclasses.fields(obj))
        elif isinstance(obj, BaseModel):
            pairs = tuple((name, getattr(obj, name)) for name in type(obj).model_fields)
        else:
            raise TypeError(f"Cannot build a Record from {type(obj).__name__}")
        return cls(tag=type(obj).__name__, data=pairs)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.data)

    def __getitem__(self, name: str) -> Any:
        for key, value in self.data:
            if key == name:
                return value
        raise KeyError(name)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def replace(self, **changes: Any) -> "Record":
        """Return a copy with some fields changed; unknown fields are rejected."""
        unknown = set(changes) - set(self.field_names)
        if unknown:
            raise KeyError(f"{self.tag} has no fields {sorted(unknown)}")
        data = tuple((name, changes.get(name, value)) for name, value in self.data)
        return Record(tag=self.tag, data=data)

    def as_dict(self) -> dict[str, Any]:
        return dict(self.data)

    def is_a(self, tag: str) -> bool:
        return self.tag == tag
