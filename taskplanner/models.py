"""The task record kept by the scheduler."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass
class Task:
    """A scheduled task; every field is carried as text."""

    id: str = ""
    date: str = ""
    title: str = ""
    comment: str = ""
    repeat: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the task as a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Any) -> "Task":
        """Build a task from a decoded JSON object.

        Unknown keys are ignored, missing or null values become empty
        strings, and any other non-string value raises ``TypeError``.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError("task must be a JSON object")
        values: dict[str, str] = {}
        for field in fields(cls):
            value = data.get(field.name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise TypeError(f"field {field.name!r} must be a string")
            values[field.name] = value
        return cls(**values)