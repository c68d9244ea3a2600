# src/gym_log/records/models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

DateKey = str


class Collection(StrEnum):
    """The two independent record tables."""

    WORKOUTS = "workouts"
    TASKS = "tasks"

    @property
    def payload_field(self) -> str:
        # Name of the sequence field in the export format.
        return "exercises" if self is Collection.WORKOUTS else "taskList"


def to_date_key(value: date | datetime | str) -> DateKey:
    """
    Normalize a calendar date into a `YYYY-MM-DD` key.

    Time-of-day is dropped: a datetime maps to its own calendar date,
    without converting timezones first.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValueError("date key is empty")
        try:
            if len(raw) == 10:
                return date.fromisoformat(raw).isoformat()
            return datetime.fromisoformat(raw).date().isoformat()
        except ValueError:
            raise ValueError(f"not a calendar date: {value!r}") from None
    raise TypeError(f"cannot build a date key from {type(value).__name__}")


def new_entry_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class SetEntry:
    # Stored as entered by the user; may be empty while editing.
    reps: str = ""
    weight: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"reps": self.reps, "weight": self.weight}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SetEntry:
        return cls(reps=_as_text(raw.get("reps")), weight=_as_text(raw.get("weight")))


@dataclass(slots=True)
class Exercise:
    name: str
    sets: list[SetEntry] = field(default_factory=list)
    entry_id: str = field(default_factory=new_entry_id)

    def is_savable(self) -> bool:
        return bool(self.name and self.name.strip()) and len(self.sets) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "name": self.name,
            "sets": [s.to_dict() for s in self.sets],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Exercise:
        if not isinstance(raw, dict):
            raise ValueError("exercise must be an object")
        sets_raw = raw.get("sets") or []
        if not isinstance(sets_raw, list):
            raise ValueError("exercise sets must be a list")
        return cls(
            name=_as_text(raw.get("name")),
            sets=[SetEntry.from_dict(s) for s in sets_raw if isinstance(s, dict)],
            entry_id=_as_text(raw.get("id")) or new_entry_id(),
        )


@dataclass(slots=True)
class Task:
    text: str
    completed: bool = False
    entry_id: str = field(default_factory=new_entry_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.entry_id, "text": self.text, "completed": self.completed}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        if not isinstance(raw, dict):
            raise ValueError("task must be an object")
        return cls(
            text=_as_text(raw.get("text")),
            completed=bool(raw.get("completed", False)),
            entry_id=_as_text(raw.get("id")) or new_entry_id(),
        )


@dataclass(slots=True, frozen=True)
class StoredRecord:
    """One durable row: the date key and its JSON-ready payload sequence."""

    key: DateKey
    value: list[dict[str, Any]]


def _as_text(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw)
