"""
Note models
A note ("bubble") and the request bodies that create and edit it.
"""

import json
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel
from uuid import uuid4

from .media import MediaItem, utc_now


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _iso(value: Optional[datetime]) -> Optional[str]:
    # Stored as UTC so that string order is time order
    return _as_utc(value).astimezone(timezone.utc).isoformat() if value else None


class Note(BaseModel):
    """Note model"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    description: Optional[str] = None
    contents: List[MediaItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    order: Optional[int] = None
    is_countdown: bool = False
    countdown_date: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @model_validator(mode="after")
    def _check_mode(self) -> "Note":
        if self.is_countdown and self.countdown_date is None:
            raise ValueError("countdown notes need a countdownDate")
        return self

    def is_empty(self) -> bool:
        return not (self.description or "").strip() and not self.contents

    def matches(self, text: str) -> bool:
        """
        Search predicate over the description and the media file names.

        Args:
            text: search text, matched case-insensitively as a substring

        Returns:
            True when the note matches (an empty text matches everything)
        """
        needle = text.strip().lower()
        if not needle:
            return True
        if needle in (self.description or "").lower():
            return True
        return any(needle in (item.file_name or "").lower() for item in self.contents)

    def sort_key(self) -> tuple:
        # Notes without a manual order go last, then oldest first
        return (self.order is None, self.order or 0, _as_utc(self.created_at))

    def to_row(self) -> Dict[str, Any]:
        """Row representation for the relational store (snake_case columns)"""
        return {
            "id": self.id,
            "description": self.description,
            "contents": [item.to_wire() for item in self.contents],
            "created_at": _iso(self.created_at),
            "order": self.order,
            "is_countdown": self.is_countdown,
            "countdown_date": _iso(self.countdown_date),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Note":
        """
        Build a note from a store row.

        Args:
            row: row dict; contents may be a JSON string (SQLite) or a list

        Returns:
            the note
        """
        contents = row.get("contents") or []
        if isinstance(contents, str):
            contents = json.loads(contents)
        countdown_date = row.get("countdown_date")
        return cls(
            id=row["id"],
            description=row.get("description"),
            contents=[MediaItem.model_validate(item) for item in contents],
            created_at=row["created_at"],
            order=row.get("order"),
            is_countdown=bool(row.get("is_countdown")) and countdown_date is not None,
            countdown_date=countdown_date,
        )


def fields_to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Convert note attribute values to their column representation"""
    columns: Dict[str, Any] = {}
    for name, value in fields.items():
        if name == "contents":
            columns[name] = [
                item.to_wire() if isinstance(item, MediaItem) else item for item in value
            ]
        elif isinstance(value, datetime):
            columns[name] = _iso(value)
        else:
            columns[name] = value
    return columns


class NoteCreate(BaseModel):
    """Create-note request"""

    id: Optional[str] = None
    description: Optional[str] = None
    contents: List[MediaItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    is_countdown: bool = False
    countdown_date: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_note(self) -> Note:
        data: Dict[str, Any] = {
            "description": self.description,
            "contents": self.contents,
            "is_countdown": self.is_countdown,
            "countdown_date": self.countdown_date,
        }
        if self.id:
            data["id"] = self.id
        if self.created_at:
            data["created_at"] = self.created_at
        return Note(**data)


class NoteUpdate(BaseModel):
    """Edit-note request; only the fields that were sent are applied"""

    description: Optional[str] = None
    contents: Optional[List[MediaItem]] = None
    countdown_date: Optional[datetime] = None
    is_countdown: Optional[bool] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class BulkDeleteRequest(BaseModel):
    ids: List[str]


class MoveRequest(BaseModel):
    direction: str = Field(pattern="^(up|down)$")
    search_text: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
