"""
Media item model
One uploaded file attached to a note.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from uuid import uuid4

from .sticker import StickerTransform


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MediaType(str, Enum):
    """Closed set of media kinds"""

    IMAGE = "image"
    GIF = "gif"
    VIDEO = "video"
    DOCUMENT = "document"

    @classmethod
    def from_mime(cls, content_type: Optional[str]) -> "MediaType":
        """
        Classify a MIME type.

        Args:
            content_type: e.g. image/png, video/mp4

        Returns:
            the media type; anything unrecognised is a document
        """
        mime = (content_type or "").lower()
        if mime == "image/gif":
            return cls.GIF
        if mime.startswith("image/"):
            return cls.IMAGE
        if mime.startswith("video/"):
            return cls.VIDEO
        return cls.DOCUMENT


class MediaItem(BaseModel):
    """Media item, serialised with camelCase keys inside a note's contents"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    url: str
    storage_path: str
    type: MediaType
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    sticker: Optional[StickerTransform] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
