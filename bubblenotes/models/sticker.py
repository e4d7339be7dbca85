"""
Sticker edit models
The baked transform descriptor and the request bodies of the sticker routes.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

MIN_SCALE = 25.0
MAX_SCALE = 200.0
ROTATIONS = (0, 90, 180, 270)


class Position(BaseModel):
    """Offset in pixels from the viewport centre"""

    x: float = 0.0
    y: float = 0.0

    class Config:
        frozen = True


class TrimHandle(str, Enum):
    START = "start"
    END = "end"
    BAR = "bar"


class StickerTransform(BaseModel):
    """Final, immutable description of a sticker edit"""

    rotation: int
    scale: float = Field(ge=MIN_SCALE, le=MAX_SCALE)
    position: Position
    video_duration: Optional[float] = None
    video_start_point: Optional[float] = None
    video_end_point: Optional[float] = None

    class Config:
        frozen = True
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("rotation")
    @classmethod
    def _check_rotation(cls, value: int) -> int:
        if value not in ROTATIONS:
            raise ValueError(f"rotation must be one of {ROTATIONS}")
        return value


class StickerEditRequest(BaseModel):
    """Editor state as submitted by a client; replayed through the editor"""

    is_video: bool = False
    total_duration: Optional[float] = None
    rotation: int = 0
    scale: float = 100.0
    position: Position = Field(default_factory=Position)
    start_point: Optional[float] = None
    duration: Optional[float] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
