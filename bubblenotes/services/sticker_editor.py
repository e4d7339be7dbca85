"""
Sticker geometry and trim editor
Positions one media item inside the square sticker viewport (rotation, scale,
drag offset) and, for video, selects the looped sub-clip.
"""

from typing import Optional, Tuple

from bubblenotes.models.sticker import MAX_SCALE, MIN_SCALE, Position, StickerTransform, TrimHandle

DEFAULT_SCALE = 100.0

MIN_DURATION = 0.1
MAX_DURATION = 4.9
DEFAULT_DURATION = 3.0

# Timeline width used when the client does not report one
DEFAULT_TRACK_WIDTH = 300.0

_EPSILON = 1e-9


class StickerEditor:
    """Edit state for one media item"""

    def __init__(self, is_video: bool = False):
        """
        Args:
            is_video: whether the item is a video (enables the trim controls)
        """
        self.is_video = is_video
        self.total_duration = 0.0
        self._drag_offset: Optional[Tuple[float, float]] = None
        self._trim_drag: Optional[Tuple[TrimHandle, float, float, float]] = None
        self.reset()

    def reset(self) -> None:
        """Back to the defaults; used when an edit is cancelled"""
        self.rotation = 0
        self.scale = DEFAULT_SCALE
        self.position = Position()
        self._drag_offset = None
        self._trim_drag = None

        default = min(DEFAULT_DURATION, self.total_duration) if self.has_metadata else DEFAULT_DURATION
        self.start_point = 0.0
        self.duration = default
        self.end_point = default

    @property
    def has_metadata(self) -> bool:
        return self.total_duration > 0

    # ========== Geometry ==========

    def rotate(self) -> int:
        self.rotation = (self.rotation + 90) % 360
        return self.rotation

    def set_scale(self, value: float) -> float:
        self.scale = max(MIN_SCALE, min(MAX_SCALE, float(value)))
        return self.scale

    def begin_drag(self, x: float, y: float) -> None:
        self._drag_offset = (x - self.position.x, y - self.position.y)

    def continue_drag(self, x: float, y: float) -> Position:
        if self._drag_offset is not None:
            offset_x, offset_y = self._drag_offset
            self.position = Position(x=x - offset_x, y=y - offset_y)
        return self.position

    def end_drag(self) -> None:
        self._drag_offset = None

    @property
    def is_dragging(self) -> bool:
        return self._drag_offset is not None

    # ========== Video trim ==========

    def load_metadata(self, total_duration: Optional[float]) -> None:
        """
        Record the video length once its metadata is known.

        The selection defaults to the first 3 seconds (or the whole clip if
        shorter). A missing or invalid length leaves every trim control at
        its defaults.
        """
        if not total_duration or total_duration <= 0:
            return
        self.total_duration = float(total_duration)
        default = min(DEFAULT_DURATION, self.total_duration)
        self.duration = default
        self.end_point = min(self.start_point + default, self.total_duration)

    def set_duration(self, value: float) -> float:
        # The start point stays put; only the end follows the new duration
        if not self.has_metadata:
            return self.duration
        self.duration = max(MIN_DURATION, min(MAX_DURATION, self.total_duration, float(value)))
        self.end_point = min(self.start_point + self.duration, self.total_duration)
        return self.duration

    def set_start_point(self, value: float) -> float:
        if not self.has_metadata:
            return self.start_point
        self.start_point = max(0.0, min(self.total_duration - MIN_DURATION, float(value)))
        self.end_point = min(self.start_point + self.duration, self.total_duration)
        return self.start_point

    def set_end_point(self, value: float) -> float:
        if not self.has_metadata:
            return self.end_point
        upper = min(self.total_duration, self.start_point + MAX_DURATION)
        self.end_point = max(self.start_point + MIN_DURATION, min(upper, float(value)))
        self.duration = self.end_point - self.start_point
        return self.end_point

    def begin_trim_drag(self, handle: TrimHandle, x: float, track_width: float = DEFAULT_TRACK_WIDTH) -> bool:
        """
        Start dragging a timeline handle. Loop enforcement pauses until the
        drag ends.

        Args:
            handle: start handle, end handle, or the whole selection bar
            x: pointer x in pixels
            track_width: width of the timeline track in pixels

        Returns:
            False when there is nothing to trim (no video metadata)
        """
        if not self.has_metadata:
            return False
        handle = TrimHandle(handle)
        start_value = self.end_point if handle is TrimHandle.END else self.start_point
        self._trim_drag = (handle, x, start_value, track_width or DEFAULT_TRACK_WIDTH)
        return True

    def continue_trim_drag(self, x: float) -> None:
        if self._trim_drag is None:
            return
        handle, start_x, start_value, track_width = self._trim_drag
        delta = (x - start_x) / track_width * self.total_duration

        match handle:
            case TrimHandle.START:
                new_start = max(0.0, min(self.end_point - MIN_DURATION, start_value + delta))
                new_duration = self.end_point - new_start
                if MIN_DURATION - _EPSILON <= new_duration <= MAX_DURATION + _EPSILON:
                    self.start_point = new_start
                    self.duration = new_duration
            case TrimHandle.END:
                new_end = max(self.start_point + MIN_DURATION, min(self.total_duration, start_value + delta))
                new_duration = new_end - self.start_point
                if MIN_DURATION - _EPSILON <= new_duration <= MAX_DURATION + _EPSILON:
                    self.end_point = new_end
                    self.duration = new_duration
            case TrimHandle.BAR:
                new_start = max(0.0, min(self.total_duration - self.duration, start_value + delta))
                new_end = new_start + self.duration
                if new_end <= self.total_duration + _EPSILON:
                    self.start_point = new_start
                    self.end_point = new_end

    def end_trim_drag(self) -> float:
        """Finish the drag; returns the time playback should seek to"""
        self._trim_drag = None
        return self.start_point

    @property
    def is_trim_dragging(self) -> bool:
        return self._trim_drag is not None

    def enforce_loop(self, current_time: float) -> float:
        """
        Keep preview playback inside the selection.

        Args:
            current_time: playback position in seconds

        Returns:
            the position playback should be at; unchanged while a trim
            handle is being dragged
        """
        if self.is_trim_dragging:
            return current_time
        if current_time >= self.end_point or current_time < self.start_point:
            return self.start_point
        return current_time

    def on_play(self, current_time: float) -> float:
        if current_time < self.start_point or current_time >= self.end_point:
            return self.start_point
        return current_time

    # ========== Output ==========

    def bake(self) -> StickerTransform:
        if not self.is_video:
            return StickerTransform(rotation=self.rotation, scale=self.scale, position=self.position)
        return StickerTransform(
            rotation=self.rotation,
            scale=self.scale,
            position=self.position,
            video_duration=self.duration,
            video_start_point=self.start_point,
            video_end_point=self.end_point,
        )


def editor_from_request(request) -> StickerEditor:
    """
    Replay a client-submitted edit through a fresh editor so every clamp
    applies.

    Args:
        request: StickerEditRequest

    Returns:
        the editor holding the clamped state
    """
    editor = StickerEditor(is_video=request.is_video)
    for _ in range((request.rotation // 90) % 4):
        editor.rotate()
    editor.set_scale(request.scale)
    editor.begin_drag(0.0, 0.0)
    editor.continue_drag(request.position.x, request.position.y)
    editor.end_drag()
    if request.is_video:
        editor.load_metadata(request.total_duration)
        if request.duration is not None:
            editor.set_duration(request.duration)
        if request.start_point is not None:
            editor.set_start_point(request.start_point)
    return editor
