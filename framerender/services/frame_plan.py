"""
Resolution of frame ranges into the list of frames to render
"""

from dataclasses import dataclass
from typing import Any, List

from ..core.exceptions import ConfigurationError
from ..core.interfaces import FrameRange


def _is_frame_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_frame_range(frame_range: Any) -> None:
    """Check the shape of a frame range (bounds are checked in get_frame_count)"""
    if frame_range is None:
        return

    if _is_frame_number(frame_range):
        if frame_range < 0:
            raise ConfigurationError(
                f"Frame must be a non-negative number, but got {frame_range}",
                error_code="invalid_frame_range"
            )
        return

    if isinstance(frame_range, (list, tuple)):
        if len(frame_range) != 2:
            raise ConfigurationError(
                f"Frame range must be a tuple of length 2, but got one of length {len(frame_range)}",
                error_code="invalid_frame_range"
            )
        for value in frame_range:
            if not _is_frame_number(value):
                raise ConfigurationError(
                    f"Each value of frame range must be an integer, but got {value!r}",
                    error_code="invalid_frame_range"
                )
            if value < 0:
                raise ConfigurationError(
                    f"Each value of frame range must be non-negative, but got {value}",
                    error_code="invalid_frame_range"
                )
        start, end = frame_range
        if end < start:
            raise ConfigurationError(
                f"The second value of frame range must not be smaller than the first one, but got {start}-{end}",
                error_code="invalid_frame_range"
            )
        return

    raise ConfigurationError(
        f"Frame range must be a number or a tuple of numbers, but got {frame_range!r}",
        error_code="invalid_frame_range"
    )


def get_frame_count(duration_in_frames: int, frame_range: FrameRange) -> int:
    """Number of frames that will be rendered"""
    validate_frame_range(frame_range)

    if frame_range is None:
        return duration_in_frames

    last_possible = duration_in_frames - 1

    if _is_frame_number(frame_range):
        if frame_range > last_possible:
            raise ConfigurationError(
                f"Frame number is out of range, must be between 0 and {last_possible} but got {frame_range}",
                error_code="frame_out_of_range"
            )
        return 1

    start, end = frame_range
    if end > last_possible:
        raise ConfigurationError(
            f"Frame range {start}-{end} is not in between 0-{last_possible}",
            error_code="frame_out_of_range"
        )
    return end - start + 1


def get_frame_to_render(frame_range: FrameRange, index: int) -> int:
    """Frame number for the index-th frame of the render"""
    if frame_range is None:
        return index
    if _is_frame_number(frame_range):
        if index != 0:
            raise ValueError("A single frame range only has index 0")
        return frame_range
    return frame_range[0] + index


def get_initial_frame(frame_range: FrameRange) -> int:
    """Frame the workers should load before the first seek"""
    if frame_range is None:
        return 0
    if _is_frame_number(frame_range):
        return frame_range
    return frame_range[0]


@dataclass(frozen=True)
class FramePlan:
    """Ordered frames to render and the zero-pad width for their file names"""
    frames: List[int]
    pad_length: int

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def padded(self, frame: int) -> str:
        return str(frame).zfill(self.pad_length)

    def filename(self, frame: int, extension: str) -> str:
        return f"element-{self.padded(frame)}.{extension}"


def plan_frames(duration_in_frames: int, frame_range: FrameRange = None) -> FramePlan:
    """Build the frame plan for a composition and an optional range"""
    frame_count = get_frame_count(duration_in_frames, frame_range)
    frames = [get_frame_to_render(frame_range, index) for index in range(frame_count)]
    # 100 frames are named 00-99, so the width comes from the last frame
    return FramePlan(frames=frames, pad_length=len(str(frames[-1])))
