"""
Validation of render options
"""

import math
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigurationError

IMAGE_FORMATS = ("jpeg", "png", "none")
LOSSY_IMAGE_FORMAT = "jpeg"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class InputValidator:
    """Validation helpers; each raises ConfigurationError on bad input"""

    @staticmethod
    def validate_dimension(amount: Any, name: str, location: str) -> None:
        if not _is_number(amount):
            raise ConfigurationError(
                f"The {name} prop {location} must be a number, but you passed a value of type {type(amount).__name__}",
                error_code="invalid_dimension"
            )
        if not math.isfinite(amount):
            raise ConfigurationError(
                f"The {name} prop {location} must be finite, but is {amount}.",
                error_code="invalid_dimension"
            )
        if amount % 1 != 0:
            raise ConfigurationError(
                f"The {name} prop {location} must be an integer, but is {amount}.",
                error_code="invalid_dimension"
            )
        if amount <= 0:
            raise ConfigurationError(
                f"The {name} prop {location} must be positive, but got {amount}.",
                error_code="invalid_dimension"
            )

    @staticmethod
    def validate_fps(fps: Any, location: str) -> None:
        if not _is_number(fps):
            raise ConfigurationError(
                f'"fps" must be a number, but you passed a value of type {type(fps).__name__} {location}',
                error_code="invalid_fps"
            )
        if not math.isfinite(fps):
            raise ConfigurationError(
                f'"fps" must be a finite, but you passed {fps} {location}',
                error_code="invalid_fps"
            )
        if fps <= 0:
            raise ConfigurationError(
                f'"fps" must be positive, but got {fps} {location}',
                error_code="invalid_fps"
            )

    @staticmethod
    def validate_duration_in_frames(duration: Any, location: str) -> None:
        if not _is_integer(duration):
            raise ConfigurationError(
                f"The durationInFrames prop {location} must be an integer, but got {duration!r}.",
                error_code="invalid_duration"
            )
        if duration <= 0:
            raise ConfigurationError(
                f"durationInFrames must be positive, but got {duration}",
                error_code="invalid_duration"
            )

    @staticmethod
    def validate_image_format(image_format: Any) -> None:
        if image_format not in IMAGE_FORMATS:
            raise ConfigurationError(
                f"Image format should be one of {', '.join(IMAGE_FORMATS)}, but got {image_format!r}",
                error_code="invalid_image_format"
            )

    @staticmethod
    def validate_quality(quality: Optional[Any], image_format: str) -> None:
        if quality is None:
            return
        if image_format != LOSSY_IMAGE_FORMAT:
            raise ConfigurationError(
                f"You can only pass the `quality` option if `image_format` is '{LOSSY_IMAGE_FORMAT}'.",
                error_code="quality_without_jpeg"
            )
        if not _is_number(quality):
            raise ConfigurationError(
                f"Quality option must be a number or None. Got {type(quality).__name__} ({quality!r})",
                error_code="invalid_quality"
            )
        if quality > 100 or quality < 0:
            raise ConfigurationError(
                "Quality option must be between 0 and 100.",
                error_code="invalid_quality"
            )

    @staticmethod
    def validate_output_directory(output_dir: Any) -> Path:
        """Create the directory if needed and make sure frames can be written to it"""
        if not output_dir or not isinstance(output_dir, (str, os.PathLike)):
            raise ConfigurationError(
                f"Output directory must be a path, but got {output_dir!r}",
                error_code="invalid_output_dir"
            )
        path = Path(output_dir)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Could not create output directory {path}: {e}",
                error_code="invalid_output_dir"
            ) from e
        if not os.access(path, os.W_OK):
            raise ConfigurationError(
                f"Output directory {path} is not writable",
                error_code="invalid_output_dir"
            )
        return path
