import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass(frozen=True)
class RenderDefaults:
    """Defaults handed to the renderer explicitly instead of living in global state"""
    image_format: str = "jpeg"
    quality: Optional[int] = 80
    concurrency: Optional[int] = None
    seek_timeout_ms: int = 30000
    navigation_timeout_ms: int = 30000


class Config:
    # Render defaults
    IMAGE_FORMAT = os.getenv('FRAMERENDER_IMAGE_FORMAT', 'jpeg')
    QUALITY = int(os.getenv('FRAMERENDER_QUALITY', '80'))
    CONCURRENCY = _optional_int('FRAMERENDER_CONCURRENCY')  # None = auto-detect
    SEEK_TIMEOUT_MS = int(os.getenv('FRAMERENDER_SEEK_TIMEOUT_MS', '30000'))
    NAVIGATION_TIMEOUT_MS = int(os.getenv('FRAMERENDER_NAVIGATION_TIMEOUT_MS', '30000'))
    
    # Browser
    BROWSER_EXECUTABLE = os.getenv('FRAMERENDER_BROWSER_EXECUTABLE') or None
    HEADLESS = os.getenv('FRAMERENDER_HEADLESS', 'True').lower() == 'true'
    DUMP_BROWSER_LOGS = os.getenv('FRAMERENDER_DUMP_BROWSER_LOGS', 'False').lower() == 'true'
    
    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', './logs')

    @classmethod
    def render_defaults(cls) -> RenderDefaults:
        # Quality only applies to jpeg output
        quality = cls.QUALITY if cls.IMAGE_FORMAT == 'jpeg' else None
        return RenderDefaults(
            image_format=cls.IMAGE_FORMAT,
            quality=quality,
            concurrency=cls.CONCURRENCY,
            seek_timeout_ms=cls.SEEK_TIMEOUT_MS,
            navigation_timeout_ms=cls.NAVIGATION_TIMEOUT_MS
        )
