"""
Custom exceptions for framerender
"""

TIMEOUT_DOCS_URL = "https://www.remotion.dev/docs/timeout/"


class FrameRenderException(Exception):
    """Base exception for all framerender errors"""
    
    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(FrameRenderException):
    """Raised when render options are invalid"""
    pass


class FrameRenderError(FrameRenderException):
    """Raised when rendering a single frame fails"""
    
    def __init__(self, message: str, frame: int = None, error_code: str = None, details: dict = None):
        super().__init__(message, error_code=error_code, details=details)
        self.frame = frame


class RenderTimeoutError(FrameRenderError):
    """Raised when seeking a worker to a frame exceeds its deadline"""
    
    def __init__(self, frame: int = None, details: dict = None):
        super().__init__(
            f"The rendering timed out. See {TIMEOUT_DOCS_URL} for possible reasons.",
            frame=frame,
            error_code="render_timeout",
            details=details
        )


class WorkerPoolError(FrameRenderException):
    """Raised when the worker pool is used incorrectly"""
    pass


class BrowserError(FrameRenderException):
    """Raised when the browser or one of its pages cannot be opened"""
    pass


class AssetStitchingError(FrameRenderException):
    """Raised when per-frame assets cannot be stitched into spans"""
    pass
