"""
framerender core module - data types, errors and shared components
"""

from .interfaces import *
from .exceptions import *
from .logging_manager import *
from .metrics import *
from .validation import *

__all__ = [
    # Interfaces
    'IRenderWorker',
    'IWorkerFactory',
    'WorkerSetup',
    'CompositionConfig',
    'RenderAsset',
    'OpenAssetSpan',
    'MediaAsset',
    'VolumePoint',
    'OnErrorInfo',
    'AssetsInfo',
    'RenderFramesOutput',
    
    # Exceptions
    'FrameRenderException',
    'ConfigurationError',
    'FrameRenderError',
    'RenderTimeoutError',
    'WorkerPoolError',
    'BrowserError',
    'AssetStitchingError',
    
    # Logging, metrics & validation
    'LoggingManager',
    'MetricsCollector',
    'PerformanceTimer',
    'InputValidator'
]
