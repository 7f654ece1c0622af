"""
framerender services - frame planning, worker pool, frame tasks and asset stitching
"""

from .worker_pool import WorkerPool, get_actual_concurrency
from .frame_plan import FramePlan, plan_frames, get_frame_count, get_frame_to_render, validate_frame_range
from .frame_task import FrameRenderer, is_timeout_error
from .asset_positions import calculate_asset_positions, deduplicate_assets, flatten_volume
from .render_service import FrameRenderService, RenderOptions, render_frames, validate_render_options

__all__ = [
    'WorkerPool',
    'get_actual_concurrency',
    'FramePlan',
    'plan_frames',
    'get_frame_count',
    'get_frame_to_render',
    'validate_frame_range',
    'FrameRenderer',
    'is_timeout_error',
    'calculate_asset_positions',
    'deduplicate_assets',
    'flatten_volume',
    'FrameRenderService',
    'RenderOptions',
    'render_frames',
    'validate_render_options'
]
