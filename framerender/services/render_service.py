"""
Render orchestrator: validates options, opens workers and fans frames out over them
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..config.config import Config, RenderDefaults
from ..core.exceptions import BrowserError
from ..core.interfaces import (
    AssetsInfo, CompositionConfig, FrameRange, IRenderWorker, IWorkerFactory,
    OnErrorInfo, RenderAsset, RenderFramesOutput, WorkerSetup
)
from ..core.logging_manager import get_logging_manager
from ..core.metrics import get_metrics_collector
from ..core.validation import InputValidator
from .asset_positions import calculate_asset_positions
from .frame_plan import FramePlan, get_initial_frame, plan_frames
from .frame_task import ErrorObserver, FrameRenderer, OnError, OnFrameUpdate
from .worker_pool import WorkerPool, get_actual_concurrency

LOCATION = "in the `config` passed to `render_frames()`"


@dataclass
class RenderOptions:
    """Options for one render invocation"""
    config: CompositionConfig
    composition_id: str
    serve_url: str
    output_dir: Optional[str] = None
    input_props: Any = None
    env_variables: Dict[str, str] = field(default_factory=dict)
    image_format: Optional[str] = None
    quality: Optional[int] = None
    frame_range: FrameRange = None
    concurrency: Optional[int] = None
    on_start: Optional[Callable[[int], None]] = None
    on_frame_update: Optional[OnFrameUpdate] = None
    on_error: Optional[OnError] = None
    defaults: RenderDefaults = field(default_factory=Config.render_defaults)

    @property
    def resolved_image_format(self) -> str:
        return self.image_format or self.defaults.image_format

    @property
    def resolved_quality(self) -> Optional[int]:
        if self.quality is not None:
            return self.quality
        # The default quality only applies when the format was not chosen explicitly
        if self.image_format is None and self.resolved_image_format == "jpeg":
            return self.defaults.quality
        return None


def validate_render_options(options: RenderOptions) -> FramePlan:
    """Check every option before any worker is opened; returns the frame plan"""
    config = options.config
    InputValidator.validate_dimension(config.height, "height", LOCATION)
    InputValidator.validate_dimension(config.width, "width", LOCATION)
    InputValidator.validate_fps(config.fps, LOCATION)
    InputValidator.validate_duration_in_frames(config.duration_in_frames, LOCATION)

    image_format = options.resolved_image_format
    InputValidator.validate_image_format(image_format)
    InputValidator.validate_quality(options.quality, image_format)
    InputValidator.validate_quality(options.resolved_quality, image_format)

    if image_format != "none":
        InputValidator.validate_output_directory(options.output_dir)

    return plan_frames(config.duration_in_frames, options.frame_range)


class FrameRenderService:
    """Renders the frames of a composition with a pool of workers"""

    def __init__(self, worker_factory: IWorkerFactory):
        self.worker_factory = worker_factory
        self.logging_manager = get_logging_manager()
        self.logger = self.logging_manager.get_logger("orchestrator")
        self.metrics = get_metrics_collector()
        self._render_stats = {
            "renders_started": 0,
            "renders_failed": 0,
            "frames_rendered": 0
        }

    def get_render_stats(self) -> Dict[str, Any]:
        stats = dict(self._render_stats)
        stats["metrics"] = self.metrics.get_all_metrics()
        return stats

    async def _open_workers(self, options: RenderOptions, count: int,
                            report_error: Callable[[Exception, Optional[int]], None]) -> List[IRenderWorker]:
        setup = WorkerSetup(
            width=options.config.width,
            height=options.config.height,
            serve_url=options.serve_url,
            composition_id=options.composition_id,
            initial_frame=get_initial_frame(options.frame_range),
            input_props=options.input_props,
            env_variables=dict(options.env_variables or {})
        )
        # No frame is assigned while the composition loads
        observer = ErrorObserver(report_error)
        results = await asyncio.gather(
            *(self.worker_factory.open_worker(setup, on_error=observer) for _ in range(count)),
            return_exceptions=True
        )

        workers = [r for r in results if isinstance(r, IRenderWorker)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            await self._close_workers(workers)
            error = failures[0]
            if isinstance(error, BrowserError):
                raise error
            raise BrowserError(f"Failed to open render worker: {error}", error_code="worker_open_failed") from error
        return workers

    async def _close_workers(self, workers: List[IRenderWorker]) -> None:
        for worker in workers:
            try:
                await worker.close()
            except Exception as e:
                self.logger.warning(f"Failed to close worker: {e}")

    async def render_frames(self, options: RenderOptions) -> RenderFramesOutput:
        """
        Render every planned frame and stitch the assets they reference.

        The first failing frame fails the whole render. Frames that already
        hold a worker finish first; frames still waiting for one are skipped.
        """
        plan = validate_render_options(options)
        image_format = options.resolved_image_format
        output_dir = Path(options.output_dir) if options.output_dir else None

        concurrency = min(
            get_actual_concurrency(options.concurrency if options.concurrency is not None
                                   else options.defaults.concurrency),
            plan.frame_count
        )
        self._render_stats["renders_started"] += 1

        renderer_ref: Dict[str, FrameRenderer] = {}

        def report_error(error: Exception, frame: Optional[int]) -> None:
            if "renderer" in renderer_ref:
                renderer_ref["renderer"].report_error(error, frame)
                return
            self.logging_manager.log_error(error, composition_id=options.composition_id, frame=frame)
            if options.on_error:
                options.on_error(OnErrorInfo(error=error, frame=frame))

        with self.logging_manager.log_performance("open_workers", options.composition_id):
            workers = await self._open_workers(options, concurrency, report_error)

        try:
            pool = WorkerPool(workers)
            renderer = FrameRenderer(
                pool=pool,
                plan=plan,
                output_dir=output_dir,
                image_format=image_format,
                quality=options.resolved_quality,
                on_frame_update=options.on_frame_update,
                on_error=options.on_error,
                composition_id=options.composition_id
            )
            renderer_ref["renderer"] = renderer

            self.logging_manager.log_render_start(options.composition_id, plan.frame_count, concurrency)
            if options.on_start:
                options.on_start(plan.frame_count)

            assets: List[Optional[List[RenderAsset]]] = [None] * plan.frame_count

            async def render_slot(index: int, frame: int) -> None:
                assets[index] = await renderer.render_frame(frame)

            tasks = [
                asyncio.ensure_future(render_slot(index, frame))
                for index, frame in enumerate(plan.frames)
            ]
            try:
                with self.logging_manager.log_performance("render_frames", options.composition_id):
                    await asyncio.gather(*tasks)
            except BaseException:
                renderer.abort()
                self._render_stats["renders_failed"] += 1
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        finally:
            await self._close_workers(workers)

        self._render_stats["frames_rendered"] += renderer.frames_rendered
        timeline = calculate_asset_positions(assets)
        self.metrics.record_custom_metric(
            "frames_rendered", renderer.frames_rendered, {"composition_id": options.composition_id}
        )
        self.metrics.record_custom_metric(
            "assets_stitched", len(timeline), {"composition_id": options.composition_id}
        )
        self.logging_manager.log_event(
            "render_complete",
            f"Rendered {plan.frame_count} frames of {options.composition_id}, {len(timeline)} assets",
            composition_id=options.composition_id,
            logger_name="orchestrator",
            frame_count=plan.frame_count
        )

        return RenderFramesOutput(
            frame_count=plan.frame_count,
            assets_info=AssetsInfo(assets=assets, timeline=timeline)
        )


async def render_frames(options: RenderOptions, worker_factory: Optional[IWorkerFactory] = None) -> RenderFramesOutput:
    """
    Render with the given factory, or with a Playwright browser started for this render only
    """
    if worker_factory is not None:
        return await FrameRenderService(worker_factory).render_frames(options)

    # Fail on bad options before a browser is launched
    validate_render_options(options)

    from ..tab_capture.browser_service import BrowserAutomationService, BrowserConfig

    browser_service = BrowserAutomationService(BrowserConfig.from_defaults(options.defaults))
    try:
        return await FrameRenderService(browser_service).render_frames(options)
    finally:
        await browser_service.close()
