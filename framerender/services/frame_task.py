"""
Rendering of a single frame on a pooled worker
"""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.exceptions import FrameRenderError, FrameRenderException, RenderTimeoutError
from ..core.interfaces import IRenderWorker, OnErrorInfo, RenderAsset
from ..core.logging_manager import get_logging_manager
from ..core.metrics import get_metrics_collector
from ..core.validation import LOSSY_IMAGE_FORMAT
from .frame_plan import FramePlan
from .worker_pool import WorkerPool

OnError = Callable[[OnErrorInfo], None]
OnFrameUpdate = Callable[[int, Optional[str], int], None]


def is_timeout_error(error: BaseException) -> bool:
    """Whether a seek failure was caused by a deadline rather than a broken page"""
    if isinstance(error, (asyncio.TimeoutError, PlaywrightTimeoutError)):
        return True
    message = str(error).lower()
    return "timeout" in message and "exceeded" in message


class ErrorObserver:
    """
    Page error listener attached to a worker while it is in use.

    The frame stays None until a frame is assigned, so errors raised while
    the composition is still loading are reported without one.
    """

    def __init__(self, report: Callable[[Exception, Optional[int]], None], frame: Optional[int] = None):
        self._report = report
        self.frame = frame

    def __call__(self, error: Exception) -> None:
        self._report(error, self.frame)


class FrameProgress:
    """Counts finished frames; updates happen one at a time"""

    def __init__(self, on_frame_update: Optional[OnFrameUpdate] = None):
        self.on_frame_update = on_frame_update
        self.frames_rendered = 0
        self._lock = asyncio.Lock()

    async def frame_done(self, output: Optional[str], frame: int) -> int:
        async with self._lock:
            self.frames_rendered += 1
            if self.on_frame_update:
                self.on_frame_update(self.frames_rendered, output, frame)
            return self.frames_rendered


class FrameRenderer:
    """Renders planned frames on workers taken from the pool"""

    def __init__(
        self,
        pool: WorkerPool,
        plan: FramePlan,
        output_dir: Optional[Path],
        image_format: str,
        quality: Optional[int] = None,
        on_frame_update: Optional[OnFrameUpdate] = None,
        on_error: Optional[OnError] = None,
        composition_id: Optional[str] = None
    ):
        self.pool = pool
        self.plan = plan
        self.output_dir = output_dir
        self.image_format = image_format
        self.quality = quality if image_format == LOSSY_IMAGE_FORMAT else None
        self.on_error = on_error
        self.composition_id = composition_id
        self.progress = FrameProgress(on_frame_update)
        self.aborted = False
        self.logging_manager = get_logging_manager()
        self.logger = self.logging_manager.get_logger("frame_task")
        self.metrics = get_metrics_collector()

    @property
    def frames_rendered(self) -> int:
        return self.progress.frames_rendered

    def abort(self) -> None:
        """Stop starting new frames; frames already on a worker run to completion"""
        self.aborted = True

    def report_error(self, error: Exception, frame: Optional[int]) -> None:
        self.logging_manager.log_error(error, composition_id=self.composition_id, frame=frame)
        if self.on_error:
            self.on_error(OnErrorInfo(error=error, frame=frame))

    def output_path(self, frame: int) -> Optional[str]:
        if self.image_format == "none":
            return None
        return str(self.output_dir / self.plan.filename(frame, self.image_format))

    def _classify_seek_error(self, error: Exception, frame: int) -> FrameRenderError:
        if is_timeout_error(error):
            return RenderTimeoutError(frame=frame, details={"cause": str(error)})
        return FrameRenderError(
            f"Seeking to frame {frame} failed: {error}",
            frame=frame,
            error_code="seek_failed"
        )

    async def _render_on_worker(self, worker: IRenderWorker, frame: int, output: Optional[str]) -> List[RenderAsset]:
        try:
            with self.metrics.time_operation("seek_to_frame"):
                await worker.seek_to_frame(frame)
        except Exception as e:
            raise self._classify_seek_error(e, frame) from e

        try:
            if output is not None:
                with self.metrics.time_operation("screenshot"):
                    await worker.screenshot(output, self.image_format, self.quality)

            with self.metrics.time_operation("collect_assets"):
                collected = await worker.collect_assets()
            return [RenderAsset.from_dict(asset) for asset in collected or []]
        except FrameRenderException:
            raise
        except Exception as e:
            raise FrameRenderError(
                f"Rendering frame {frame} failed: {e}",
                frame=frame,
                error_code="frame_failed"
            ) from e

    async def render_frame(self, frame: int) -> Optional[List[RenderAsset]]:
        """
        Render one frame: seek, capture, collect its assets and report progress.

        Returns None when the render was aborted before this frame got a worker.
        """
        worker = await self.pool.acquire()
        if self.aborted:
            self.pool.release(worker)
            return None

        output = self.output_path(frame)
        observer = ErrorObserver(self.report_error, frame)
        worker.add_error_listener(observer)
        try:
            assets = await self._render_on_worker(worker, frame, output)
        except FrameRenderError as e:
            self.report_error(e, frame)
            raise
        finally:
            worker.remove_error_listener(observer)
            self.pool.release(worker)

        self.metrics.get_fps_counter("frames_rendered").record_frame()
        frames_rendered = await self.progress.frame_done(output, frame)
        self.logging_manager.log_frame_rendered(
            self.composition_id, frame, frames_rendered, self.plan.frame_count
        )
        return assets
