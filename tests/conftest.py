"""
Shared fixtures: in-memory workers standing in for browser tabs
"""

import asyncio
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from framerender.core.interfaces import IRenderWorker, IWorkerFactory, WorkerSetup
from framerender.core.logging_manager import setup_logging


@pytest.fixture(autouse=True, scope="session")
def test_logging():
    """Keep test logs out of the working directory"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield setup_logging(log_dir=tmpdir, level="WARNING")


class FakeWorker(IRenderWorker):
    """Worker that reports scripted assets and records what it was asked to do"""

    def __init__(self, factory: "FakeWorkerFactory", setup: WorkerSetup):
        self.factory = factory
        self.setup = setup
        self.frame: Optional[int] = None
        self.listeners: List[Callable[[Exception], None]] = []
        self.closed = False

    async def seek_to_frame(self, frame: int) -> None:
        self.frame = frame
        self.factory.seeks.append(frame)
        delay = self.factory.delays.get(frame, 0)
        if delay:
            await asyncio.sleep(delay)
        if frame in self.factory.page_errors:
            for listener in list(self.listeners):
                listener(self.factory.page_errors[frame])
        if frame in self.factory.seek_errors:
            raise self.factory.seek_errors[frame]

    async def screenshot(self, output: str, image_format: str, quality: Optional[int] = None) -> None:
        self.factory.screenshots.append((output, image_format, quality))
        Path(output).write_bytes(b"frame")

    async def collect_assets(self) -> List[Dict[str, Any]]:
        self.factory.completed.append(self.frame)
        return [dict(asset) for asset in self.factory.assets.get(self.frame, [])]

    def add_error_listener(self, listener) -> None:
        self.listeners.append(listener)

    def remove_error_listener(self, listener) -> None:
        self.listeners.remove(listener)

    async def close(self) -> None:
        self.closed = True


class FakeWorkerFactory(IWorkerFactory):
    """Opens FakeWorkers; per-frame behaviour is configured through the dicts below"""

    def __init__(self):
        self.assets: Dict[int, List[Dict[str, Any]]] = {}
        self.delays: Dict[int, float] = {}
        self.seek_errors: Dict[int, Exception] = {}
        self.page_errors: Dict[int, Exception] = {}
        self.setup_error: Optional[Exception] = None
        self.workers: List[FakeWorker] = []
        self.seeks: List[int] = []
        self.completed: List[int] = []
        self.screenshots: List[tuple] = []
        self.closed = False

    async def open_worker(self, setup: WorkerSetup, on_error=None) -> FakeWorker:
        if self.setup_error is not None and on_error:
            on_error(self.setup_error)
        worker = FakeWorker(self, setup)
        self.workers.append(worker)
        return worker

    async def close(self) -> None:
        self.closed = True


def make_asset(asset_id: str, frame: int, volume: float = 1.0, media_frame: float = None,
               src: str = "https://example.com/audio.mp3", **overrides) -> Dict[str, Any]:
    """Asset payload in the shape the page returns it"""
    asset = {
        "id": asset_id,
        "type": "audio",
        "src": src,
        "mediaFrame": frame if media_frame is None else media_frame,
        "playbackRate": 1,
        "volume": volume,
        "allowAmplificationDuringRender": False,
        "frame": frame
    }
    asset.update(overrides)
    return asset


@pytest.fixture
def worker_factory():
    return FakeWorkerFactory()


@pytest.fixture
def asset_payload():
    return make_asset


@pytest.fixture
def output_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
