"""
Core interfaces and data types for framerender components
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field


FrameRange = Union[int, Tuple[int, int], None]

ErrorListener = Callable[[Exception], None]


@dataclass
class CompositionConfig:
    """Dimensions and timing of the composition being rendered"""
    width: int
    height: int
    fps: float
    duration_in_frames: int


@dataclass
class RenderAsset:
    """A media asset referenced by the page at one frame"""
    id: str
    type: str
    src: str
    media_frame: float
    playback_rate: float = 1.0
    volume: float = 1.0
    allow_amplification_during_render: bool = False
    frame: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RenderAsset":
        """Build from the camelCase payload returned by the page"""
        return cls(
            id=str(data["id"]),
            type=data["type"],
            src=data["src"],
            media_frame=data.get("mediaFrame", data.get("media_frame", 0)),
            playback_rate=data.get("playbackRate", data.get("playback_rate", 1.0)),
            volume=data.get("volume", 1.0),
            allow_amplification_during_render=bool(
                data.get(
                    "allowAmplificationDuringRender",
                    data.get("allow_amplification_during_render", False)
                )
            ),
            frame=data.get("frame")
        )


@dataclass
class OpenAssetSpan:
    """An asset span while it is still being stitched; duration stays None until it closes"""
    id: str
    type: str
    src: str
    start_in_video: int
    trim_left: float
    playback_rate: float
    allow_amplification_during_render: bool
    duration: Optional[int] = None
    volume: List[float] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.duration is None


@dataclass(frozen=True)
class VolumePoint:
    """Volume from an offset into the span until the next point"""
    offset: int
    media_offset: float
    volume: float


@dataclass
class MediaAsset:
    """A finalized asset span"""
    id: str
    type: str
    src: str
    start_in_video: int
    duration: int
    trim_left: float
    playback_rate: float
    allow_amplification_during_render: bool
    volume: Union[float, List[VolumePoint]]

    @property
    def end_in_video(self) -> int:
        return self.start_in_video + self.duration


@dataclass
class OnErrorInfo:
    """Error reported while rendering; frame is None if no frame was assigned yet"""
    error: Exception
    frame: Optional[int] = None


@dataclass
class AssetsInfo:
    """Raw per-frame assets and the timeline stitched from them"""
    assets: List[List[RenderAsset]]
    timeline: List[MediaAsset] = field(default_factory=list)


@dataclass
class RenderFramesOutput:
    """Result of a render invocation"""
    frame_count: int
    assets_info: AssetsInfo


@dataclass
class WorkerSetup:
    """Everything a new worker needs to load the composition"""
    width: int
    height: int
    serve_url: str
    composition_id: str
    initial_frame: int = 0
    input_props: Any = None
    env_variables: Dict[str, str] = field(default_factory=dict)

    @property
    def composition_url(self) -> str:
        return f"{self.serve_url.rstrip('/')}/index.html?composition={self.composition_id}"


class IRenderWorker(ABC):
    """Interface for a reusable browser tab able to render frames"""

    @abstractmethod
    async def seek_to_frame(self, frame: int) -> None:
        """Move the page to the given frame and wait until it is ready"""
        pass

    @abstractmethod
    async def screenshot(self, output: str, image_format: str, quality: Optional[int] = None) -> None:
        """Capture the current frame to a file"""
        pass

    @abstractmethod
    async def collect_assets(self) -> List[Dict[str, Any]]:
        """Ask the page for the assets referenced up to the current frame"""
        pass

    @abstractmethod
    def add_error_listener(self, listener: ErrorListener) -> None:
        """Register a callback for errors raised inside the page"""
        pass

    @abstractmethod
    def remove_error_listener(self, listener: ErrorListener) -> None:
        """Unregister a page error callback"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying tab"""
        pass


class IWorkerFactory(ABC):
    """Interface for opening render workers"""

    @abstractmethod
    async def open_worker(self, setup: WorkerSetup, on_error: Optional[ErrorListener] = None) -> IRenderWorker:
        """Open a worker with the composition loaded; on_error sees page errors during setup"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release everything the factory started"""
        pass
