"""
Stitching of per-frame asset snapshots into continuous asset spans
"""

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

import numpy as np

from ..core.exceptions import AssetStitchingError
from ..core.interfaces import MediaAsset, OpenAssetSpan, RenderAsset, VolumePoint
from ..core.logging_manager import get_logging_manager
from ..core.metrics import get_metrics_collector

COMPRESSED_SRC_PATTERN = re.compile(r"same-as-(.*)-([0-9.]+)$")


def deduplicate_assets(render_assets: Iterable[RenderAsset]) -> List[RenderAsset]:
    """Drop repeated ids within one frame, keeping the first occurrence"""
    seen = set()
    deduplicated = []
    for asset in render_assets:
        if asset.id not in seen:
            seen.add(asset.id)
            deduplicated.append(asset)
    return deduplicated


def resolve_asset_src(src: str) -> str:
    """Turn file:// URLs and relative paths into absolute local paths"""
    parsed = urlparse(src)
    if parsed.scheme == "file":
        return str(Path(url2pathname(parsed.path)).resolve())
    # A one letter scheme is a Windows drive, not a URL
    if len(parsed.scheme) > 1:
        return src
    return str(Path(src).resolve())


def uncompress_media_asset(all_assets: Sequence[RenderAsset], asset: RenderAsset) -> RenderAsset:
    """
    Resolve a src of the form ``same-as-<id>-<frame>``.

    The page sends the full src only once per asset and refers back to it
    on later frames.
    """
    match = COMPRESSED_SRC_PATTERN.search(asset.src)
    if not match:
        return asset

    asset_id, frame = match.groups()
    for candidate in all_assets:
        if candidate.id == asset_id and str(candidate.frame) == frame:
            return RenderAsset(
                id=asset.id,
                type=asset.type,
                src=candidate.src,
                media_frame=asset.media_frame,
                playback_rate=asset.playback_rate,
                volume=asset.volume,
                allow_amplification_during_render=asset.allow_amplification_during_render,
                frame=asset.frame
            )

    raise AssetStitchingError(
        f"Cannot uncompress asset {asset.id}: no asset {asset_id} at frame {frame}",
        error_code="uncompress_failed",
        details={"asset_id": asset.id, "reference": asset.src}
    )


def flatten_volume(span: OpenAssetSpan) -> Union[float, List[VolumePoint]]:
    """
    Collapse per-frame volume samples into one curve.

    Samples are clamped to [0, 1], or [0, inf) when amplification is allowed.
    A constant volume becomes a single number; otherwise only the points where
    the volume changes are kept, with the matching offset into the source media.
    """
    samples = np.asarray(span.volume, dtype=float)
    if samples.size == 0:
        raise AssetStitchingError(
            f"Asset {span.id} has no volume samples",
            error_code="empty_volume"
        )

    upper = np.inf if span.allow_amplification_during_render else 1.0
    samples = np.clip(samples, 0.0, upper)

    if np.all(samples == samples[0]):
        return float(samples[0])

    change_points = np.concatenate(([0], np.flatnonzero(np.diff(samples)) + 1))
    return [
        VolumePoint(
            offset=int(offset),
            media_offset=float(offset * span.playback_rate),
            volume=float(samples[offset])
        )
        for offset in change_points
    ]


def finalize_span(span: OpenAssetSpan) -> MediaAsset:
    if span.duration is None:
        raise AssetStitchingError(
            f"Duration of asset {span.id} is unexpectedly None",
            error_code="unclosed_span",
            details={"asset_id": span.id, "start_in_video": span.start_in_video}
        )
    return MediaAsset(
        id=span.id,
        type=span.type,
        src=span.src,
        start_in_video=span.start_in_video,
        duration=span.duration,
        trim_left=span.trim_left,
        playback_rate=span.playback_rate,
        allow_amplification_during_render=span.allow_amplification_during_render,
        volume=flatten_volume(span)
    )


def calculate_asset_positions(frames: Sequence[Optional[Sequence[RenderAsset]]]) -> List[MediaAsset]:
    """
    Reconstruct asset spans from per-frame asset lists.

    ``frames[i]`` holds the assets reported at frame i. An asset starts a span
    when it is missing from the previous frame and ends it when it is missing
    from the next one.
    """
    logger = get_logging_manager().get_logger("asset_positions")

    with get_metrics_collector().time_operation("calculate_asset_positions"):
        current_frames = [deduplicate_assets(frame or []) for frame in frames]
        all_assets = [asset for frame in current_frames for asset in frame]

        spans: List[OpenAssetSpan] = []
        open_spans: Dict[str, OpenAssetSpan] = {}

        for frame, current in enumerate(current_frames):
            previous_ids = {a.id for a in current_frames[frame - 1]} if frame > 0 else set()
            next_ids = {a.id for a in current_frames[frame + 1]} if frame + 1 < len(current_frames) else set()

            for asset in current:
                if asset.id not in previous_ids:
                    if asset.id in open_spans:
                        raise AssetStitchingError(
                            f"Asset {asset.id} starts at frame {frame} while a span for it is still open",
                            error_code="duplicate_open_span"
                        )
                    span = OpenAssetSpan(
                        id=asset.id,
                        type=asset.type,
                        src=resolve_asset_src(uncompress_media_asset(all_assets, asset).src),
                        start_in_video=frame,
                        trim_left=asset.media_frame,
                        playback_rate=asset.playback_rate,
                        allow_amplification_during_render=asset.allow_amplification_during_render
                    )
                    spans.append(span)
                    open_spans[asset.id] = span

                span = open_spans.get(asset.id)
                if span is None:
                    raise AssetStitchingError(
                        f"No open span for asset {asset.id} at frame {frame}",
                        error_code="missing_open_span"
                    )

                span.volume.append(asset.volume)

                if asset.id not in next_ids:
                    # start 0, last frame 59 -> 60 frames
                    span.duration = frame - span.start_in_video + 1
                    del open_spans[asset.id]

        timeline = [finalize_span(span) for span in spans]

    logger.debug(f"Stitched {len(timeline)} asset spans from {len(frames)} frames")
    return timeline
