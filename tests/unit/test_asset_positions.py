"""
Unit tests for stitching per-frame assets into spans
"""

from pathlib import Path

import pytest

from framerender.core.exceptions import AssetStitchingError
from framerender.core.interfaces import OpenAssetSpan, RenderAsset, VolumePoint
from framerender.services.asset_positions import (
    calculate_asset_positions, deduplicate_assets, finalize_span, flatten_volume,
    resolve_asset_src, uncompress_media_asset
)


def asset(asset_id: str, frame: int, volume: float = 1.0, **overrides) -> RenderAsset:
    values = dict(
        id=asset_id,
        type="audio",
        src="https://example.com/music.mp3",
        media_frame=frame,
        volume=volume,
        frame=frame
    )
    values.update(overrides)
    return RenderAsset(**values)


def frames_with(asset_id: str, present: range, total: int, **overrides):
    return [[asset(asset_id, f, **overrides)] if f in present else [] for f in range(total)]


class TestCalculateAssetPositions:
    """Test calculate_asset_positions"""

    def test_span_in_the_middle(self):
        timeline = calculate_asset_positions(frames_with("a", range(3, 6), 8))

        assert len(timeline) == 1
        span = timeline[0]
        assert span.id == "a"
        assert span.start_in_video == 3
        assert span.duration == 3
        assert span.end_in_video == 6
        assert span.trim_left == 3
        assert span.volume == 1.0

    def test_span_from_first_frame(self):
        timeline = calculate_asset_positions(frames_with("a", range(0, 4), 4))

        assert timeline[0].start_in_video == 0
        assert timeline[0].duration == 4

    def test_asset_only_in_last_frame(self):
        timeline = calculate_asset_positions(frames_with("a", range(9, 10), 10))

        assert timeline[0].start_in_video == 9
        assert timeline[0].duration == 1

    def test_all_spans_are_closed(self):
        frames = [
            [asset("a", 0), asset("b", 0)],
            [asset("a", 1)],
            [asset("a", 2), asset("c", 2)],
            [asset("c", 3)]
        ]

        timeline = calculate_asset_positions(frames)

        assert [(s.id, s.start_in_video, s.duration) for s in timeline] == [
            ("a", 0, 3), ("b", 0, 1), ("c", 2, 2)
        ]
        assert all(s.duration is not None for s in timeline)

    def test_reappearing_asset_opens_new_span(self):
        frames = [[asset("a", 0)], [asset("a", 1)], [], [asset("a", 3)]]

        timeline = calculate_asset_positions(frames)

        assert [(s.start_in_video, s.duration) for s in timeline] == [(0, 2), (3, 1)]

    def test_duplicate_id_in_one_frame_keeps_first(self):
        frames = frames_with("a", range(3, 6), 7)
        frames[4].append(asset("a", 4, volume=0.2))

        timeline = calculate_asset_positions(frames)

        assert len(timeline) == 1
        # The duplicate would have added a second, quieter sample for frame 4
        assert timeline[0].volume == 1.0
        assert timeline[0].duration == 3

    def test_volume_curve(self):
        frames = [
            [asset("a", 0, volume=1.0)],
            [asset("a", 1, volume=1.0)],
            [asset("a", 2, volume=0.5)],
            [asset("a", 3, volume=0.5)]
        ]

        timeline = calculate_asset_positions(frames)

        assert timeline[0].volume == [
            VolumePoint(offset=0, media_offset=0.0, volume=1.0),
            VolumePoint(offset=2, media_offset=2.0, volume=0.5)
        ]

    def test_missing_slots_are_empty_frames(self):
        timeline = calculate_asset_positions([None, [asset("a", 1)], None])

        assert timeline[0].start_in_video == 1
        assert timeline[0].duration == 1

    def test_compressed_src_is_resolved(self):
        frames = [
            [asset("a", 0, src="https://example.com/video.mp4")],
            [],
            [asset("a", 2, src="same-as-a-0")]
        ]

        timeline = calculate_asset_positions(frames)

        assert [s.src for s in timeline] == ["https://example.com/video.mp4"] * 2

    def test_no_assets(self):
        assert calculate_asset_positions([[], [], []]) == []


class TestDeduplicateAssets:
    """Test deduplicate_assets"""

    def test_first_occurrence_wins(self):
        first = asset("a", 0, volume=0.3)
        result = deduplicate_assets([first, asset("b", 0), asset("a", 0, volume=0.9)])

        assert [a.id for a in result] == ["a", "b"]
        assert result[0] is first


class TestFlattenVolume:
    """Test flatten_volume"""

    def span(self, volume, playback_rate=1.0, amplify=False) -> OpenAssetSpan:
        return OpenAssetSpan(
            id="a", type="audio", src="x", start_in_video=0, trim_left=0,
            playback_rate=playback_rate, allow_amplification_during_render=amplify,
            duration=len(volume), volume=list(volume)
        )

    def test_constant_volume(self):
        assert flatten_volume(self.span([0.4, 0.4, 0.4])) == pytest.approx(0.4)

    def test_volume_clamped_without_amplification(self):
        assert flatten_volume(self.span([2.0, 3.0])) == 1.0
        assert flatten_volume(self.span([-1.0])) == 0.0

    def test_amplification_allowed(self):
        assert flatten_volume(self.span([2.0, 2.0], amplify=True)) == 2.0

    def test_media_offset_uses_playback_rate(self):
        curve = flatten_volume(self.span([1.0, 1.0, 0.0], playback_rate=2.0))

        assert curve[-1] == VolumePoint(offset=2, media_offset=4.0, volume=0.0)

    def test_empty_samples(self):
        with pytest.raises(AssetStitchingError):
            flatten_volume(self.span([]))


class TestStitchingHelpers:
    """Test span finalization and src resolution"""

    def test_unclosed_span_is_an_error(self):
        span = OpenAssetSpan(
            id="a", type="audio", src="x", start_in_video=0, trim_left=0,
            playback_rate=1.0, allow_amplification_during_render=False, volume=[1.0]
        )

        assert span.is_open
        with pytest.raises(AssetStitchingError, match="unexpectedly None"):
            finalize_span(span)

    def test_unknown_compressed_reference(self):
        with pytest.raises(AssetStitchingError):
            uncompress_media_asset([asset("a", 0)], asset("b", 1, src="same-as-a-7"))

    def test_uncompressed_asset_unchanged(self):
        original = asset("a", 0)
        assert uncompress_media_asset([original], original) is original

    def test_resolve_src(self, tmp_path):
        assert resolve_asset_src("https://example.com/a.mp3") == "https://example.com/a.mp3"
        assert resolve_asset_src((tmp_path / "a.mp3").as_uri()) == str((tmp_path / "a.mp3").resolve())
        assert Path(resolve_asset_src("media/a.mp3")).is_absolute()

    def test_from_dict_reads_camel_case(self):
        parsed = RenderAsset.from_dict({
            "id": 3,
            "type": "video",
            "src": "https://example.com/v.mp4",
            "mediaFrame": 12,
            "playbackRate": 1.5,
            "volume": 0.7,
            "allowAmplificationDuringRender": True,
            "frame": 4
        })

        assert parsed.id == "3"
        assert parsed.media_frame == 12
        assert parsed.playback_rate == 1.5
        assert parsed.allow_amplification_during_render is True
