"""
Unit tests for Video Tile Splitter (POD4)
"""

import io
import os
import stat
import time

import pytest
from PIL import Image

from src.pod1_geometry import partition, TileRect
from src.pod4_video_split import (
    VideoTileSplitter,
    FfmpegRunner,
    MediaKind,
    VideoMeta,
    VideoSplitConfig,
    TrimPlan
)
from src.pod4_video_split.filtergraph import (
    build_filter_graph,
    build_batch_args,
    build_frame_extract_args,
    format_seconds
)
from src.common.errors import (
    NoVideoStream,
    TranscoderUnavailable,
    TranscodeFailed,
    TranscodeTimeout,
    TranscodeResourceExhausted
)

PROBE_JSON = '{"streams": [{"codec_type": "video", "width": 64, "height": 64}], "format": {"duration": "2.0"}}'


def make_executable(path, body: str) -> str:
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def png_bytes(color=(0, 128, 255, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (32, 32), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeRunner:
    """Stands in for ffmpeg: writes every output file named in the arguments"""

    def __init__(self, probe_result=None):
        self.probe_result = probe_result if probe_result is not None else {
            "streams": [{"codec_type": "video", "width": 300, "height": 300}],
            "format": {"duration": "5.0"}
        }
        self.calls = []

    async def probe(self, path, timeout=None):
        return self.probe_result

    async def run(self, args, timeout, batch=None):
        self.calls.append((list(args), timeout, batch))
        for i, arg in enumerate(args):
            if i > 0 and args[i - 1] == "-i":
                continue
            name = os.path.basename(arg)
            if arg.endswith(".webm"):
                with open(arg, "wb") as f:
                    f.write(name.encode())
            elif arg.endswith(".png"):
                with open(arg, "wb") as f:
                    f.write(png_bytes())
        return ""


class TestMediaKind:
    """Test format hint parsing"""

    @pytest.mark.parametrize("hint,expected", [
        (None, MediaKind.IMAGE),
        ("image", MediaKind.IMAGE),
        (".PNG", MediaKind.IMAGE),
        ("image/jpeg", MediaKind.IMAGE),
        ("video", MediaKind.VIDEO),
        (".mp4", MediaKind.VIDEO),
        ("video/quicktime", MediaKind.VIDEO),
        ("gif", MediaKind.ANIMATION),
        ("image/gif", MediaKind.ANIMATION),
        ("animation", MediaKind.ANIMATION),
    ])
    def test_from_hint(self, hint, expected):
        assert MediaKind.from_hint(hint) is expected

    def test_unknown_hint(self):
        with pytest.raises(ValueError):
            MediaKind.from_hint("application/pdf")

    def test_motion(self):
        assert not MediaKind.IMAGE.is_motion
        assert MediaKind.VIDEO.is_motion
        assert MediaKind.ANIMATION.scratch_suffix == ".gif"


class TestVideoSplitConfig:
    """Test batch sizing, timeouts and trimming"""

    @pytest.mark.parametrize("tiles,size", [
        (4, 16), (16, 16), (17, 10), (25, 10), (36, 8), (49, 6), (50, 4), (100, 4)
    ])
    def test_batch_size_for(self, tiles, size):
        assert VideoSplitConfig().batch_size_for(tiles) == size

    def test_seven_by_seven_runs_nine_batches(self):
        config = VideoSplitConfig()
        plan = partition(700, 700, 7, 7, 0)
        assert len(plan.batches(config.batch_size_for(49))) == 9

    def test_timeout_scales_and_caps(self):
        config = VideoSplitConfig(timeout_base=30, timeout_per_tile=10, timeout_cap=180)
        assert config.timeout_for(1) == 40
        assert config.timeout_for(6) == 90
        assert config.timeout_for(16) == 180

    @pytest.mark.parametrize("duration,frames", [(2.0, 60), (10.0, 90), (0.0, 90), (0.01, 1)])
    def test_trim_plan(self, duration, frames):
        trim = VideoSplitConfig(fps=30, max_duration=3.0).trim_plan(duration)
        assert trim.frame_count == frames
        assert trim.duration == pytest.approx(frames / 30)

    def test_unsorted_batch_table(self):
        with pytest.raises(ValueError):
            VideoSplitConfig(batch_table=((25, 10), (16, 16)))

    def test_invalid_fps(self):
        with pytest.raises(ValueError):
            VideoSplitConfig(fps=0)


class TestVideoMeta:
    """Test ffprobe result parsing"""

    def test_from_probe(self):
        probe = {
            "streams": [
                {"codec_type": "audio"},
                {"codec_type": "video", "width": 1280, "height": 720, "duration": "9.5"}
            ],
            "format": {"duration": "10.0"}
        }
        meta = VideoMeta.from_probe(probe, size_bytes=2 * 1024 * 1024)
        assert (meta.width, meta.height) == (1280, 720)
        assert meta.duration == 10.0
        assert meta.size_mb == 2.0

    def test_stream_duration_fallback(self):
        probe = {"streams": [{"codec_type": "video", "width": 10, "height": 10, "duration": "1.5"}],
                 "format": {"duration": "N/A"}}
        assert VideoMeta.from_probe(probe).duration == 1.5

    def test_no_video_stream(self):
        assert VideoMeta.from_probe({"streams": [{"codec_type": "audio"}]}) is None

    @pytest.mark.parametrize("stream_extra,expected", [
        ({"side_data_list": [{"side_data_type": "Display Matrix", "rotation": -90}]}, (1080, 1920)),
        ({"side_data_list": [{"rotation": 270}]}, (1080, 1920)),
        ({"tags": {"rotate": "90"}}, (1080, 1920)),
        ({"side_data_list": [{"rotation": 180}]}, (1920, 1080)),
        ({"tags": {"rotate": "sideways"}}, (1920, 1080)),
    ])
    def test_rotation_swaps_dimensions(self, stream_extra, expected):
        """Dimensions are reported as ffmpeg decodes them, after rotation"""
        stream = {"codec_type": "video", "width": 1920, "height": 1080, **stream_extra}
        meta = VideoMeta.from_probe({"streams": [stream], "format": {"duration": "1.0"}})
        assert (meta.width, meta.height) == expected


class TestFilterGraph:
    """Test ffmpeg argument construction"""

    @pytest.fixture
    def trim(self):
        return TrimPlan(fps=30, frame_count=90, duration=3.0)

    def test_single_decode_split(self, trim):
        rects = partition(300, 300, 1, 2, 0).tiles
        graph = build_filter_graph(rects, trim, 100)
        parts = graph.split(";")
        assert len(parts) == 3
        assert parts[0] == "[0:v]fps=30,trim=duration=3,setpts=PTS-STARTPTS,format=rgba,split=2[s0][s1]"
        assert parts[2].startswith("[s1]crop=150:300:150:0,scale=100:100:flags=lanczos")
        assert parts[2].endswith("trim=end_frame=90,setpts=PTS-STARTPTS[out1]")

    def test_batch_args_map_each_output(self, trim):
        rects = partition(300, 300, 2, 2, 0).tiles
        outputs = [f"/tmp/out{i}.webm" for i in range(4)]
        args = build_batch_args("/tmp/in.mp4", rects, outputs, trim, VideoSplitConfig(bitrate="500k"))
        assert args[:2] == ["-i", "/tmp/in.mp4"]
        assert args.count("-map") == 4
        assert args.count("libvpx-vp9") == 4
        assert args[-1] == outputs[-1]
        assert args[args.index("-map") + 1] == "[out0]"

    def test_batch_args_length_mismatch(self, trim):
        rects = partition(300, 300, 1, 2, 0).tiles
        with pytest.raises(ValueError):
            build_batch_args("in.mp4", rects, ["one.webm"], trim, VideoSplitConfig())

    def test_frame_extract_alpha_decoder(self):
        args = build_frame_extract_args("in.webm", "out.png", alpha_decoder=True)
        assert args[:2] == ["-c:v", "libvpx-vp9"]
        assert args.index("-c:v") < args.index("-i")

    def test_format_seconds(self):
        assert format_seconds(3.0) == "3"
        assert format_seconds(1 / 30) == "0.033333"


class TestFfmpegRunner:
    """Test subprocess supervision with stand-in executables"""

    @pytest.fixture
    def ffprobe(self, tmp_path):
        return make_executable(tmp_path / "ffprobe", f"cat <<'EOF'\n{PROBE_JSON}\nEOF")

    def test_missing_executable(self, tmp_path):
        with pytest.raises(TranscoderUnavailable):
            FfmpegRunner(ffmpeg_path=str(tmp_path / "missing"), ffprobe_path=str(tmp_path / "missing"))

    def test_not_executable(self, tmp_path, ffprobe):
        plain = tmp_path / "ffmpeg"
        plain.write_text("#!/bin/sh\n")
        with pytest.raises(TranscoderUnavailable):
            FfmpegRunner(ffmpeg_path=str(plain), ffprobe_path=ffprobe)

    @pytest.mark.asyncio
    async def test_probe_parses_json(self, tmp_path, ffprobe):
        ffmpeg = make_executable(tmp_path / "ffmpeg", "exit 0")
        runner = FfmpegRunner(ffmpeg_path=ffmpeg, ffprobe_path=ffprobe)
        probe = await runner.probe("input.mp4", timeout=10)
        assert probe["streams"][0]["width"] == 64

    @pytest.mark.asyncio
    async def test_failure_carries_stderr(self, tmp_path, ffprobe):
        ffmpeg = make_executable(tmp_path / "ffmpeg", "echo 'Invalid filter graph' >&2\nexit 1")
        runner = FfmpegRunner(ffmpeg_path=ffmpeg, ffprobe_path=ffprobe)
        with pytest.raises(TranscodeFailed) as exc_info:
            await runner.run(["-i", "x"], timeout=10, batch=3)
        assert "Invalid filter graph" in exc_info.value.stderr_excerpt
        assert exc_info.value.batch == 3
        assert not isinstance(exc_info.value, TranscodeResourceExhausted)

    @pytest.mark.asyncio
    async def test_oom_exit_code(self, tmp_path, ffprobe):
        ffmpeg = make_executable(tmp_path / "ffmpeg", "exit 137")
        runner = FfmpegRunner(ffmpeg_path=ffmpeg, ffprobe_path=ffprobe)
        with pytest.raises(TranscodeResourceExhausted):
            await runner.run([], timeout=10)

    @pytest.mark.asyncio
    async def test_oom_stderr(self, tmp_path, ffprobe):
        ffmpeg = make_executable(tmp_path / "ffmpeg", "echo 'Cannot allocate memory' >&2\nexit 1")
        runner = FfmpegRunner(ffmpeg_path=ffmpeg, ffprobe_path=ffprobe)
        with pytest.raises(TranscodeResourceExhausted):
            await runner.run([], timeout=10)

    @pytest.mark.asyncio
    async def test_hung_probe_reports_probing_stage(self, tmp_path):
        ffmpeg = make_executable(tmp_path / "ffmpeg", "exit 0")
        ffprobe = make_executable(tmp_path / "ffprobe", "exec sleep 30")
        runner = FfmpegRunner(ffmpeg_path=ffmpeg, ffprobe_path=ffprobe, kill_grace=0.5)
        with pytest.raises(TranscodeTimeout) as exc_info:
            await runner.probe("input.mp4", timeout=0.5)
        assert exc_info.value.stage == "probing"

    @pytest.mark.asyncio
    async def test_timeout_kills_and_cleans_scratch(self, tmp_path, ffprobe):
        """A hung transcode is killed and leaves no scratch files"""
        ffmpeg = make_executable(tmp_path / "ffmpeg", "exec sleep 30")
        scratch = tmp_path / "scratch"
        config = VideoSplitConfig(
            timeout_base=1.0,
            timeout_per_tile=0,
            kill_grace=0.5,
            scratch_dir=str(scratch)
        )
        runner = FfmpegRunner(ffmpeg_path=ffmpeg, ffprobe_path=ffprobe, kill_grace=0.5)
        splitter = VideoTileSplitter(config=config, runner=runner)

        start = time.monotonic()
        with pytest.raises(TranscodeTimeout) as exc_info:
            await splitter.split_video_to_tiles(b"not really a video", 2, 2, build_preview=False)
        assert time.monotonic() - start < 10
        assert exc_info.value.batch == 1
        assert list(scratch.iterdir()) == []
        splitter.preview_assembler.cleanup()


class TestVideoTileSplitter:
    """Test the split pipeline against a fake runner"""

    @pytest.fixture
    def scratch(self, tmp_path):
        return tmp_path / "scratch"

    def make_splitter(self, scratch, runner):
        return VideoTileSplitter(config=VideoSplitConfig(scratch_dir=str(scratch)), runner=runner)

    @pytest.mark.asyncio
    async def test_tiles_in_row_major_order(self, scratch):
        runner = FakeRunner()
        splitter = self.make_splitter(scratch, runner)
        result = await splitter.split_video_to_tiles(b"video", 3, 3, build_preview=False)

        assert len(result.tiles) == 9
        for i, tile in enumerate(result.tiles):
            assert tile.index == i
            assert tile.data.startswith(f"tile-{i // 3}-{i % 3}-".encode())
        assert result.batches == 1
        assert result.meta.duration == 5.0
        assert list(scratch.iterdir()) == []
        splitter.preview_assembler.cleanup()

    @pytest.mark.asyncio
    async def test_seven_by_seven_batches(self, scratch):
        runner = FakeRunner({"streams": [{"codec_type": "video", "width": 700, "height": 700}], "format": {}})
        splitter = self.make_splitter(scratch, runner)
        result = await splitter.split_video_to_tiles(b"video", 7, 7, build_preview=False)

        assert result.batches == 9
        assert [batch for _, _, batch in runner.calls] == list(range(1, 10))
        assert [tile.index for tile in result.tiles] == list(range(49))
        assert all(tile.data.startswith(f"tile-{tile.rect.row}-{tile.rect.col}-".encode()) for tile in result.tiles)
        splitter.preview_assembler.cleanup()

    @pytest.mark.asyncio
    async def test_preview_from_first_frames(self, scratch):
        splitter = VideoTileSplitter(
            config=VideoSplitConfig(scratch_dir=str(scratch)),
            runner=FakeRunner()
        )
        result = await splitter.split_video_to_tiles(b"video", 2, 3, build_preview=True)

        assert result.preview is not None
        cell = splitter.preview_assembler.config.preview_cell_size
        assert (result.preview.width, result.preview.height) == (3 * cell, 2 * cell)
        splitter.preview_assembler.cleanup()

    @pytest.mark.asyncio
    async def test_rotated_video_crops_inside_decoded_frame(self, scratch):
        """A portrait phone clip stored landscape is tiled in its displayed size"""
        runner = FakeRunner({
            "streams": [{
                "codec_type": "video",
                "width": 1920,
                "height": 1080,
                "side_data_list": [{"side_data_type": "Display Matrix", "rotation": -90}]
            }],
            "format": {"duration": "2.0"}
        })
        splitter = self.make_splitter(scratch, runner)
        result = await splitter.split_video_to_tiles(b"video", 2, 2, build_preview=False)

        assert (result.meta.width, result.meta.height) == (1080, 1920)
        assert max(t.rect.left + t.rect.width for t in result.tiles) == 1080
        assert max(t.rect.top + t.rect.height for t in result.tiles) == 1920
        graph = runner.calls[0][0][runner.calls[0][0].index("-filter_complex") + 1]
        assert "crop=540:960:540:960" in graph
        splitter.preview_assembler.cleanup()

    @pytest.mark.asyncio
    async def test_no_video_stream(self, scratch):
        splitter = self.make_splitter(scratch, FakeRunner({"streams": [{"codec_type": "audio"}]}))
        with pytest.raises(NoVideoStream):
            await splitter.split_video_to_tiles(b"audio only", 2, 2)
        assert list(scratch.iterdir()) == []
        splitter.preview_assembler.cleanup()

    @pytest.mark.asyncio
    async def test_get_video_meta(self, scratch):
        splitter = self.make_splitter(scratch, FakeRunner())
        meta = await splitter.get_video_meta(b"12345")
        assert (meta.width, meta.height) == (300, 300)
        splitter.preview_assembler.cleanup()

    @pytest.mark.asyncio
    async def test_extract_first_frame(self, scratch):
        splitter = self.make_splitter(scratch, FakeRunner())
        frame = await splitter.extract_first_frame(b"video", MediaKind.ANIMATION)
        assert Image.open(io.BytesIO(frame)).format == "PNG"
        splitter.preview_assembler.cleanup()

    @pytest.mark.asyncio
    async def test_still_to_clip(self, scratch):
        runner = FakeRunner()
        splitter = self.make_splitter(scratch, runner)
        clip = await splitter.still_to_clip(png_bytes())
        assert clip.startswith(b"clip-")
        args = runner.calls[0][0]
        assert args[:2] == ["-loop", "1"]
        splitter.preview_assembler.cleanup()
