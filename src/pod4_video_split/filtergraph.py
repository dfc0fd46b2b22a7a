"""
Filter graph and argument builders for batched tile transcodes
"""

from typing import List, Sequence

from .schemas import TrimPlan, VideoSplitConfig
from ..pod1_geometry.schemas import TileRect


def format_seconds(value: float) -> str:
    """Seconds with enough precision for frame-accurate trims"""
    return f"{value:.6f}".rstrip("0").rstrip(".")


def build_filter_graph(
    rects: Sequence[TileRect],
    trim: TrimPlan,
    tile_size: int
) -> str:
    """
    Build a filter_complex that decodes once and splits into one branch per tile

    Args:
        rects: Tiles handled by this batch, in row-major order
        trim: Shared frame rate and frame count
        tile_size: Output edge in pixels

    Returns:
        filter_complex description; branch k is labelled [outk]
    """
    count = len(rects)
    split_labels = "".join(f"[s{k}]" for k in range(count))
    base = (
        f"[0:v]fps={trim.fps},trim=duration={format_seconds(trim.duration)},"
        f"setpts=PTS-STARTPTS,format=rgba,split={count}{split_labels}"
    )

    branches = [
        f"[s{k}]crop={rect.width}:{rect.height}:{rect.left}:{rect.top},"
        f"scale={tile_size}:{tile_size}:flags=lanczos,setsar=1,format=yuva420p,"
        f"fps={trim.fps},trim=end_frame={trim.frame_count},setpts=PTS-STARTPTS[out{k}]"
        for k, rect in enumerate(rects)
    ]

    return ";".join([base, *branches])


def vp9_output_options(trim: TrimPlan, bitrate: str) -> List[str]:
    """Encoder options for one short looping VP9 clip with alpha"""
    frames = str(trim.frame_count)
    return [
        "-c:v", "libvpx-vp9",
        "-b:v", bitrate,
        "-an",
        "-r", str(trim.fps),
        "-frames:v", frames,
        "-g", frames,
        "-keyint_min", frames,
        "-lag-in-frames", "0",
        "-auto-alt-ref", "0",
        "-deadline", "realtime",
        "-pix_fmt", "yuva420p",
        "-row-mt", "1",
        "-tile-columns", "0",
        "-frame-parallel", "0",
        "-arnr-maxframes", "0",
        "-arnr-strength", "0",
        "-arnr-type", "0",
    ]


def build_batch_args(
    input_path: str,
    rects: Sequence[TileRect],
    output_paths: Sequence[str],
    trim: TrimPlan,
    config: VideoSplitConfig
) -> List[str]:
    """
    ffmpeg arguments for one batch: one input, one output per tile

    Args:
        input_path: Scratch copy of the source
        rects: Tiles of the batch
        output_paths: Output file per tile, same order as rects
        trim: Shared trim plan
        config: Split configuration

    Returns:
        Argument list without the executable
    """
    if len(rects) != len(output_paths):
        raise ValueError(f"{len(rects)} tiles but {len(output_paths)} outputs")

    args = [
        "-i", input_path,
        "-filter_complex", build_filter_graph(rects, trim, config.tile_size),
    ]
    options = vp9_output_options(trim, config.bitrate)
    for k, output_path in enumerate(output_paths):
        args += ["-map", f"[out{k}]", *options, output_path]
    return args


def build_still_to_clip_args(
    input_path: str,
    output_path: str,
    config: VideoSplitConfig,
    duration: float = 1.0
) -> List[str]:
    """Loop a still image into a short VP9 clip with alpha"""
    return [
        "-loop", "1",
        "-i", input_path,
        "-c:v", "libvpx-vp9",
        "-pix_fmt", "yuva420p",
        "-b:v", config.bitrate,
        "-t", format_seconds(duration),
        "-r", str(config.fps),
        "-an",
        output_path,
    ]


def build_frame_extract_args(
    input_path: str,
    output_path: str,
    alpha_decoder: bool = False
) -> List[str]:
    """Extract the first frame as PNG; alpha_decoder keeps VP9 transparency"""
    decoder = ["-c:v", "libvpx-vp9"] if alpha_decoder else []
    return [
        *decoder,
        "-i", input_path,
        "-frames:v", "1",
        output_path,
    ]
