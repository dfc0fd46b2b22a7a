"""
POD 4: Video Split Module
Splits videos and animations into synchronized tile clips with ffmpeg
"""

from .pipeline import VideoTileSplitter
from .runner import FfmpegRunner
from .schemas import (
    MediaKind,
    VideoMeta,
    VideoSplitConfig,
    VideoSplitResult,
    TrimPlan
)

__all__ = [
    "VideoTileSplitter",
    "FfmpegRunner",
    "MediaKind",
    "VideoMeta",
    "VideoSplitConfig",
    "VideoSplitResult",
    "TrimPlan"
]
