"""
Schemas for video split module
"""

import math
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, validator

from ..pod1_geometry.schemas import GridSize
from ..pod3_tiling.schemas import TileClip, PreviewImage
from ..common.config import settings


class MediaKind(str, Enum):
    """Kind of source media, decided once from a format hint"""
    IMAGE = "image"
    VIDEO = "video"
    ANIMATION = "animation"

    @classmethod
    def from_hint(cls, hint: Optional[str]) -> "MediaKind":
        """
        Parse a kind name, file extension or MIME type

        Args:
            hint: e.g. "video", ".mp4", "image/gif"; None means a still image

        Returns:
            MediaKind

        Raises:
            ValueError: if the hint is not recognised
        """
        if hint is None:
            return cls.IMAGE

        value = hint.strip().lower().lstrip(".")
        if value in (m.value for m in cls):
            return cls(value)
        if value in ANIMATION_HINTS:
            return cls.ANIMATION
        if value in VIDEO_HINTS or value.startswith("video/"):
            return cls.VIDEO
        if value in IMAGE_HINTS or value.startswith("image/"):
            return cls.IMAGE
        raise ValueError(f"Unknown media format hint: {hint}")

    @property
    def scratch_suffix(self) -> str:
        """Extension for the scratch copy of the input"""
        return {
            MediaKind.IMAGE: ".png",
            MediaKind.VIDEO: ".mp4",
            MediaKind.ANIMATION: ".gif",
        }[self]

    @property
    def is_motion(self) -> bool:
        return self is not MediaKind.IMAGE


ANIMATION_HINTS = {"gif", "image/gif", "tgs", "gifv"}
VIDEO_HINTS = {"mp4", "mov", "webm", "mkv", "avi", "m4v", "mpeg", "mpg"}
IMAGE_HINTS = {"png", "jpg", "jpeg", "webp", "bmp", "tiff", "tif", "photo", "sticker"}


class SplitStage(str, Enum):
    """Stages of a video split invocation"""
    PROBING = "probing"
    PLANNING = "planning"
    TRANSCODING = "transcoding"
    COLLECTING = "collecting"
    PREVIEW = "preview"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


class VideoMeta(BaseModel):
    """Result of media inspection"""
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    duration: float = Field(default=0.0, ge=0.0)
    size_mb: float = Field(default=0.0, ge=0.0)

    class Config:
        frozen = True

    @classmethod
    def from_probe(cls, probe: dict, size_bytes: int = 0) -> Optional["VideoMeta"]:
        """
        Build from ffprobe JSON

        Returns:
            VideoMeta, or None when no video stream is reported
        """
        stream = next(
            (s for s in probe.get("streams", []) if s.get("codec_type") == "video"),
            None
        )
        if stream is None:
            return None

        duration = _as_float(probe.get("format", {}).get("duration"))
        if not duration:
            duration = _as_float(stream.get("duration"))

        width = int(stream.get("width") or 0)
        height = int(stream.get("height") or 0)

        # ffmpeg applies the display rotation before filters run
        if _rotation(stream) % 180 == 90:
            width, height = height, width

        return cls(
            width=width,
            height=height,
            duration=duration,
            size_mb=size_bytes / (1024 * 1024)
        )


def _rotation(stream: dict) -> int:
    """Display rotation in degrees from side data or the legacy rotate tag"""
    for side_data in stream.get("side_data_list") or []:
        if "rotation" in side_data:
            try:
                return int(float(side_data["rotation"]))
            except (TypeError, ValueError):
                return 0

    try:
        return int(float((stream.get("tags") or {}).get("rotate", 0)))
    except (TypeError, ValueError):
        return 0


def _as_float(value) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) and result > 0 else 0.0


class TrimPlan(BaseModel):
    """Shared trim applied to every tile so all clips stay in sync"""
    fps: int
    frame_count: int
    duration: float

    class Config:
        frozen = True


class VideoSplitConfig(BaseModel):
    """Configuration for video tile splitting"""
    tile_size: int = Field(default=settings.tile_size, description="Output clip edge in pixels")
    fps: int = Field(default=settings.video_fps, description="Output frame rate")
    max_duration: float = Field(default=settings.video_max_duration, description="Clip length cap in seconds")
    bitrate: str = Field(default=settings.video_bitrate, description="VP9 target bitrate")
    timeout_base: float = Field(default=settings.transcode_timeout_base)
    timeout_per_tile: float = Field(default=settings.transcode_timeout_per_tile)
    timeout_cap: float = Field(default=settings.transcode_timeout_cap)
    kill_grace: float = Field(default=settings.transcode_kill_grace)
    scratch_dir: str = Field(default=settings.scratch_dir)
    show_progress: bool = Field(default=settings.show_progress)
    batch_table: Tuple[Tuple[int, int], ...] = Field(
        default=((16, 16), (25, 10), (36, 8), (49, 6)),
        description="(max tile count, batch size) pairs, ascending"
    )
    overflow_batch_size: int = Field(default=4, description="Batch size past the last table entry")

    @validator('tile_size', 'fps', 'overflow_batch_size')
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError(f"Value must be positive: {v}")
        return v

    @validator('max_duration', 'timeout_base', 'timeout_cap')
    def validate_positive_seconds(cls, v):
        if v <= 0:
            raise ValueError(f"Duration must be positive: {v}")
        return v

    @validator('timeout_per_tile', 'kill_grace')
    def validate_non_negative_seconds(cls, v):
        if v < 0:
            raise ValueError(f"Duration must be non-negative: {v}")
        return v

    @validator('batch_table')
    def validate_batch_table(cls, v):
        limits = [limit for limit, _ in v]
        if limits != sorted(limits):
            raise ValueError(f"Batch table must be sorted by tile count: {v}")
        if any(size <= 0 for _, size in v):
            raise ValueError(f"Batch sizes must be positive: {v}")
        return v

    def batch_size_for(self, tile_count: int) -> int:
        """Batch size for a grid of tile_count tiles"""
        for limit, size in self.batch_table:
            if tile_count <= limit:
                return size
        return self.overflow_batch_size

    def timeout_for(self, batch_len: int) -> float:
        """Wall-clock limit of one batch"""
        return min(self.timeout_cap, self.timeout_base + self.timeout_per_tile * batch_len)

    def trim_plan(self, source_duration: float) -> TrimPlan:
        """Frame count and duration shared by every tile"""
        max_duration = min(source_duration or self.max_duration, self.max_duration)
        frame_count = max(1, math.floor(self.fps * max_duration))
        return TrimPlan(fps=self.fps, frame_count=frame_count, duration=frame_count / self.fps)


class VideoSplitResult(BaseModel):
    """Result of splitting a video into tiles"""
    tiles: List[TileClip]
    preview: Optional[PreviewImage] = None
    grid: GridSize
    meta: VideoMeta
    batches: int
    processing_time: float
