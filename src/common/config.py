"""
Configuration management for Mosaic Tiler
"""

import tempfile
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings"""

    # External transcoder
    ffmpeg_path: str = Field(
        default="ffmpeg",
        description="ffmpeg executable (absolute path or name on PATH)"
    )
    ffprobe_path: str = Field(
        default="ffprobe",
        description="ffprobe executable (absolute path or name on PATH)"
    )

    # Storage
    scratch_dir: str = Field(
        default=tempfile.gettempdir(),
        description="Base directory for per-invocation scratch files"
    )

    # Tiling
    tile_size: int = Field(
        default=100,
        description="Edge length of exported square tiles in pixels"
    )
    preview_cell_size: int = Field(
        default=128,
        description="Edge length of a single cell in video mosaic previews"
    )
    default_padding: int = Field(
        default=2,
        description="Default spacing between tiles in source pixels"
    )
    max_tile_padding: int = Field(
        default=20,
        description="Upper bound for padding on the tile export path"
    )
    max_preview_padding: int = Field(
        default=12,
        description="Upper bound for padding on the preview path"
    )

    # Video
    video_fps: int = Field(
        default=30,
        description="Frame rate of every exported clip"
    )
    video_max_duration: float = Field(
        default=3.0,
        description="Maximum clip duration in seconds"
    )
    video_bitrate: str = Field(
        default="500k",
        description="Target VP9 bitrate"
    )

    # Transcode supervision
    transcode_timeout_base: float = Field(
        default=30.0,
        description="Fixed part of the per-batch timeout in seconds"
    )
    transcode_timeout_per_tile: float = Field(
        default=10.0,
        description="Per-tile addition to the batch timeout in seconds"
    )
    transcode_timeout_cap: float = Field(
        default=180.0,
        description="Upper bound of any batch timeout in seconds"
    )
    transcode_kill_grace: float = Field(
        default=5.0,
        description="Seconds between SIGTERM and SIGKILL on timeout"
    )

    # Performance
    max_workers: int = Field(
        default=4,
        description="Maximum number of codec worker threads"
    )
    show_progress: bool = Field(
        default=False,
        description="Show tqdm progress bars for batch loops"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Log file path"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Create global settings instance
settings = Settings()
