"""
Schemas for tiling module
"""

from typing import Optional, Tuple
from pydantic import BaseModel, Field, validator

from ..pod1_geometry.schemas import GridSize, TileRect
from ..common.config import settings


class TileImage(BaseModel):
    """Encoded still tile"""
    index: int = Field(..., ge=0)
    data: bytes
    rect: TileRect

    class Config:
        frozen = True

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class TileClip(BaseModel):
    """Encoded animated tile"""
    index: int = Field(..., ge=0)
    data: bytes
    rect: TileRect

    class Config:
        frozen = True

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class PreviewImage(BaseModel):
    """Composite mosaic preview"""
    data: bytes
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    grid: Optional[GridSize] = None

    class Config:
        frozen = True


class RenderConfig(BaseModel):
    """Configuration for still tile rendering"""
    tile_size: int = Field(default=settings.tile_size, description="Exported tile edge in pixels")
    preview_cell_size: int = Field(
        default=settings.preview_cell_size,
        description="Cell edge for previews built from rendered tiles"
    )
    max_tile_padding: int = Field(default=settings.max_tile_padding)
    max_preview_padding: int = Field(default=settings.max_preview_padding)
    compress_level: int = Field(default=9, description="PNG zlib compression level")
    separator_width: int = Field(default=2, description="Grid line width on previews")
    separator_color: Tuple[int, int, int, int] = Field(
        default=(255, 0, 0, 204),
        description="RGBA color of preview grid lines"
    )

    @validator('tile_size', 'preview_cell_size')
    def validate_size(cls, v):
        if v <= 0:
            raise ValueError(f"Size must be positive: {v}")
        return v

    @validator('max_tile_padding', 'max_preview_padding')
    def validate_padding_bound(cls, v):
        if v < 0:
            raise ValueError(f"Padding bound must be non-negative: {v}")
        return v

    @validator('compress_level')
    def validate_compress_level(cls, v):
        if not 0 <= v <= 9:
            raise ValueError(f"Compression level must be between 0 and 9: {v}")
        return v

    def clamp_tile_padding(self, padding: int) -> int:
        return max(0, min(self.max_tile_padding, int(round(padding))))

    def clamp_preview_padding(self, padding: int) -> int:
        return max(0, min(self.max_preview_padding, int(round(padding))))
