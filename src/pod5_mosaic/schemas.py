"""
Schemas for mosaic service module
"""

from typing import List, Optional, Union
from pydantic import BaseModel, Field, validator

from ..pod1_geometry.schemas import Dimensions, GridSize
from ..pod3_tiling.schemas import TileImage, TileClip, PreviewImage
from ..pod4_video_split.schemas import MediaKind


class PreviewSession(BaseModel):
    """
    Caller-owned state of a pending preview

    The engine keeps nothing between calls; callers hold one session per
    user request and derive new sessions when the grid or padding changes.
    """
    media_kind: MediaKind
    data: bytes
    dimensions: Dimensions
    grid: GridSize
    padding: int = Field(default=0, ge=0)

    class Config:
        frozen = True

    def with_grid(self, rows: int, cols: int) -> "PreviewSession":
        return self.copy(update={"grid": GridSize.of(rows, cols)})

    def with_padding(self, padding: int) -> "PreviewSession":
        if padding < 0:
            raise ValueError(f"Padding must be non-negative: {padding}")
        return self.copy(update={"padding": padding})


class ExportResult(BaseModel):
    """Ordered tiles ready for upload"""
    media_kind: MediaKind
    grid: GridSize
    tiles: List[Union[TileImage, TileClip]]
    preview: Optional[PreviewImage] = None

    @validator('tiles')
    def validate_order(cls, v):
        """Tiles must be in row-major index order"""
        if [tile.index for tile in v] != list(range(len(v))):
            raise ValueError("Tiles are not in row-major order")
        return v

    @property
    def total_tiles(self) -> int:
        return len(self.tiles)
