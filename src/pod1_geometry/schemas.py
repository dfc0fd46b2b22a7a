"""
Schemas for geometry module
"""

from typing import List, Tuple
import numpy as np
from pydantic import BaseModel, Field, validator


class Dimensions(BaseModel):
    """Pixel dimensions of source media"""
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)

    class Config:
        frozen = True

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height"""
        return self.width / self.height


class GridSize(BaseModel):
    """Rows x cols layout of a mosaic"""
    rows: int = Field(..., ge=1)
    cols: int = Field(..., ge=1)
    tile_count: int

    class Config:
        frozen = True

    @validator('tile_count')
    def validate_tile_count(cls, v, values):
        """tile_count must always equal rows * cols"""
        rows, cols = values.get('rows'), values.get('cols')
        if rows is not None and cols is not None and v != rows * cols:
            raise ValueError(f"tile_count {v} does not match {rows}x{cols}")
        return v

    @classmethod
    def of(cls, rows: int, cols: int) -> "GridSize":
        return cls(rows=rows, cols=cols, tile_count=rows * cols)

    def to_string(self) -> str:
        return f"{self.rows}x{self.cols}"


class TileRect(BaseModel):
    """Source-space rectangle of a single tile"""
    index: int = Field(..., ge=0)
    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    left: int = Field(..., ge=0)
    top: int = Field(..., ge=0)
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)

    class Config:
        frozen = True

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(left, top, right, bottom) box as used by raster crops"""
        return (self.left, self.top, self.left + self.width, self.top + self.height)

    @property
    def area(self) -> int:
        return self.width * self.height


class GeometryPlan(BaseModel):
    """Ordered tile rectangles for one (dimensions, grid, padding) triple"""
    dimensions: Dimensions
    grid: GridSize
    padding: int = Field(..., ge=0)
    column_widths: Tuple[int, ...]
    row_heights: Tuple[int, ...]
    column_offsets: Tuple[int, ...]
    row_offsets: Tuple[int, ...]
    tiles: Tuple[TileRect, ...]

    class Config:
        frozen = True

    @property
    def canvas_width(self) -> int:
        """Preview canvas width: tile extents plus gutters"""
        return sum(self.column_widths) + self.padding * (self.grid.cols - 1)

    @property
    def canvas_height(self) -> int:
        """Preview canvas height: tile extents plus gutters"""
        return sum(self.row_heights) + self.padding * (self.grid.rows - 1)

    def placement(self, row: int, col: int) -> Tuple[int, int]:
        """Offset at which tile (row, col) is placed on a preview canvas"""
        return (
            self.column_offsets[col] + col * self.padding,
            self.row_offsets[row] + row * self.padding
        )

    def tile_at(self, row: int, col: int) -> TileRect:
        """Get tile by grid position"""
        if not (0 <= row < self.grid.rows and 0 <= col < self.grid.cols):
            raise IndexError(f"No tile at row {row}, col {col} in {self.grid.to_string()} grid")
        return self.tiles[row * self.grid.cols + col]

    def coverage_map(self) -> np.ndarray:
        """
        Count how many tile rectangles cover each source pixel

        Returns:
            int32 array of shape (height, width)
        """
        coverage = np.zeros(
            (self.dimensions.height, self.dimensions.width), dtype=np.int32
        )
        for tile in self.tiles:
            coverage[tile.top:tile.top + tile.height, tile.left:tile.left + tile.width] += 1
        return coverage

    def batches(self, batch_size: int) -> List[Tuple[TileRect, ...]]:
        """Split tiles into consecutive row-major batches"""
        if batch_size < 1:
            raise ValueError(f"Batch size must be positive: {batch_size}")
        return [
            self.tiles[i:i + batch_size]
            for i in range(0, len(self.tiles), batch_size)
        ]
