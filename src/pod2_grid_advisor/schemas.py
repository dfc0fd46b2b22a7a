"""
Schemas for grid advisor module
"""

from pydantic import BaseModel, Field, validator

from ..pod1_geometry.schemas import GridSize


class AdvisorWeights(BaseModel):
    """Weights of the grid score terms"""
    square: float = Field(default=0.7, description="Weight of per-tile squareness")
    aspect: float = Field(default=0.2, description="Weight of mosaic aspect fit")
    tile_count: float = Field(default=0.1, description="Weight of tile count proximity")

    class Config:
        frozen = True

    @validator('square', 'aspect', 'tile_count')
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError(f"Weight must be non-negative: {v}")
        return v

    @validator('tile_count')
    def validate_priority(cls, v, values):
        """Square fidelity dominates, then aspect fit, then tile count"""
        square, aspect = values.get('square'), values.get('aspect')
        if square is not None and aspect is not None and not (square >= aspect >= v):
            raise ValueError(
                f"Weights must keep square >= aspect >= tile_count: {square}, {aspect}, {v}"
            )
        return v


class GridCandidate(BaseModel):
    """Scored grid candidate"""
    grid: GridSize
    score: float
    aspect_deviation: float
    square_deviation: float
    tile_count_penalty: float

    @property
    def sort_key(self):
        return (self.score, self.grid.tile_count, self.grid.rows)
