"""
POD 1: Geometry Module
Partitions a source into exact row-major tile rectangles
"""

from .partitioner import partition
from .schemas import Dimensions, GridSize, TileRect, GeometryPlan

__all__ = [
    "partition",
    "Dimensions",
    "GridSize",
    "TileRect",
    "GeometryPlan"
]
