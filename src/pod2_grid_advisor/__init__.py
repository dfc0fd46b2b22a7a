"""
POD 2: Grid Advisor Module
Suggests mosaic layouts from source dimensions
"""

from .advisor import suggest_grids, auto_grid_for_preview, score_grid
from .schemas import AdvisorWeights, GridCandidate

__all__ = [
    "suggest_grids",
    "auto_grid_for_preview",
    "score_grid",
    "AdvisorWeights",
    "GridCandidate"
]
