"""
Grid Advisor - ranks (rows, cols) layouts for a source aspect ratio
"""

import logging
from typing import List, Optional

from .schemas import AdvisorWeights, GridCandidate
from ..pod1_geometry.schemas import GridSize

logger = logging.getLogger(__name__)

MIN_TILES = 2
MAX_TILES = 36
MAX_GRID_DIMENSION = 15
FALLBACK_GRID = GridSize.of(3, 3)


def score_grid(
    width: int,
    height: int,
    rows: int,
    cols: int,
    weights: Optional[AdvisorWeights] = None
) -> GridCandidate:
    """
    Score a single grid against the source

    Args:
        width: Source width in pixels
        height: Source height in pixels
        rows: Grid rows
        cols: Grid columns
        weights: Score weights

    Returns:
        GridCandidate; lower score is better
    """
    weights = weights or AdvisorWeights()
    aspect_ratio = width / max(height, 1)
    tile_count = rows * cols

    aspect_deviation = abs(cols / rows - aspect_ratio)

    tile_aspect = (width / cols) / max(height / rows, 1e-9)
    square_deviation = abs(tile_aspect - 1)

    target_tiles = 6 if aspect_ratio > 1.5 or aspect_ratio < 0.67 else 9
    tile_count_penalty = abs(tile_count - target_tiles) / target_tiles

    score = (
        square_deviation * weights.square
        + aspect_deviation * weights.aspect
        + tile_count_penalty * weights.tile_count
    )

    return GridCandidate(
        grid=GridSize.of(rows, cols),
        score=score,
        aspect_deviation=aspect_deviation,
        square_deviation=square_deviation,
        tile_count_penalty=tile_count_penalty
    )


def suggest_grids(
    width: int,
    height: int,
    limit: int = 3,
    max_dimension: int = 8,
    weights: Optional[AdvisorWeights] = None
) -> List[GridSize]:
    """
    Suggest ranked grid layouts for a source

    Args:
        width: Source width in pixels
        height: Source height in pixels
        limit: Maximum number of suggestions
        max_dimension: Largest rows/cols considered, clamped into [2, 15]
        weights: Score weights

    Returns:
        Non-empty list of GridSize, best first
    """
    if width < 1 or height < 1 or limit < 1:
        logger.warning(f"Degenerate grid request {width}x{height} limit={limit}, using 3x3")
        return [FALLBACK_GRID]

    max_size = max(2, min(max_dimension, MAX_GRID_DIMENSION))
    candidates = []

    for rows in range(1, max_size + 1):
        for cols in range(1, max_size + 1):
            tile_count = rows * cols
            if tile_count < MIN_TILES or tile_count > MAX_TILES:
                continue
            candidates.append(score_grid(width, height, rows, cols, weights))

    candidates.sort(key=lambda c: c.sort_key)

    seen = set()
    result = []
    for candidate in candidates:
        key = (candidate.grid.rows, candidate.grid.cols)
        if key in seen:
            continue
        seen.add(key)
        result.append(candidate.grid)
        if len(result) >= limit:
            break

    if not result:
        result.append(FALLBACK_GRID)

    return result


def auto_grid_for_preview(width: int, height: int) -> GridSize:
    """Best single grid for a first preview; never fails"""
    suggestions = suggest_grids(width, height, limit=1)
    return suggestions[0] if suggestions else FALLBACK_GRID
