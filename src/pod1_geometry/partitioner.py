"""
Geometry Partitioner - exact, gap-free tile rectangles
"""

import logging
from typing import List, Tuple

from .schemas import Dimensions, GridSize, TileRect, GeometryPlan
from ..common.errors import InvalidGeometry

logger = logging.getLogger(__name__)


def clamp(value: int, minimum: int, maximum: int) -> int:
    """Clamp value into [minimum, maximum]"""
    return max(minimum, min(maximum, value))


def distribute(extent: int, parts: int, padding: int) -> Tuple[List[int], List[int]]:
    """
    Split one axis into per-part sizes and their offsets

    The padding gutters between parts are carved out of the extent first.
    Leftover pixels go one each to the leading parts, so sizes differ by at
    most one pixel.

    Args:
        extent: Source width or height in pixels
        parts: Number of columns or rows
        padding: Gutter between adjacent parts

    Returns:
        Tuple of (sizes, offsets), offsets excluding gutters
    """
    available = extent - padding * (parts - 1)
    base = max(1, available // parts)
    extra = max(0, available - base * parts)

    sizes = [base + (1 if i < extra else 0) for i in range(parts)]

    offsets = [0]
    for size in sizes[:-1]:
        offsets.append(offsets[-1] + size)

    return sizes, offsets


def partition(
    width: int,
    height: int,
    rows: int,
    cols: int,
    padding: int = 0
) -> GeometryPlan:
    """
    Compute the ordered tile rectangles for a grid

    Args:
        width: Source width in pixels
        height: Source height in pixels
        rows: Number of grid rows
        cols: Number of grid columns
        padding: Pixels reserved between adjacent tiles

    Returns:
        GeometryPlan with tiles in row-major order

    Raises:
        InvalidGeometry: on non-positive dimensions or grid, or negative padding
    """
    if width < 1 or height < 1:
        raise InvalidGeometry(f"Invalid source dimensions: {width}x{height}")
    if rows < 1 or cols < 1:
        raise InvalidGeometry(f"Invalid grid: {rows}x{cols}")
    if padding < 0:
        raise InvalidGeometry(f"Padding must be non-negative: {padding}")

    column_widths, column_offsets = distribute(width, cols, padding)
    row_heights, row_offsets = distribute(height, rows, padding)

    tiles = []
    for row in range(rows):
        for col in range(cols):
            left = column_offsets[col] + col * padding
            top = row_offsets[row] + row * padding

            # Last column/row absorbs whatever is left of the source
            tile_width = width - left if col == cols - 1 else column_widths[col]
            tile_height = height - top if row == rows - 1 else row_heights[row]

            extract_left = clamp(left, 0, width - 1)
            extract_top = clamp(top, 0, height - 1)

            tiles.append(TileRect(
                index=row * cols + col,
                row=row,
                col=col,
                left=extract_left,
                top=extract_top,
                width=clamp(tile_width, 1, width - extract_left),
                height=clamp(tile_height, 1, height - extract_top)
            ))

    logger.debug(
        f"Partitioned {width}x{height} into {rows}x{cols} "
        f"(padding={padding}, columns={column_widths}, rows={row_heights})"
    )

    return GeometryPlan(
        dimensions=Dimensions(width=width, height=height),
        grid=GridSize.of(rows, cols),
        padding=padding,
        column_widths=column_widths,
        row_heights=row_heights,
        column_offsets=column_offsets,
        row_offsets=row_offsets,
        tiles=tiles
    )
