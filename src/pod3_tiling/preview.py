"""
Preview Assembler - composites tiles into a mosaic with grid lines
"""

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from .codec import RasterCodec
from .schemas import PreviewImage, RenderConfig
from ..pod1_geometry import partition, GeometryPlan, GridSize
from ..common.config import settings
from ..common.errors import TilingError, PartialTileFailure

logger = logging.getLogger(__name__)


class PreviewAssembler:
    """
    Builds the human-facing mosaic preview

    Works either from source bytes (static path) or from already rendered
    tile stills (video path).
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        codec: Optional[RasterCodec] = None
    ):
        """
        Initialize preview assembler

        Args:
            config: Render configuration
            codec: Raster codec, created from config if omitted
        """
        self.config = config or RenderConfig()
        self.codec = codec or RasterCodec(compress_level=self.config.compress_level)
        self._executor = ThreadPoolExecutor(max_workers=settings.max_workers)

    def compose(
        self,
        cells: Sequence[Tuple[Image.Image, Tuple[int, int]]],
        canvas_size: Tuple[int, int]
    ) -> Image.Image:
        """
        Paste cells onto a transparent canvas

        Args:
            cells: (image, (left, top)) pairs
            canvas_size: (width, height) of the canvas

        Returns:
            RGBA canvas
        """
        canvas = self.codec.blank_canvas(*canvas_size)
        for image, position in cells:
            canvas.paste(self.codec.ensure_alpha(image), position)
        return canvas

    def draw_separators(self, canvas: Image.Image, plan: GeometryPlan) -> Image.Image:
        """Overlay lines centered on every internal column and row boundary"""
        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        line = self.config.separator_width
        half = line // 2
        width, height = canvas.size

        for col in range(1, plan.grid.cols):
            x, _ = plan.placement(0, col)
            draw.rectangle(
                [x - half, 0, x - half + line - 1, height - 1],
                fill=self.config.separator_color
            )

        for row in range(1, plan.grid.rows):
            _, y = plan.placement(row, 0)
            draw.rectangle(
                [0, y - half, width - 1, y - half + line - 1],
                fill=self.config.separator_color
            )

        return Image.alpha_composite(canvas, overlay)

    def _build_mosaic(self, data: bytes, rows: int, cols: int, padding: int) -> PreviewImage:
        source = self.codec.decode(data)
        plan = partition(source.width, source.height, rows, cols, padding)

        cells = []
        for tile in plan.tiles:
            cell_size = (plan.column_widths[tile.col], plan.row_heights[tile.row])
            try:
                crop = self.codec.crop(source, tile.box)
                cells.append((self.codec.fit_cell(crop, cell_size), plan.placement(tile.row, tile.col)))
            except TilingError:
                raise
            except Exception as e:
                logger.error(f"Error extracting tile [{tile.row}, {tile.col}]: {e}")
                raise PartialTileFailure(tile.row, tile.col, "preview", e)

        canvas = self.compose(cells, (plan.canvas_width, plan.canvas_height))
        if plan.grid.tile_count > 1:
            canvas = self.draw_separators(canvas, plan)

        return PreviewImage(
            data=self.codec.encode_png(canvas),
            width=canvas.width,
            height=canvas.height,
            grid=plan.grid
        )

    async def render_mosaic_preview(
        self,
        data: bytes,
        rows: int,
        cols: int,
        padding: int = settings.default_padding
    ) -> PreviewImage:
        """
        Build a mosaic preview from source image bytes

        Args:
            data: Source image bytes
            rows: Grid rows
            cols: Grid columns
            padding: Spacing between tiles, clamped to the preview maximum

        Returns:
            PreviewImage with alpha and grid lines
        """
        padding = self.config.clamp_preview_padding(padding)
        preview = await asyncio.get_event_loop().run_in_executor(
            self._executor,
            self._build_mosaic,
            data,
            rows,
            cols,
            padding
        )
        logger.info(
            f"Built {rows}x{cols} mosaic preview {preview.width}x{preview.height} (padding={padding})"
        )
        return preview

    def _build_grid(self, stills: List[bytes], cols: int) -> PreviewImage:
        cell = self.config.preview_cell_size
        per_row = max(1, min(len(stills), cols))
        rows = math.ceil(len(stills) / per_row)

        cells = []
        for i, still in enumerate(stills):
            row, col = divmod(i, per_row)
            try:
                image = self.codec.fit_square(self.codec.decode(still), cell)
            except Exception as e:
                logger.error(f"Error preparing preview cell [{row}, {col}]: {e}")
                raise PartialTileFailure(row, col, "preview", e)
            cells.append((image, (col * cell, row * cell)))

        canvas = self.compose(cells, (per_row * cell, rows * cell))
        return PreviewImage(
            data=self.codec.encode_png(canvas),
            width=canvas.width,
            height=canvas.height,
            grid=GridSize.of(rows, per_row)
        )

    async def composite_grid(self, stills: List[bytes], cols: int) -> PreviewImage:
        """
        Build a preview from already rendered tile stills

        Args:
            stills: Encoded stills in row-major order
            cols: Number of cells per row

        Returns:
            PreviewImage of equally sized square cells
        """
        if not stills:
            raise ValueError("No stills to composite")
        return await asyncio.get_event_loop().run_in_executor(
            self._executor,
            self._build_grid,
            stills,
            cols
        )

    def cleanup(self):
        """Cleanup resources"""
        self._executor.shutdown(wait=True)
