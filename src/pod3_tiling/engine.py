"""
Tile Renderer - Core still tile export
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, TYPE_CHECKING

from PIL import Image

from .codec import RasterCodec
from .schemas import TileImage, TileClip, RenderConfig
from ..pod1_geometry import partition, TileRect
from ..common.config import settings
from ..common.errors import TilingError, PartialTileFailure

if TYPE_CHECKING:
    from ..pod4_video_split import VideoTileSplitter

logger = logging.getLogger(__name__)


class TileRenderer:
    """
    Renders one square sticker tile per grid cell
    Every tile is cropped independently from a single decoded source
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        codec: Optional[RasterCodec] = None
    ):
        """
        Initialize tile renderer

        Args:
            config: Render configuration
            codec: Raster codec, created from config if omitted
        """
        self.config = config or RenderConfig()
        self.codec = codec or RasterCodec(compress_level=self.config.compress_level)
        self._executor = ThreadPoolExecutor(max_workers=settings.max_workers)

    def _render_tile(self, source: Image.Image, rect: TileRect) -> TileImage:
        """
        Crop, square and encode a single tile

        Args:
            source: Decoded source image
            rect: Unpadded source rectangle

        Returns:
            TileImage without alpha
        """
        try:
            crop = self.codec.crop(source, rect.box)
            square = self.codec.fit_square(crop, self.config.tile_size)
            data = self.codec.encode_png(self.codec.strip_alpha(square))
        except Exception as e:
            logger.error(f"Error rendering tile {rect.index} [{rect.row}, {rect.col}]: {e}")
            stage = getattr(e, "stage", "render")
            raise PartialTileFailure(rect.row, rect.col, stage, e)

        return TileImage(index=rect.index, data=data, rect=rect)

    async def render_image_tiles(
        self,
        data: bytes,
        rows: int,
        cols: int,
        padding: int = settings.default_padding
    ) -> List[TileImage]:
        """
        Split a still image into square PNG tiles

        Args:
            data: Source image bytes
            rows: Grid rows
            cols: Grid columns
            padding: Gutter between tiles, clamped to the export maximum

        Returns:
            Tiles in row-major order
        """
        start_time = time.time()
        loop = asyncio.get_event_loop()
        padding = self.config.clamp_tile_padding(padding)

        source = await loop.run_in_executor(self._executor, self.codec.decode, data)
        plan = partition(source.width, source.height, rows, cols, padding)

        logger.info(
            f"Splitting {source.width}x{source.height} image into {rows}x{cols} grid "
            f"({plan.grid.tile_count} tiles, padding={padding})"
        )

        tiles = []
        for rect in plan.tiles:
            tile = await loop.run_in_executor(
                self._executor,
                self._render_tile,
                source,
                rect
            )
            tiles.append(tile)

        logger.info(f"Rendered {len(tiles)} tiles in {time.time() - start_time:.2f} seconds")

        return tiles

    async def render_image_clip_tiles(
        self,
        data: bytes,
        rows: int,
        cols: int,
        splitter: "VideoTileSplitter",
        padding: int = settings.default_padding
    ) -> List[TileClip]:
        """
        Split a still image into static one-second WebM tiles

        Args:
            data: Source image bytes
            rows: Grid rows
            cols: Grid columns
            splitter: Video splitter whose transcoder loops each still
            padding: Gutter between tiles

        Returns:
            Clips in row-major order
        """
        stills = await self.render_image_tiles(data, rows, cols, padding)

        clips = []
        for still in stills:
            try:
                clip_data = await splitter.still_to_clip(still.data)
            except TilingError:
                logger.error(f"Error looping tile {still.index} into a clip")
                raise
            clips.append(TileClip(index=still.index, data=clip_data, rect=still.rect))

        return clips

    def cleanup(self):
        """Cleanup resources"""
        self._executor.shutdown(wait=True)
