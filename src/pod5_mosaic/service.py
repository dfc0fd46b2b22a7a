"""
Mosaic Service - single entry point dispatching on media kind
"""

import asyncio
import logging
from typing import List, Optional

from .schemas import PreviewSession, ExportResult
from ..pod1_geometry import Dimensions, GridSize
from ..pod2_grid_advisor import suggest_grids, auto_grid_for_preview
from ..pod3_tiling import TileRenderer, PreviewAssembler, PreviewImage
from ..pod4_video_split import VideoTileSplitter, MediaKind
from ..common.config import settings
from ..common.errors import TranscoderUnavailable

logger = logging.getLogger(__name__)


class MosaicService:
    """
    Facade over the tiling pods

    The media kind is decided once when a session starts; every later call
    dispatches on the session's kind.
    """

    def __init__(
        self,
        renderer: Optional[TileRenderer] = None,
        preview_assembler: Optional[PreviewAssembler] = None,
        splitter: Optional[VideoTileSplitter] = None,
        enable_video: bool = True
    ):
        """
        Initialize mosaic service

        Args:
            renderer: Still tile renderer
            preview_assembler: Mosaic preview builder
            splitter: Video splitter; created (and ffmpeg validated) when
                enable_video is set and none is given
            enable_video: Whether video and animation inputs are accepted
        """
        self.renderer = renderer or TileRenderer()
        self.preview_assembler = preview_assembler or PreviewAssembler()
        if splitter is None and enable_video:
            splitter = VideoTileSplitter(preview_assembler=self.preview_assembler)
        self.splitter = splitter

    def _require_splitter(self) -> VideoTileSplitter:
        if self.splitter is None:
            raise TranscoderUnavailable("Video processing is disabled")
        return self.splitter

    async def _measure(self, data: bytes, media_kind: MediaKind) -> Dimensions:
        if media_kind.is_motion:
            meta = await self._require_splitter().get_video_meta(data, media_kind)
            return Dimensions(width=meta.width, height=meta.height)

        image = await asyncio.get_event_loop().run_in_executor(
            None, self.renderer.codec.decode, data
        )
        return Dimensions(width=image.width, height=image.height)

    async def start_session(
        self,
        data: bytes,
        format_hint: Optional[str] = None,
        rows: Optional[int] = None,
        cols: Optional[int] = None,
        padding: int = settings.default_padding
    ) -> PreviewSession:
        """
        Measure media and choose an initial grid

        Args:
            data: Source media bytes
            format_hint: Kind name, extension or MIME type
            rows: Explicit grid rows (requires cols)
            cols: Explicit grid columns (requires rows)
            padding: Initial padding

        Returns:
            PreviewSession for subsequent preview/export calls
        """
        media_kind = MediaKind.from_hint(format_hint)
        dimensions = await self._measure(data, media_kind)

        if rows is not None and cols is not None:
            grid = GridSize.of(rows, cols)
        else:
            grid = auto_grid_for_preview(dimensions.width, dimensions.height)

        logger.info(
            f"Started {media_kind.value} session {dimensions.width}x{dimensions.height}, "
            f"grid {grid.to_string()}, padding {padding}"
        )

        return PreviewSession(
            media_kind=media_kind,
            data=data,
            dimensions=dimensions,
            grid=grid,
            padding=max(0, padding)
        )

    def suggest(self, session: PreviewSession, limit: int = 3) -> List[GridSize]:
        """Ranked alternative grids for the session's media"""
        return suggest_grids(session.dimensions.width, session.dimensions.height, limit=limit)

    async def preview(self, session: PreviewSession) -> PreviewImage:
        """
        Build a mosaic preview for the session

        Motion media is previewed on its first frame.
        """
        data = session.data
        if session.media_kind.is_motion:
            data = await self._require_splitter().extract_first_frame(data, session.media_kind)

        return await self.preview_assembler.render_mosaic_preview(
            data, session.grid.rows, session.grid.cols, session.padding
        )

    async def export(
        self,
        session: PreviewSession,
        as_clips: bool = False,
        build_preview: bool = False
    ) -> ExportResult:
        """
        Produce ordered tiles for upload

        Args:
            session: Preview session
            as_clips: Export still images as one-second WebM clips
            build_preview: Also build a preview of the exported tiles (motion only)

        Returns:
            ExportResult with tiles in row-major order
        """
        rows, cols = session.grid.rows, session.grid.cols

        if session.media_kind.is_motion:
            result = await self._require_splitter().split_video_to_tiles(
                session.data,
                rows,
                cols,
                media_kind=session.media_kind,
                build_preview=build_preview
            )
            return ExportResult(
                media_kind=session.media_kind,
                grid=result.grid,
                tiles=result.tiles,
                preview=result.preview
            )

        if as_clips:
            tiles = await self.renderer.render_image_clip_tiles(
                session.data, rows, cols, self._require_splitter(), session.padding
            )
        else:
            tiles = await self.renderer.render_image_tiles(
                session.data, rows, cols, session.padding
            )

        return ExportResult(media_kind=session.media_kind, grid=session.grid, tiles=tiles)

    def cleanup(self):
        """Cleanup resources"""
        self.renderer.cleanup()
        self.preview_assembler.cleanup()

        splitter_assembler = getattr(self.splitter, "preview_assembler", None)
        if splitter_assembler is not None and splitter_assembler is not self.preview_assembler:
            splitter_assembler.cleanup()
