"""
Video Tile Splitter - batched ffmpeg tile extraction
"""

import logging
import tempfile
import time
import uuid
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .filtergraph import (
    build_batch_args,
    build_frame_extract_args,
    build_still_to_clip_args
)
from .runner import FfmpegRunner
from .schemas import (
    MediaKind,
    SplitStage,
    VideoMeta,
    VideoSplitConfig,
    VideoSplitResult
)
from ..pod1_geometry import partition, GeometryPlan
from ..pod3_tiling import PreviewAssembler, TileClip, PreviewImage
from ..common.errors import NoVideoStream, TilingError

logger = logging.getLogger(__name__)


class VideoTileSplitter:
    """
    Splits a video or animation into synchronized square tile clips

    Each call owns a private scratch directory that is removed on every
    exit path. Batches run one ffmpeg process at a time.
    """

    def __init__(
        self,
        config: Optional[VideoSplitConfig] = None,
        runner: Optional[FfmpegRunner] = None,
        preview_assembler: Optional[PreviewAssembler] = None
    ):
        """
        Initialize video tile splitter

        Args:
            config: Split configuration
            runner: ffmpeg runner; a validated default is created if omitted
            preview_assembler: Compositor for the still preview
        """
        self.config = config or VideoSplitConfig()
        self.runner = runner or FfmpegRunner(kill_grace=self.config.kill_grace)
        self.preview_assembler = preview_assembler or PreviewAssembler()

    def _scratch(self) -> tempfile.TemporaryDirectory:
        Path(self.config.scratch_dir).mkdir(parents=True, exist_ok=True)
        return tempfile.TemporaryDirectory(prefix="mosaic-", dir=self.config.scratch_dir)

    @staticmethod
    def _write_input(scratch: Path, data: bytes, media_kind: MediaKind) -> Path:
        input_path = scratch / f"input-{uuid.uuid4().hex}{media_kind.scratch_suffix}"
        input_path.write_bytes(data)
        return input_path

    async def _probe(self, input_path: Path) -> VideoMeta:
        probe = await self.runner.probe(str(input_path), timeout=self.config.timeout_base)
        meta = VideoMeta.from_probe(probe, size_bytes=input_path.stat().st_size)

        if meta is None or meta.width < 1 or meta.height < 1:
            raise NoVideoStream(f"No video stream with dimensions in {input_path.name}")

        logger.info(
            f"Probed {input_path.name}: {meta.width}x{meta.height}, "
            f"{meta.duration:.2f}s, {meta.size_mb:.2f} MB"
        )
        return meta

    async def _transcode(
        self,
        input_path: Path,
        scratch: Path,
        plan: GeometryPlan,
        meta: VideoMeta
    ) -> tuple:
        """
        Run every batch and return output paths in row-major order

        Returns:
            Tuple of (output paths, number of batches)
        """
        trim = self.config.trim_plan(meta.duration)
        batch_size = self.config.batch_size_for(plan.grid.tile_count)
        batches = plan.batches(batch_size)

        logger.info(
            f"Transcoding {plan.grid.tile_count} tiles in {len(batches)} batches of "
            f"up to {batch_size} ({trim.frame_count} frames @ {trim.fps} fps)"
        )

        output_paths: List[Path] = []
        with tqdm(total=len(batches), desc="Transcoding", disable=not self.config.show_progress) as pbar:
            for number, rects in enumerate(batches, start=1):
                batch_outputs = [
                    scratch / f"tile-{rect.row}-{rect.col}-{uuid.uuid4().hex}.webm"
                    for rect in rects
                ]
                args = build_batch_args(
                    str(input_path),
                    rects,
                    [str(p) for p in batch_outputs],
                    trim,
                    self.config
                )
                timeout = self.config.timeout_for(len(rects))

                logger.debug(f"Batch {number}/{len(batches)}: tiles {rects[0].index}-{rects[-1].index}, timeout {timeout:.0f}s")
                await self.runner.run(args, timeout=timeout, batch=number)

                output_paths.extend(batch_outputs)
                pbar.update(1)

        return output_paths, len(batches)

    async def _extract_stills(self, clip_paths: List[Path], scratch: Path) -> List[bytes]:
        stills = []
        for clip_path in clip_paths:
            frame_path = scratch / f"frame-{uuid.uuid4().hex}.png"
            await self.runner.run(
                build_frame_extract_args(str(clip_path), str(frame_path), alpha_decoder=True),
                timeout=self.config.timeout_base
            )
            stills.append(frame_path.read_bytes())
        return stills

    async def split_video_to_tiles(
        self,
        data: bytes,
        rows: int,
        cols: int,
        media_kind: MediaKind = MediaKind.VIDEO,
        build_preview: bool = True,
        padding: int = 0
    ) -> VideoSplitResult:
        """
        Split a video or animation into animated WebM tiles

        Args:
            data: Source media bytes
            rows: Grid rows
            cols: Grid columns
            media_kind: VIDEO or ANIMATION
            build_preview: Also build a still mosaic of the first frames
            padding: Gutter between tiles in source pixels

        Returns:
            VideoSplitResult with clips in row-major order
        """
        start_time = time.time()
        stage = SplitStage.PROBING

        try:
            with self._scratch() as scratch_dir:
                scratch = Path(scratch_dir)
                input_path = self._write_input(scratch, data, media_kind)
                meta = await self._probe(input_path)

                stage = SplitStage.PLANNING
                plan = partition(meta.width, meta.height, rows, cols, padding)

                stage = SplitStage.TRANSCODING
                output_paths, batch_count = await self._transcode(input_path, scratch, plan, meta)

                stage = SplitStage.COLLECTING
                tiles = [
                    TileClip(index=rect.index, data=path.read_bytes(), rect=rect)
                    for rect, path in zip(plan.tiles, output_paths)
                ]

                preview: Optional[PreviewImage] = None
                if build_preview:
                    stage = SplitStage.PREVIEW
                    stills = await self._extract_stills(output_paths, scratch)
                    preview = await self.preview_assembler.composite_grid(stills, cols)

                stage = SplitStage.CLEANUP
        except TilingError as e:
            logger.error(f"Video split failed during {stage.value}: {e}")
            raise
        except OSError as e:
            logger.error(f"Scratch file error during {stage.value}: {e}")
            raise

        processing_time = time.time() - start_time
        logger.info(
            f"Video split completed: {len(tiles)} tiles in {batch_count} batches, "
            f"{processing_time:.2f} seconds"
        )

        return VideoSplitResult(
            tiles=tiles,
            preview=preview,
            grid=plan.grid,
            meta=meta,
            batches=batch_count,
            processing_time=processing_time
        )

    async def get_video_meta(
        self,
        data: bytes,
        media_kind: MediaKind = MediaKind.VIDEO
    ) -> VideoMeta:
        """
        Inspect media bytes

        Returns:
            VideoMeta with duration, size and dimensions
        """
        with self._scratch() as scratch_dir:
            input_path = self._write_input(Path(scratch_dir), data, media_kind)
            return await self._probe(input_path)

    async def extract_first_frame(
        self,
        data: bytes,
        media_kind: MediaKind = MediaKind.VIDEO
    ) -> bytes:
        """Extract the first frame of a video or animation as PNG"""
        with self._scratch() as scratch_dir:
            scratch = Path(scratch_dir)
            input_path = self._write_input(scratch, data, media_kind)
            frame_path = scratch / f"frame-{uuid.uuid4().hex}.png"
            await self.runner.run(
                build_frame_extract_args(str(input_path), str(frame_path)),
                timeout=self.config.timeout_base
            )
            return frame_path.read_bytes()

    async def still_to_clip(self, png: bytes, duration: float = 1.0) -> bytes:
        """Loop a still PNG into a short WebM clip"""
        with self._scratch() as scratch_dir:
            scratch = Path(scratch_dir)
            input_path = self._write_input(scratch, png, MediaKind.IMAGE)
            output_path = scratch / f"clip-{uuid.uuid4().hex}.webm"
            await self.runner.run(
                build_still_to_clip_args(str(input_path), str(output_path), self.config, duration),
                timeout=self.config.timeout_base
            )
            return output_path.read_bytes()
