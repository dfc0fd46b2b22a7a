"""
Split a local image or video into tiles and write them to a directory

Usage:
  python scripts/debug_split.py input.mp4 --rows 3 --cols 3
  python scripts/debug_split.py photo.png --padding 4 --preview
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.common.config import settings  # noqa: E402
from src.common.errors import TilingError  # noqa: E402
from src.common.log_setup import configure_logging  # noqa: E402
from src.pod4_video_split import MediaKind  # noqa: E402
from src.pod5_mosaic import MosaicService  # noqa: E402

logger = logging.getLogger("debug_split")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Split media into emoji tiles")
    parser.add_argument("input", type=Path, help="Image, GIF or video file")
    parser.add_argument("--rows", type=int, default=None, help="Grid rows (default: auto)")
    parser.add_argument("--cols", type=int, default=None, help="Grid columns (default: auto)")
    parser.add_argument("--padding", type=int, default=settings.default_padding,
                        help=f"Gutter between tiles in pixels (default: {settings.default_padding})")
    parser.add_argument("--output", type=Path, default=Path("debug-tiles"),
                        help="Output directory (default: debug-tiles)")
    parser.add_argument("--preview", action="store_true", help="Also write the mosaic preview")
    parser.add_argument("--clips", action="store_true", help="Export still images as WebM clips")
    return parser.parse_args()


async def main(args: argparse.Namespace) -> int:
    data = args.input.read_bytes()
    motion = MediaKind.from_hint(args.input.suffix).is_motion
    service = MosaicService(enable_video=motion or args.clips)

    try:
        result = await run_export(service, data, motion, args)
    finally:
        service.cleanup()

    logger.info(f"Total tiles: {result.total_tiles}")
    return 0


async def run_export(service: MosaicService, data: bytes, motion: bool, args: argparse.Namespace):
    session = await service.start_session(
        data,
        format_hint=args.input.suffix,
        rows=args.rows,
        cols=args.cols,
        padding=args.padding
    )
    logger.info(f"Alternatives: {[g.to_string() for g in service.suggest(session)]}")

    args.output.mkdir(parents=True, exist_ok=True)

    if args.preview:
        preview = await service.preview(session)
        preview_path = args.output / "preview.png"
        preview_path.write_bytes(preview.data)
        logger.info(f"Saved {preview_path}")

    result = await service.export(session, as_clips=args.clips)
    for tile in result.tiles:
        suffix = ".webm" if motion or args.clips else ".png"
        tile_path = args.output / f"tile-{tile.index + 1}{suffix}"
        tile_path.write_bytes(tile.data)
        logger.info(f"Saved {tile_path}")

    return result


if __name__ == "__main__":
    configure_logging()
    try:
        sys.exit(asyncio.run(main(parse_args())))
    except TilingError as e:
        logger.error(f"{e} ({e.user_message})")
        sys.exit(1)
