"""
POD 3: Tiling Module
Renders still tiles and mosaic previews
"""

from .engine import TileRenderer
from .preview import PreviewAssembler
from .codec import RasterCodec
from .schemas import TileImage, TileClip, PreviewImage, RenderConfig

__all__ = [
    "TileRenderer",
    "PreviewAssembler",
    "RasterCodec",
    "TileImage",
    "TileClip",
    "PreviewImage",
    "RenderConfig"
]
