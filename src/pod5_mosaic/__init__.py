"""
POD 5: Mosaic Service Module
Session-based entry point over grid advice, tiling and video splitting
"""

from .service import MosaicService
from .schemas import PreviewSession, ExportResult

__all__ = [
    "MosaicService",
    "PreviewSession",
    "ExportResult"
]
