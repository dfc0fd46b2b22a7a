"""
Error taxonomy shared by all tiling pods
"""

from typing import Optional


class TilingError(Exception):
    """Base class for every failure raised by the tiling engine"""

    stage: str = "tiling"
    user_message: str = "Could not process the media file."

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class InvalidGeometry(TilingError, ValueError):
    """Non-positive dimensions or grid"""

    stage = "planning"
    user_message = "The grid does not fit this media. Choose a different grid size."


class NoVideoStream(TilingError):
    """Media inspection reported no usable video stream"""

    stage = "probing"
    user_message = "No video stream was found in the file."


class TranscoderUnavailable(TilingError):
    """Configured ffmpeg/ffprobe executable is missing or not executable"""

    stage = "startup"
    user_message = "Video processing is temporarily unavailable."


class TranscodeFailed(TilingError):
    """Transcoder exited with an error"""

    stage = "transcoding"
    user_message = "Video processing failed. Try a different file."

    def __init__(
        self,
        message: str,
        stderr_excerpt: str = "",
        batch: Optional[int] = None,
        stage: Optional[str] = None
    ):
        super().__init__(message, stage=stage)
        self.stderr_excerpt = stderr_excerpt
        self.batch = batch


class TranscodeTimeout(TranscodeFailed):
    """A transcode batch exceeded its wall-clock window and was killed"""

    user_message = "Video processing took too long. Reduce the grid size or clip length."

    def __init__(
        self,
        message: str,
        timeout: float,
        batch: Optional[int] = None,
        stage: Optional[str] = None
    ):
        super().__init__(message, batch=batch, stage=stage)
        self.timeout = timeout


class TranscodeResourceExhausted(TranscodeFailed):
    """Transcoder was killed for running out of memory"""

    user_message = "Not enough resources for this video. Reduce the grid size or clip length."


class CodecDecodeFailed(TilingError):
    """Raster codec could not decode the input bytes"""

    stage = "decode"
    user_message = "The image could not be read. Send a PNG, JPEG or WebP file."


class CodecEncodeFailed(TilingError):
    """Raster codec could not encode an output image"""

    stage = "encode"


class PartialTileFailure(TilingError):
    """A single tile failed; the whole call is aborted"""

    stage = "render"

    def __init__(self, row: int, col: int, stage: str, cause: Exception):
        super().__init__(
            f"Failed to render tile at row {row}, col {col}: {cause}",
            stage=stage
        )
        self.row = row
        self.col = col
        self.cause = cause
