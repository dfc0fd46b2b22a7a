"""
FFmpeg Runner - supervised ffmpeg/ffprobe subprocesses
"""

import asyncio
import json
import logging
import os
import re
import shutil
import signal
from typing import List, Optional, Sequence

from ..common.config import settings
from ..common.errors import (
    TranscoderUnavailable,
    TranscodeFailed,
    TranscodeTimeout,
    TranscodeResourceExhausted
)

logger = logging.getLogger(__name__)

STDERR_EXCERPT_CHARS = 800
OOM_PATTERN = re.compile(
    r"cannot allocate memory|out of memory|std::bad_alloc",
    re.IGNORECASE
)
OOM_RETURN_CODES = {-signal.SIGKILL, 128 + signal.SIGKILL}


def stderr_excerpt(stderr: str) -> str:
    """Tail of stderr, enough to identify the failing filter or codec"""
    return stderr.strip()[-STDERR_EXCERPT_CHARS:]


class FfmpegRunner:
    """
    Runs ffmpeg and ffprobe with timeout and forced termination

    Executable paths are resolved and validated once at construction.
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None,
        kill_grace: Optional[float] = None,
        validate: bool = True
    ):
        """
        Initialize runner

        Args:
            ffmpeg_path: ffmpeg executable, defaults to settings
            ffprobe_path: ffprobe executable, defaults to settings
            kill_grace: Seconds between SIGTERM and SIGKILL
            validate: Resolve and check executables immediately
        """
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.ffprobe_path = ffprobe_path or settings.ffprobe_path
        self.kill_grace = settings.transcode_kill_grace if kill_grace is None else kill_grace

        if validate:
            self.validate()

    @staticmethod
    def _resolve(executable: str, name: str) -> str:
        resolved = shutil.which(executable)
        if resolved is None or not os.access(resolved, os.X_OK):
            raise TranscoderUnavailable(f"{name} executable not found: {executable}")
        return resolved

    def validate(self):
        """Resolve both executables to absolute paths"""
        self.ffmpeg_path = self._resolve(self.ffmpeg_path, "ffmpeg")
        self.ffprobe_path = self._resolve(self.ffprobe_path, "ffprobe")
        logger.info(f"Using ffmpeg at {self.ffmpeg_path}, ffprobe at {self.ffprobe_path}")

    async def _terminate(self, process: asyncio.subprocess.Process):
        """SIGTERM, then SIGKILL after the grace period"""
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), self.kill_grace)
        except asyncio.TimeoutError:
            logger.warning(f"Process {process.pid} ignored SIGTERM, sending SIGKILL")
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    async def _execute(
        self,
        argv: Sequence[str],
        timeout: float,
        batch: Optional[int] = None,
        stage: str = "transcoding"
    ) -> tuple:
        logger.debug(f"Running: {' '.join(argv)}")
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError:
            logger.error(f"{os.path.basename(argv[0])} exceeded {timeout:.1f}s (batch={batch}), terminating")
            await self._terminate(process)
            raise TranscodeTimeout(
                f"Transcode exceeded {timeout:.1f}s and was killed",
                timeout=timeout,
                batch=batch,
                stage=stage
            )
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        return process.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")

    def _raise_for_status(self, returncode: int, stderr: str, batch: Optional[int], stage: str):
        if returncode == 0:
            return

        excerpt = stderr_excerpt(stderr)
        if returncode in OOM_RETURN_CODES or OOM_PATTERN.search(excerpt):
            logger.error(f"Transcoder ran out of memory (code={returncode}, batch={batch})")
            raise TranscodeResourceExhausted(
                f"Transcoder was killed for lack of memory (code={returncode})",
                stderr_excerpt=excerpt,
                batch=batch,
                stage=stage
            )

        logger.error(f"Transcoder failed (code={returncode}, batch={batch}): {excerpt}")
        raise TranscodeFailed(
            f"Transcoder exited with code {returncode}",
            stderr_excerpt=excerpt,
            batch=batch,
            stage=stage
        )

    async def run(
        self,
        args: List[str],
        timeout: float,
        batch: Optional[int] = None
    ) -> str:
        """
        Run ffmpeg with the given arguments

        Args:
            args: Arguments after the executable
            timeout: Wall-clock limit in seconds
            batch: Batch number for error context

        Returns:
            Captured stderr

        Raises:
            TranscodeTimeout: limit exceeded, process killed
            TranscodeResourceExhausted: out-of-memory kill
            TranscodeFailed: any other non-zero exit
        """
        argv = [self.ffmpeg_path, "-hide_banner", "-nostdin", "-y", *args]
        returncode, _, stderr = await self._execute(argv, timeout, batch, "transcoding")
        self._raise_for_status(returncode, stderr, batch, "transcoding")
        return stderr

    async def probe(self, path: str, timeout: Optional[float] = None) -> dict:
        """
        Inspect a media file with ffprobe

        Args:
            path: Media file path
            timeout: Wall-clock limit in seconds

        Returns:
            Parsed ffprobe JSON with "streams" and "format"
        """
        argv = [
            self.ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            "-show_format",
            path
        ]
        returncode, stdout, stderr = await self._execute(
            argv, timeout or settings.transcode_timeout_base, stage="probing"
        )
        self._raise_for_status(returncode, stderr, None, "probing")

        try:
            return json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            logger.error(f"Unreadable ffprobe output for {path}: {e}")
            raise TranscodeFailed(
                f"ffprobe returned invalid JSON: {e}",
                stderr_excerpt=stderr_excerpt(stdout),
                stage="probing"
            )
