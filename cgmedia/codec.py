"""External codec collaborator: ffmpeg subprocesses for time-based media.

Only two narrow operations are exposed, both returning PNG bytes:
a single video frame at an offset, and a spectrogram picture of an audio clip.
"""

import asyncio
import asyncio.subprocess as aio_subprocess
import contextlib
import logging
import shutil
from pathlib import Path
from typing import Protocol

from cgmedia.errors import SpectrogramGenerationFailed, VideoFrameExtractionFailed

logger = logging.getLogger("cgmedia.codec")

# Max characters of ffmpeg stderr carried into error messages
_STDERR_TAIL = 500


class MediaCodec(Protocol):
    """Narrow interface the converters depend on."""

    async def extract_frame(self, path: Path, offset_seconds: float) -> bytes: ...

    async def render_spectrogram(self, path: Path, width: int, height: int) -> bytes: ...


class CodecError(Exception):
    """ffmpeg could not be run or produced no output."""


class FfmpegCodec:
    """Runs ffmpeg as an asyncio subprocess and reads PNG output from stdout."""

    def __init__(self, command: str = "ffmpeg", timeout_seconds: float = 60.0) -> None:
        # Path or name of the ffmpeg executable
        self._command = command
        # Upper bound for a single invocation; the process is killed on expiry
        self._timeout_seconds = timeout_seconds

    def _resolve(self) -> str:
        resolved = shutil.which(self._command)
        if resolved is None:
            raise CodecError(f"ffmpeg not found: {self._command}")
        return resolved

    async def _run(self, args: list[str]) -> bytes:
        """Run ffmpeg with the given arguments and return stdout.

        Raises:
            CodecError: On missing binary, timeout, non-zero exit or empty output
        """
        cmd = [self._resolve(), "-hide_banner", "-loglevel", "error", *args]
        logger.debug("Running codec: %s", " ".join(cmd))
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=aio_subprocess.DEVNULL,
            stdout=aio_subprocess.PIPE,
            stderr=aio_subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError as e:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise CodecError(f"ffmpeg timed out after {self._timeout_seconds}s") from e
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await asyncio.shield(process.wait())
            raise

        detail = stderr.decode("utf-8", "replace").strip()[-_STDERR_TAIL:]
        if process.returncode != 0:
            raise CodecError(f"ffmpeg exited with {process.returncode}: {detail}")
        if not stdout:
            raise CodecError(f"ffmpeg produced no output{': ' + detail if detail else ''}")
        return stdout

    async def extract_frame(self, path: Path, offset_seconds: float) -> bytes:
        """Decode exactly one frame at `offset_seconds` into the stream."""
        try:
            return await self._run(
                [
                    "-ss", str(max(offset_seconds, 0.0)),
                    "-i", str(path),
                    "-frames:v", "1",
                    "-f", "image2pipe",
                    "-vcodec", "png",
                    "-",
                ]
            )
        except (CodecError, OSError) as e:
            raise VideoFrameExtractionFailed(f"Video frame extraction failed: {e}") from e

    async def render_spectrogram(self, path: Path, width: int, height: int) -> bytes:
        """Render a spectrogram picture of the whole clip."""
        spectrum = (
            f"showspectrumpic=s={width}x{height}:mode=separate:color=intensity:scale=cbrt"
        )
        try:
            return await self._run(
                [
                    "-i", str(path),
                    "-lavfi", spectrum,
                    "-frames:v", "1",
                    "-f", "image2pipe",
                    "-vcodec", "png",
                    "-",
                ]
            )
        except (CodecError, OSError) as e:
            raise SpectrogramGenerationFailed(f"Spectrogram generation failed: {e}") from e
