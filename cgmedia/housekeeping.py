"""Periodic sweep of stray temporary payload files.

Fetched payloads delete their own files; this is a backstop for files left
behind by crashes or killed processes.
"""

import asyncio
import contextlib
import logging
import time
from pathlib import Path

logger = logging.getLogger("cgmedia.housekeeping")


def sweep_temp_dir(temp_dir: Path, max_age_seconds: float, now: float | None = None) -> int:
    """Delete regular files in `temp_dir` whose mtime is older than `max_age_seconds`.

    Returns the number of files removed. Per-file errors are logged and skipped.
    """
    if not temp_dir.is_dir():
        return 0
    current = time.time() if now is None else now
    removed = 0
    for path in temp_dir.iterdir():
        try:
            if not path.is_file():
                continue
            if current - path.stat().st_mtime > max_age_seconds:
                path.unlink()
                removed += 1
        except FileNotFoundError:
            # Released concurrently by its owner
            continue
        except OSError as e:
            logger.warning("Temp cleanup failed for %s: %s", path, e)
    if removed:
        logger.info("Removed %d stale temp file(s) from %s", removed, temp_dir)
    return removed


class TempSweeper:
    """Runs `sweep_temp_dir` on a fixed interval in a background task."""

    def __init__(
        self,
        temp_dir: Path,
        interval_seconds: float = 3600,
        max_age_seconds: float = 3600,
    ) -> None:
        self._temp_dir = temp_dir
        self._interval_seconds = interval_seconds
        self._max_age_seconds = max_age_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background sweep loop (no-op if already running)."""
        if self.is_running:
            return
        # Store task reference to prevent GC from cancelling it
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Temp sweeper started: dir=%s interval=%ss max_age=%ss",
            self._temp_dir,
            self._interval_seconds,
            self._max_age_seconds,
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Temp sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await asyncio.to_thread(
                    sweep_temp_dir, self._temp_dir, self._max_age_seconds
                )
            except Exception as e:
                logger.error("Error in temp sweep loop: %s", e)
