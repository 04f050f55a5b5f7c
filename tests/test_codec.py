"""Tests for the ffmpeg subprocess codec, using stand-in shell scripts."""

import asyncio
import os
import stat
import sys
from pathlib import Path

import pytest

from cgmedia.codec import FfmpegCodec
from cgmedia.errors import SpectrogramGenerationFailed, VideoFrameExtractionFailed

pytestmark = [
    pytest.mark.asyncio,
    pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell"),
]


def _script(tmp_path: Path, body: str) -> Path:
    """Write an executable fake ffmpeg that records its argv to args.txt."""
    path = tmp_path / "fake-ffmpeg"
    args_file = tmp_path / "args.txt"
    path.write_text(f'#!/bin/sh\nprintf "%s\\n" "$@" > "{args_file}"\n{body}\n')
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def _recorded_args(tmp_path: Path) -> list[str]:
    return (tmp_path / "args.txt").read_text().splitlines()


async def test_extract_frame_returns_stdout(tmp_path: Path) -> None:
    codec = FfmpegCodec(command=str(_script(tmp_path, "printf 'PNGDATA'")))
    data = await codec.extract_frame(tmp_path / "clip.mp4", 1.0)
    assert data == b"PNGDATA"
    args = _recorded_args(tmp_path)
    assert args[:3] == ["-hide_banner", "-loglevel", "error"]
    assert args[args.index("-ss") + 1] == "1.0"
    assert args[args.index("-i") + 1] == str(tmp_path / "clip.mp4")
    assert args[args.index("-frames:v") + 1] == "1"
    assert args[-1] == "-"


async def test_render_spectrogram_passes_size(tmp_path: Path) -> None:
    codec = FfmpegCodec(command=str(_script(tmp_path, "printf 'PNGDATA'")))
    assert await codec.render_spectrogram(tmp_path / "song.mp3", 512, 512) == b"PNGDATA"
    args = _recorded_args(tmp_path)
    assert args[args.index("-lavfi") + 1].startswith("showspectrumpic=s=512x512")


async def test_non_zero_exit_reports_stderr(tmp_path: Path) -> None:
    codec = FfmpegCodec(command=str(_script(tmp_path, "echo 'Invalid data found' >&2\nexit 1")))
    with pytest.raises(VideoFrameExtractionFailed, match="Invalid data found"):
        await codec.extract_frame(tmp_path / "clip.mp4", 1.0)


async def test_empty_output_is_failure(tmp_path: Path) -> None:
    # ffmpeg exits 0 without a frame when the offset is past the end
    codec = FfmpegCodec(command=str(_script(tmp_path, "exit 0")))
    with pytest.raises(VideoFrameExtractionFailed, match="no output"):
        await codec.extract_frame(tmp_path / "short.mp4", 1.0)


async def test_missing_binary(tmp_path: Path) -> None:
    codec = FfmpegCodec(command=str(tmp_path / "no-such-ffmpeg"))
    with pytest.raises(SpectrogramGenerationFailed, match="not found"):
        await codec.render_spectrogram(tmp_path / "song.mp3", 512, 512)


async def test_timeout_kills_process(tmp_path: Path) -> None:
    codec = FfmpegCodec(command=str(_script(tmp_path, "exec sleep 10")), timeout_seconds=0.2)
    with pytest.raises(VideoFrameExtractionFailed, match="timed out"):
        await codec.extract_frame(tmp_path / "clip.mp4", 1.0)


async def test_cancel_kills_and_reaps_process(tmp_path: Path) -> None:
    pid_file = tmp_path / "pid.txt"
    codec = FfmpegCodec(command=str(_script(tmp_path, f'echo $$ > "{pid_file}"\nexec sleep 10')))
    task = asyncio.create_task(codec.extract_frame(tmp_path / "clip.mp4", 1.0))
    for _ in range(200):
        if pid_file.exists() and pid_file.read_text().strip():
            break
        await asyncio.sleep(0.01)
    pid = int(pid_file.read_text())

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    # Killed and already waited for, so the pid no longer exists (not even as a zombie)
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
