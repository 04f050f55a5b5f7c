"""Tests for the stale temp-file sweeper."""

import asyncio
import os
import time
from pathlib import Path

import pytest

from cgmedia.housekeeping import TempSweeper, sweep_temp_dir


def _aged(path: Path, age_seconds: float, now: float) -> Path:
    path.write_bytes(b"x")
    os.utime(path, (now - age_seconds, now - age_seconds))
    return path


def test_sweep_removes_only_stale_files(tmp_path: Path) -> None:
    now = time.time()
    old = _aged(tmp_path / "old.png", 7200, now)
    fresh = _aged(tmp_path / "fresh.png", 60, now)
    (tmp_path / "subdir").mkdir()

    assert sweep_temp_dir(tmp_path, max_age_seconds=3600, now=now) == 1
    assert not old.exists()
    assert fresh.exists()
    assert (tmp_path / "subdir").is_dir()


def test_sweep_missing_dir(tmp_path: Path) -> None:
    assert sweep_temp_dir(tmp_path / "absent", max_age_seconds=0) == 0


@pytest.mark.asyncio
async def test_sweeper_runs_periodically(tmp_path: Path) -> None:
    stale = _aged(tmp_path / "stale.mp4", 7200, time.time())
    sweeper = TempSweeper(tmp_path, interval_seconds=0.01, max_age_seconds=3600)
    sweeper.start()
    assert sweeper.is_running
    for _ in range(100):
        if not stale.exists():
            break
        await asyncio.sleep(0.01)
    await sweeper.stop()
    assert not stale.exists()
    assert not sweeper.is_running


@pytest.mark.asyncio
async def test_sweeper_stop_is_idempotent(tmp_path: Path) -> None:
    sweeper = TempSweeper(tmp_path)
    await sweeper.stop()
    sweeper.start()
    sweeper.start()
    await sweeper.stop()
    await sweeper.stop()
    assert not sweeper.is_running
