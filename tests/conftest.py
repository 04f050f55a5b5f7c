"""Shared pytest fixtures for cgmedia tests."""

from pathlib import Path

import pytest

from cgmedia.cache import ResultCache
from tests.mock_codec import MockCodec
from tests.samples import FakeClock, MediaServer


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Create a temporary config.toml for testing."""
    config = tmp_path / "config.toml"
    config.write_text(
        "[media]\n"
        'temp_dir = "' + str(tmp_path / "tmp").replace("\\", "/") + '"\n'
        'ffmpeg_command = "ffmpeg-test"\n'
        "codec_timeout_seconds = 5\n\n"
        "[housekeeping]\n"
        "enabled = false\n"
        "sweep_interval_seconds = 60\n\n"
        "[logging]\n"
        'level = "DEBUG"\n'
        'dir = "' + str(tmp_path / "logs").replace("\\", "/") + '"\n'
        "keep_days = 7\n"
    )
    return config


@pytest.fixture
def media_server() -> MediaServer:
    """In-process media gateway; pass it to `mock_client()`."""
    return MediaServer()


@pytest.fixture
def codec() -> MockCodec:
    return MockCodec()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResultCache:
    return ResultCache(clock=clock)
