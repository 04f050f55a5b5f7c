"""Configuration loading from TOML file for cgmedia."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

# Identifying User-Agent sent with every probe and download
DEFAULT_USER_AGENT = "ChainGallery/1.0"


@dataclass
class MediaConfig:
    """Fetching and codec configuration."""

    # Directory for scoped temporary payload files (created on startup)
    temp_dir: str = "data/tmp"
    # User-Agent header for HEAD/range probes and downloads
    user_agent: str = DEFAULT_USER_AGENT
    # Path or name of the ffmpeg executable used for video frames and spectrograms
    ffmpeg_command: str = "ffmpeg"
    # Upper bound in seconds for a single ffmpeg invocation
    codec_timeout_seconds: float = 60.0


@dataclass
class HousekeepingConfig:
    """Background sweep of stray temporary files."""

    # Disable to skip the periodic sweep (e.g. in one-shot CLI runs)
    enabled: bool = True
    # Seconds between sweeps
    sweep_interval_seconds: float = 3600
    # Temp files older than this many seconds are deleted
    max_temp_age_seconds: float = 3600


@dataclass
class LoggingConfig:
    """Logging configuration."""

    # Console log level (file handler always captures DEBUG)
    level: str = "INFO"
    # Directory for log files
    dir: str = "data/logs"
    # Number of days to keep rotated log files
    keep_days: int = 30
    # Total log size cap in MB; oldest files are deleted when exceeded
    max_total_mb: int = 100


@dataclass
class CgmediaConfig:
    """Top-level cgmedia configuration, aggregating all sub-configs."""

    media: MediaConfig = field(default_factory=MediaConfig)
    housekeeping: HousekeepingConfig = field(default_factory=HousekeepingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path = "config.toml") -> CgmediaConfig:
    """
    Load configuration from a TOML file.

    Falls back to defaults for any missing fields.
    Raises FileNotFoundError if the file does not exist.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "rb") as f:
        raw = tomllib.load(f)

    # Build config from raw dict, using defaults for missing fields
    media = MediaConfig(**raw.get("media", {}))
    housekeeping = HousekeepingConfig(**raw.get("housekeeping", {}))
    logging_cfg = LoggingConfig(**raw.get("logging", {}))

    return CgmediaConfig(
        media=media,
        housekeeping=housekeeping,
        logging=logging_cfg,
    )

