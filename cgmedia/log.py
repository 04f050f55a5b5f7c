"""Logging setup for cgmedia: console plus daily-rotated DEBUG file log."""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from cgmedia.config import LoggingConfig

logger = logging.getLogger("cgmedia.log")

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_FILE_NAME = "cgmedia.log"
# Noisy third-party loggers capped at WARNING on the console
_QUIET_LOGGERS = ("httpx", "httpcore", "PIL")


def _prune_log_dir(log_dir: Path, max_total_mb: int) -> int:
    """Delete the oldest rotated log files while the directory exceeds the cap.

    The active log file is never removed. Returns the number of files deleted.
    """
    if max_total_mb <= 0:
        return 0
    limit = max_total_mb * 1024 * 1024
    rotated = sorted(
        (p for p in log_dir.glob(f"{_LOG_FILE_NAME}.*") if p.is_file()),
        key=lambda p: p.stat().st_mtime,
    )
    active = log_dir / _LOG_FILE_NAME
    total = sum(p.stat().st_size for p in rotated)
    if active.exists():
        total += active.stat().st_size

    removed = 0
    for path in rotated:
        if total <= limit:
            break
        size = path.stat().st_size
        try:
            path.unlink()
        except OSError as e:
            logger.warning("Failed to prune log file %s: %s", path, e)
            continue
        total -= size
        removed += 1
    return removed


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from the [logging] config section.

    Console output honours `config.level`; the file handler always captures
    DEBUG and rotates at midnight, keeping `config.keep_days` backups.
    """
    log_dir = Path(config.dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    # Re-running setup (tests, reloads) must not stack handlers.
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    console.setFormatter(formatter)
    root.addHandler(console)

    file_handler = TimedRotatingFileHandler(
        log_dir / _LOG_FILE_NAME,
        when="midnight",
        backupCount=config.keep_days,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    removed = _prune_log_dir(log_dir, config.max_total_mb)
    if removed:
        logger.info("Pruned %d old log file(s) from %s", removed, log_dir)
