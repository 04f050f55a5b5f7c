"""cgmedia entry point - normalizes one NFT media asset from the command line."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from cgmedia.cache import ResultCache
from cgmedia.codec import FfmpegCodec
from cgmedia.config import CgmediaConfig, load_config
from cgmedia.errors import MediaProcessingFailed
from cgmedia.housekeeping import TempSweeper
from cgmedia.log import setup_logging
from cgmedia.models import NftRecord
from cgmedia.pipeline import MediaPipeline
from cgmedia.prompt import compose_prompt

logger = logging.getLogger("cgmedia.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Normalize an NFT media asset into a 256x256 JPEG for a vision model."
    )
    parser.add_argument("locator", help="HTTP(S) URL, ipfs:// URI or data: URI")
    parser.add_argument("-c", "--config", default="config.toml", help="Path to config.toml")
    parser.add_argument("-o", "--output", default="normalized.jpg", help="Output JPEG path")
    parser.add_argument("--name", default="", help="NFT name for the prompt")
    parser.add_argument("--token-id", default="", help="NFT token ID for the prompt")
    parser.add_argument("--description", default="", help="Original NFT description")
    return parser.parse_args(argv)


def _load(config_path: str) -> CgmediaConfig:
    # A missing default config is fine for one-shot runs; an explicit one is not.
    if config_path == "config.toml" and not Path(config_path).exists():
        return CgmediaConfig()
    return load_config(config_path)


async def main(argv: list[str] | None = None) -> int:
    """Run the pipeline once and print the composed prompt."""
    args = parse_args(argv)
    config = _load(args.config)

    # Initialize logging
    setup_logging(config.logging)
    logger.info("cgmedia starting up (config: %s)", args.config)

    temp_dir = Path(config.media.temp_dir).expanduser().resolve()
    temp_dir.mkdir(parents=True, exist_ok=True)

    sweeper = None
    if config.housekeeping.enabled:
        sweeper = TempSweeper(
            temp_dir,
            interval_seconds=config.housekeeping.sweep_interval_seconds,
            max_age_seconds=config.housekeeping.max_temp_age_seconds,
        )
        sweeper.start()

    pipeline = MediaPipeline(
        cache=ResultCache(),
        codec=FfmpegCodec(
            command=config.media.ffmpeg_command,
            timeout_seconds=config.media.codec_timeout_seconds,
        ),
        temp_dir=temp_dir,
        user_agent=config.media.user_agent,
    )
    nft = NftRecord(
        image=args.locator,
        token_id=args.token_id,
        name=args.name,
        description=args.description,
    )

    try:
        asset = await pipeline.process_media(nft)
    except MediaProcessingFailed as e:
        logger.error("This NFT format is not supported yet: %s", e.cause)
        return 1
    finally:
        if sweeper:
            await sweeper.stop()
        await pipeline.close()

    output = Path(args.output)
    output.write_bytes(asset.image_bytes)
    logger.info(
        "Wrote %s (%dx%d, %d bytes, strategy=%s, original=%s)",
        output,
        asset.width,
        asset.height,
        asset.byte_count,
        asset.conversion_strategy.value,
        asset.original_mime_type,
    )
    print(compose_prompt(nft, asset))
    return 0


if __name__ == "__main__":
    import contextlib

    with contextlib.suppress(KeyboardInterrupt):
        sys.exit(asyncio.run(main()))
