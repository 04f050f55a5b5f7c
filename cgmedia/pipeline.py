"""Media normalization pipeline: the entry point used by route handlers.

resolve → cache lookup → detect → fetch → convert → optimize → cache write.
Every stage failure is re-raised as a single `MediaProcessingFailed`.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx

from cgmedia.cache import ResultCache
from cgmedia.codec import MediaCodec
from cgmedia.config import DEFAULT_USER_AGENT
from cgmedia.converters import convert
from cgmedia.detector import detect_media
from cgmedia.errors import MediaError, MediaProcessingFailed, UnsupportedMediaType
from cgmedia.fetcher import open_payload
from cgmedia.models import (
    CacheStats,
    MediaCategory,
    NftRecord,
    NormalizedAsset,
    shorten_locator,
)
from cgmedia.optimizer import optimize_async
from cgmedia.resolver import resolve_to_fetchable

logger = logging.getLogger("cgmedia.pipeline")


class MediaPipeline:
    """
    Turns an NFT record's media locator into a cached 256x256 JPEG.

    The cache and codec are injected so independent pipelines (and tests) do
    not share state. Concurrent requests for the same locator share a single
    in-flight task; requests for different locators run independently.
    """

    def __init__(
        self,
        cache: ResultCache,
        codec: MediaCodec,
        temp_dir: str | Path,
        client: httpx.AsyncClient | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._cache = cache
        self._codec = codec
        # Directory for scoped payload files
        self._temp_dir = Path(temp_dir)
        # Shared HTTP client; closed by close() only if we created it
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._user_agent = user_agent
        # In-flight normalization tasks keyed by resolved locator
        self._inflight: dict[str, asyncio.Task[NormalizedAsset]] = {}

    async def close(self) -> None:
        """Close the HTTP client if this pipeline owns it."""
        if self._owns_client:
            await self._client.aclose()

    # --- Administrative surface ---

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()

    # --- Processing ---

    async def process_media(self, nft: NftRecord | dict[str, Any]) -> NormalizedAsset:
        """
        Normalize the media asset referenced by an NFT record.

        Args:
            nft: NftRecord or the raw metadata dict (only `image` is required)

        Raises:
            MediaProcessingFailed: Wrapping the stage error that stopped processing
        """
        record = nft if isinstance(nft, NftRecord) else NftRecord.from_dict(nft)
        if not record.image:
            raise MediaProcessingFailed(UnsupportedMediaType("No media locator provided"))

        locator = resolve_to_fetchable(record.image)
        cached = self._cache.get(locator)
        if cached is not None:
            logger.debug("Cache hit for %s", shorten_locator(locator))
            return cached

        task = self._inflight.get(locator)
        if task is None:
            task = asyncio.create_task(self._normalize(locator))
            self._inflight[locator] = task
            task.add_done_callback(lambda t, key=locator: self._forget(key, t))
        else:
            logger.debug("Joining in-flight processing for %s", shorten_locator(locator))

        try:
            # Shielded so one aborted caller does not cancel work shared with others
            return await asyncio.shield(task)
        except MediaError as e:
            logger.warning("Media processing failed for %s: %s", shorten_locator(locator), e)
            raise MediaProcessingFailed(e) from e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected error processing %s: %s", shorten_locator(locator), e, exc_info=True
            )
            raise MediaProcessingFailed(e) from e

    def _forget(self, key: str, task: asyncio.Task[NormalizedAsset]) -> None:
        """Drop a finished task from the in-flight map and mark its error retrieved."""
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            task.exception()

    async def _normalize(self, locator: str) -> NormalizedAsset:
        descriptor = await detect_media(locator, self._client, self._user_agent)
        logger.info(
            "Processing %s: mime=%s category=%s size~%d",
            shorten_locator(locator),
            descriptor.mime_type,
            descriptor.category.value,
            descriptor.approximate_size_bytes,
        )
        if descriptor.category is MediaCategory.UNKNOWN:
            raise UnsupportedMediaType(f"Unsupported media type: {descriptor.mime_type}")

        async with open_payload(
            locator,
            self._client,
            self._temp_dir,
            mime_type=descriptor.mime_type,
            user_agent=self._user_agent,
        ) as payload:
            conversion = await convert(payload, descriptor, self._codec)

        asset = await optimize_async(
            conversion.raster_bytes,
            conversion.background,
            conversion.strategy,
            descriptor.mime_type,
        )
        self._cache.put(locator, asset)
        logger.info(
            "Normalized %s via %s (%d bytes)",
            shorten_locator(locator),
            asset.conversion_strategy.value,
            asset.byte_count,
        )
        return asset
