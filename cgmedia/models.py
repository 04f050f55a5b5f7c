"""Shared data types used across cgmedia modules."""

import base64
import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger("cgmedia.models")


class MediaCategory(enum.Enum):
    """Processing category derived from a MIME type."""

    STATIC_IMAGE = "static_image"
    ANIMATED_IMAGE = "animated_image"
    VECTOR_IMAGE = "vector_image"
    VIDEO = "video"
    AUDIO = "audio"
    UNKNOWN = "unknown"


class ConversionStrategy(enum.Enum):
    """Which category-specific algorithm produced a normalized asset."""

    OPTIMIZED_STATIC = "optimized_static"
    EXTRACTED_FRAME = "extracted_frame"
    RASTERIZED_VECTOR = "rasterized_vector"
    VIDEO_FRAME = "video_frame"
    AUDIO_SPECTROGRAM = "audio_spectrogram"


@dataclass(frozen=True)
class MediaDescriptor:
    """Result of type detection for a single locator."""

    # Normalized MIME type (lowercase, parameters stripped)
    mime_type: str
    # Best-effort size; 0 when unknown
    approximate_size_bytes: int
    # Locator the descriptor was built for (already resolved to HTTP for IPFS)
    source_locator: str
    is_image: bool
    is_video: bool
    is_audio: bool
    # True for GIFs and any video/* type
    is_animated: bool
    is_vector: bool
    # Whether the vision model accepts this MIME type as-is (informational)
    is_natively_supported: bool
    category: MediaCategory


@dataclass
class FetchedPayload:
    """Downloaded bytes plus the scoped temporary file that mirrors them.

    Owned by the conversion call that requested it. `release()` deletes the
    temporary file and is safe to call more than once; the payload is also a
    context manager that releases on exit.
    """

    # Decoded payload bytes
    raw_bytes: bytes
    # Filesystem copy for codec subprocesses that need a path
    path: Path
    # MIME type the payload was fetched as (may be empty when unknown)
    mime_type: str = ""
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def byte_count(self) -> int:
        return len(self.raw_bytes)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Delete the temporary file (idempotent)."""
        if self._released:
            return
        self._released = True
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to delete temp file %s: %s", self.path, e)

    def __enter__(self) -> "FetchedPayload":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


@dataclass(frozen=True)
class NormalizedAsset:
    """Terminal artifact of the pipeline: a fixed-size JPEG for the vision model."""

    image_bytes: bytes
    # Always "image/jpeg"
    mime_type: str
    width: int
    height: int
    # MIME type of the source asset before conversion
    original_mime_type: str
    conversion_strategy: ConversionStrategy

    @property
    def byte_count(self) -> int:
        return len(self.image_bytes)

    def to_base64(self) -> str:
        """Encode the image for inline transport to the vision model."""
        return base64.b64encode(self.image_bytes).decode("ascii")


@dataclass(frozen=True)
class NftAttribute:
    """Single trait of an NFT (e.g. Background: Blue)."""

    key: str
    value: str


@dataclass
class NftRecord:
    """NFT metadata as supplied by the metadata-retrieval collaborator."""

    # Media locator: HTTP(S) URL, ipfs:// URI or data: URI
    image: str
    token_id: str = ""
    name: str = ""
    description: str = ""
    attributes: list[NftAttribute] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "NftRecord":
        """Build a record permissively; only `image` matters to the pipeline.

        Accepts both camelCase (`tokenId`) and snake_case keys, and attribute
        entries keyed by either `key` or `trait_type`.
        """
        attributes: list[NftAttribute] = []
        raw_attrs = raw.get("attributes")
        if isinstance(raw_attrs, list):
            for item in raw_attrs:
                if not isinstance(item, dict):
                    continue
                key = item.get("key", item.get("trait_type"))
                value = item.get("value")
                attributes.append(
                    NftAttribute(
                        key="" if key is None else str(key),
                        value="" if value is None else str(value),
                    )
                )

        def _text(*names: str) -> str:
            for name in names:
                value = raw.get(name)
                if value is not None:
                    return str(value)
            return ""

        return cls(
            image=_text("image").strip(),
            token_id=_text("tokenId", "token_id"),
            name=_text("name"),
            description=_text("description"),
            attributes=attributes,
        )


@dataclass
class CacheEntry:
    """Cached normalized asset with its creation time (monotonic seconds)."""

    key: str
    value: NormalizedAsset
    created_at: float


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the result cache for the administrative surface."""

    count: int
    keys: list[str]


def shorten_locator(locator: str, limit: int = 80) -> str:
    """Truncate long locators (notably data URIs) for log lines."""
    if len(locator) <= limit:
        return locator
    return f"{locator[:limit]}... ({len(locator)} chars)"
