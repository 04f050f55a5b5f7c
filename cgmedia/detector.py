"""Media type detection without downloading the whole payload.

Data URIs are parsed locally. HTTP(S) locators are probed with HEAD, then a
ranged GET for the first KiB, and finally a URL-extension lookup. Detection
never raises: the worst case is an `application/octet-stream` descriptor with
category `unknown`.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from cgmedia.config import DEFAULT_USER_AGENT
from cgmedia.models import MediaCategory, MediaDescriptor, shorten_locator
from cgmedia.resolver import is_data_uri

logger = logging.getLogger("cgmedia.detector")

# Fixed probe timeout for HEAD and ranged GET
DETECT_TIMEOUT_SECONDS = 5.0
# Ranged GET asks for the first KiB only
_PROBE_RANGE = "bytes=0-1023"
# Base64 encodes 3 bytes as 4 characters
_BASE64_RATIO = 0.75

FALLBACK_MIME_TYPE = "application/octet-stream"

# MIME types the vision model accepts without conversion
NATIVE_MIME_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/webp", "image/heic", "image/heif"}
)

EXTENSION_MIME_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "avif": "image/avif",
    "bmp": "image/bmp",
    "heic": "image/heic",
    "heif": "image/heif",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
}


def normalize_mime_type(content_type: str | None) -> str:
    """Normalize a Content-Type header value into a bare lowercase MIME type."""
    if not content_type:
        return FALLBACK_MIME_TYPE
    mime_type = content_type.split(";", 1)[0].strip().lower()
    return mime_type or FALLBACK_MIME_TYPE


def categorize(mime_type: str) -> MediaCategory:
    """Map a normalized MIME type to its processing category."""
    if mime_type.startswith("image/"):
        if mime_type == "image/gif":
            return MediaCategory.ANIMATED_IMAGE
        if mime_type == "image/svg+xml":
            return MediaCategory.VECTOR_IMAGE
        return MediaCategory.STATIC_IMAGE
    if mime_type.startswith("video/"):
        return MediaCategory.VIDEO
    if mime_type.startswith("audio/"):
        return MediaCategory.AUDIO
    return MediaCategory.UNKNOWN


def describe_mime(content_type: str | None, size: int, locator: str) -> MediaDescriptor:
    """Build a descriptor; every flag is derived from the normalized MIME type."""
    mime_type = normalize_mime_type(content_type)
    return MediaDescriptor(
        mime_type=mime_type,
        approximate_size_bytes=max(size, 0),
        source_locator=locator,
        is_image=mime_type.startswith("image/"),
        is_video=mime_type.startswith("video/"),
        is_audio=mime_type.startswith("audio/"),
        is_animated=mime_type == "image/gif" or mime_type.startswith("video/"),
        is_vector=mime_type == "image/svg+xml",
        is_natively_supported=mime_type in NATIVE_MIME_TYPES,
        category=categorize(mime_type),
    )


def data_uri_mime_type(locator: str) -> str | None:
    """Extract the MIME type from a data URI header, or None if malformed."""
    header, sep, _ = locator.partition(",")
    if not sep:
        return None
    return header[len("data:") :].split(";", 1)[0].strip() or FALLBACK_MIME_TYPE


def mime_type_from_extension(locator: str) -> str:
    """Best-effort MIME type from the URL path extension."""
    try:
        path = urlsplit(locator).path
    except ValueError:
        return FALLBACK_MIME_TYPE
    _, dot, extension = path.rpartition(".")
    if not dot or "/" in extension:
        return FALLBACK_MIME_TYPE
    return EXTENSION_MIME_TYPES.get(extension.lower(), FALLBACK_MIME_TYPE)


def _parse_int(value: str | None) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def _size_from_headers(headers: httpx.Headers) -> int:
    """Prefer the total from Content-Range (ranged GET), else Content-Length."""
    content_range = headers.get("Content-Range")
    if content_range and "/" in content_range:
        total = _parse_int(content_range.rsplit("/", 1)[1].strip())
        if total:
            return total
    return _parse_int(headers.get("Content-Length"))


def _detect_data_uri(locator: str) -> MediaDescriptor:
    mime_type = data_uri_mime_type(locator)
    if mime_type is None:
        logger.warning("Malformed data URI: %s", shorten_locator(locator))
        return describe_mime(FALLBACK_MIME_TYPE, 0, locator)
    return describe_mime(mime_type, int(len(locator) * _BASE64_RATIO), locator)


async def _probe_head(client: httpx.AsyncClient, url: str, user_agent: str) -> MediaDescriptor:
    resp = await client.head(
        url,
        headers={"User-Agent": user_agent},
        timeout=DETECT_TIMEOUT_SECONDS,
        follow_redirects=True,
    )
    resp.raise_for_status()
    return describe_mime(resp.headers.get("Content-Type"), _size_from_headers(resp.headers), url)


async def _probe_range(client: httpx.AsyncClient, url: str, user_agent: str) -> MediaDescriptor:
    # Stream so only headers are read even if the server ignores Range.
    async with client.stream(
        "GET",
        url,
        headers={"User-Agent": user_agent, "Range": _PROBE_RANGE},
        timeout=DETECT_TIMEOUT_SECONDS,
        follow_redirects=True,
    ) as resp:
        resp.raise_for_status()
        return describe_mime(
            resp.headers.get("Content-Type"), _size_from_headers(resp.headers), url
        )


async def detect_media(
    locator: str,
    client: httpx.AsyncClient,
    user_agent: str = DEFAULT_USER_AGENT,
) -> MediaDescriptor:
    """Determine MIME type, approximate size and category for a locator.

    Args:
        locator: Fetchable locator (IPFS already resolved) or data URI
        client: Shared HTTP client used for the probes
        user_agent: Identifying User-Agent header for the probes

    Returns:
        A best-effort descriptor; never raises for network or parse errors.
    """
    if is_data_uri(locator):
        return _detect_data_uri(locator)

    try:
        return await _probe_head(client, locator, user_agent)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug("HEAD probe failed for %s: %s", locator, e)

    try:
        return await _probe_range(client, locator, user_agent)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug("Ranged GET probe failed for %s: %s", locator, e)

    mime_type = mime_type_from_extension(locator)
    logger.info("Media type detection fell back to URL extension: %s -> %s", locator, mime_type)
    return describe_mime(mime_type, 0, locator)
