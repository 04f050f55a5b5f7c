"""Bounded payload download into memory plus a scoped temporary file.

Handles inline data URIs (base64 or percent-encoded) and HTTP(S)/IPFS
locators. The hard size cap is enforced before the payload object exists, so
a `FetchedPayload` never exceeds `MAX_PAYLOAD_BYTES`.
"""

import asyncio
import base64
import binascii
import contextlib
import logging
import re
import uuid
from collections.abc import AsyncIterator
from pathlib import Path
from urllib.parse import unquote_to_bytes, urlsplit

import httpx

from cgmedia.config import DEFAULT_USER_AGENT
from cgmedia.detector import data_uri_mime_type, normalize_mime_type
from cgmedia.errors import DownloadFailed, InvalidDataUri, PayloadTooLarge
from cgmedia.models import FetchedPayload, shorten_locator
from cgmedia.resolver import is_data_uri, resolve_to_fetchable

logger = logging.getLogger("cgmedia.fetcher")

# Hard cap on decoded payload size (20 MiB)
MAX_PAYLOAD_BYTES = 20 * 1024 * 1024
# Fixed download timeout
FETCH_TIMEOUT_SECONDS = 30.0

# Temp file extensions for known MIME types
_EXTENSION_MAP: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/svg+xml": "svg",
    "image/gif": "gif",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
}
_UNSAFE_EXT_CHARS = re.compile(r"[^a-z0-9]")


def temp_extension(locator: str, mime_type: str | None) -> str:
    """Pick a sanitized file extension: MIME map first, then URL suffix, else "bin"."""
    if mime_type:
        ext = _EXTENSION_MAP.get(normalize_mime_type(mime_type))
        if ext:
            return ext
    if is_data_uri(locator):
        return "bin"
    try:
        path = urlsplit(locator).path
    except ValueError:
        return "bin"
    _, dot, suffix = path.rpartition(".")
    if not dot or "/" in suffix:
        return "bin"
    return _UNSAFE_EXT_CHARS.sub("", suffix.lower()) or "bin"


def decode_data_uri(locator: str) -> bytes:
    """Decode the body of a data URI.

    Raises:
        InvalidDataUri: If there is no comma separator or base64 is invalid
    """
    header, sep, data = locator.partition(",")
    if not sep:
        raise InvalidDataUri("Invalid data URL format")
    params = [p.strip().lower() for p in header.split(";")[1:]]
    if "base64" in params:
        try:
            # Tolerate whitespace and missing padding seen in on-chain SVGs.
            compact = "".join(data.split())
            compact += "=" * (-len(compact) % 4)
            return base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidDataUri(f"Failed to process data URL: {e}") from e
    return unquote_to_bytes(data)


def _check_size(byte_count: int) -> None:
    if byte_count > MAX_PAYLOAD_BYTES:
        raise PayloadTooLarge(byte_count, MAX_PAYLOAD_BYTES)


async def _download(client: httpx.AsyncClient, url: str, user_agent: str) -> tuple[bytes, str]:
    """Stream a URL into memory, aborting as soon as the cap is exceeded."""
    try:
        async with client.stream(
            "GET",
            url,
            headers={"User-Agent": user_agent},
            timeout=FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
        ) as resp:
            if not resp.is_success:
                raise DownloadFailed(f"Failed to download media: {resp.status_code}")

            declared = resp.headers.get("Content-Length")
            if declared and declared.isdigit():
                _check_size(int(declared))

            chunks: list[bytes] = []
            total = 0
            async for chunk in resp.aiter_bytes():
                total += len(chunk)
                _check_size(total)
                chunks.append(chunk)
            return b"".join(chunks), resp.headers.get("Content-Type", "")
    except httpx.TimeoutException as e:
        raise DownloadFailed(f"Timed out downloading media: {url}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise DownloadFailed(f"Failed to download media: {e}") from e


async def fetch_payload(
    locator: str,
    client: httpx.AsyncClient,
    temp_dir: Path,
    mime_type: str | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> FetchedPayload:
    """Download a locator and mirror it to a scoped temporary file.

    Args:
        locator: HTTP(S) URL, IPFS URI or data URI
        client: Shared HTTP client
        temp_dir: Directory for the temporary file (created if missing)
        mime_type: Detected MIME type, used to pick the temp file extension
        user_agent: Identifying User-Agent header

    Raises:
        InvalidDataUri: Undecodable data URI
        PayloadTooLarge: Decoded size exceeds MAX_PAYLOAD_BYTES
        DownloadFailed: Non-success status, timeout or transport error

    The caller owns the returned payload and must release it; prefer
    `open_payload()`, which does so on every exit path.
    """
    if is_data_uri(locator):
        data = decode_data_uri(locator)
        _check_size(len(data))
        content_type = mime_type or data_uri_mime_type(locator) or ""
    else:
        url = resolve_to_fetchable(locator)
        data, header_type = await _download(client, url, user_agent)
        content_type = mime_type or header_type
        locator = url

    temp_dir.mkdir(parents=True, exist_ok=True)
    ext = temp_extension(locator, content_type)
    path = temp_dir / f"{uuid.uuid4().hex}.{ext}"
    await asyncio.to_thread(path.write_bytes, data)
    logger.debug(
        "Fetched %d bytes from %s into %s", len(data), shorten_locator(locator), path.name
    )
    return FetchedPayload(
        raw_bytes=data,
        path=path,
        mime_type=normalize_mime_type(content_type) if content_type else "",
    )


@contextlib.asynccontextmanager
async def open_payload(
    locator: str,
    client: httpx.AsyncClient,
    temp_dir: Path,
    mime_type: str | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> AsyncIterator[FetchedPayload]:
    """Fetch a payload for the duration of a block, releasing it on exit."""
    payload = await fetch_payload(locator, client, temp_dir, mime_type, user_agent)
    with payload:
        yield payload
