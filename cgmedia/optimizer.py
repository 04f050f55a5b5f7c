"""Final resize/re-encode step producing the normalized 256x256 JPEG."""

import asyncio
import io
import logging

import pillow_heif
from PIL import Image, ImageOps, UnidentifiedImageError

from cgmedia.errors import RasterDecodeFailed
from cgmedia.models import ConversionStrategy, NormalizedAsset

logger = logging.getLogger("cgmedia.optimizer")

# HEIC/HEIF payloads go through the static passthrough
pillow_heif.register_heif_opener()

TARGET_SIZE = (256, 256)
JPEG_QUALITY = 80
OUTPUT_MIME_TYPE = "image/jpeg"

# Padding colours: image-derived categories use white, time-based ones black
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

Color = tuple[int, int, int]


def _flatten(img: Image.Image, background: Color) -> Image.Image:
    """Composite any transparency over the background and return an RGB image."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        base = Image.new("RGB", rgba.size, background)
        base.paste(rgba, mask=rgba.getchannel("A"))
        return base
    return img.convert("RGB")


def optimize(
    raster_bytes: bytes,
    background: Color,
    strategy: ConversionStrategy,
    original_mime_type: str,
) -> NormalizedAsset:
    """Fit the raster inside 256x256 (no upscaling), pad and encode as JPEG q80.

    Raises:
        RasterDecodeFailed: If the bytes are not a decodable raster image
    """
    try:
        with Image.open(io.BytesIO(raster_bytes)) as src:
            src.seek(0)
            source_size = src.size
            img = ImageOps.exif_transpose(src) or src
            img = _flatten(img, background)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise RasterDecodeFailed(f"Unable to decode image ({original_mime_type}): {e}") from e

    img.thumbnail(TARGET_SIZE, Image.Resampling.LANCZOS)
    canvas = Image.new("RGB", TARGET_SIZE, background)
    offset = ((TARGET_SIZE[0] - img.width) // 2, (TARGET_SIZE[1] - img.height) // 2)
    canvas.paste(img, offset)

    out = io.BytesIO()
    canvas.save(out, format="JPEG", quality=JPEG_QUALITY)
    data = out.getvalue()
    logger.debug(
        "Optimized %s (%s): %dx%d -> %dx%d, %d bytes",
        original_mime_type,
        strategy.value,
        source_size[0],
        source_size[1],
        TARGET_SIZE[0],
        TARGET_SIZE[1],
        len(data),
    )
    return NormalizedAsset(
        image_bytes=data,
        mime_type=OUTPUT_MIME_TYPE,
        width=TARGET_SIZE[0],
        height=TARGET_SIZE[1],
        original_mime_type=original_mime_type,
        conversion_strategy=strategy,
    )


async def optimize_async(
    raster_bytes: bytes,
    background: Color,
    strategy: ConversionStrategy,
    original_mime_type: str,
) -> NormalizedAsset:
    """Run `optimize` in a worker thread so the event loop is not blocked."""
    return await asyncio.to_thread(
        optimize, raster_bytes, background, strategy, original_mime_type
    )
