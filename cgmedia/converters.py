"""Category-specific conversion of a fetched payload into a static raster.

Each strategy returns PNG (or, for passthrough, the original) bytes plus the
padding colour the optimizer must use. Animated and vector conversions degrade
to a placeholder image on failure; video and audio failures are hard errors.
"""

import asyncio
import io
import logging
import re
from dataclasses import dataclass

import cairosvg
from cairosvg.parser import Tree
from PIL import Image, ImageDraw, ImageFont

from cgmedia.codec import MediaCodec
from cgmedia.errors import UnsupportedMediaType
from cgmedia.models import ConversionStrategy, FetchedPayload, MediaCategory, MediaDescriptor
from cgmedia.optimizer import BLACK, WHITE, Color

logger = logging.getLogger("cgmedia.converters")

# Intermediate canvas for rasterized vectors, spectrograms and placeholders
CANVAS_SIZE = (512, 512)
# Seek offset for the representative video frame
VIDEO_FRAME_OFFSET_SECONDS = 1.0

_PLACEHOLDER_BG = "#f0f0f0"
_PLACEHOLDER_TITLE_FG = "#666666"
_PLACEHOLDER_CAPTION_FG = "#999999"

# Absolute SVG units in CSS pixels
_SVG_UNITS = {
    "": 1.0,
    "px": 1.0,
    "pt": 4 / 3,
    "pc": 16.0,
    "mm": 96 / 25.4,
    "cm": 96 / 2.54,
    "in": 96.0,
}
_SVG_LENGTH = re.compile(r"([+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?)\s*([a-z%]*)")


@dataclass(frozen=True)
class Conversion:
    """Representative raster produced by a converter (not yet resized)."""

    raster_bytes: bytes
    strategy: ConversionStrategy
    # Padding colour for the optimizer
    background: Color


def _to_png(img: Image.Image) -> bytes:
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def _load_font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    try:
        return ImageFont.load_default(size=size)
    except (TypeError, OSError):
        # Pillow without FreeType only ships the fixed-size bitmap font.
        return ImageFont.load_default()


def render_placeholder(title: str, caption: str, size: tuple[int, int] = CANVAS_SIZE) -> bytes:
    """Render a plain placeholder card with a centered title and caption."""
    img = Image.new("RGB", size, _PLACEHOLDER_BG)
    draw = ImageDraw.Draw(img)
    width, height = size
    for text, font_size, fill, y_ratio in (
        (title, 24, _PLACEHOLDER_TITLE_FG, 0.45),
        (caption, 14, _PLACEHOLDER_CAPTION_FG, 0.55),
    ):
        font = _load_font(font_size)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        x = (width - (right - left)) // 2 - left
        y = int(height * y_ratio) - (bottom - top) // 2 - top
        draw.text((x, y), text, font=font, fill=fill)
    return _to_png(img)


def extract_first_frame(data: bytes) -> bytes:
    """Decode the first frame of an animated image as RGBA PNG."""
    with Image.open(io.BytesIO(data)) as img:
        img.seek(0)
        return _to_png(img.convert("RGBA"))


def _svg_length(value: str | None) -> float | None:
    """Parse an absolute SVG length into CSS pixels; None for relative or missing values."""
    if not value:
        return None
    match = _SVG_LENGTH.fullmatch(value.strip().lower())
    if match is None or match.group(2) not in _SVG_UNITS:
        return None
    length = float(match.group(1)) * _SVG_UNITS[match.group(2)]
    return length if length > 0 else None


def _svg_aspect(tree: Tree) -> float:
    """Width/height ratio of the document, read from viewBox or width/height attributes."""
    viewbox = (tree.get("viewBox") or "").replace(",", " ").split()
    if len(viewbox) == 4:
        try:
            box_w, box_h = float(viewbox[2]), float(viewbox[3])
        except ValueError:
            box_w = box_h = 0.0
        if box_w > 0 and box_h > 0:
            return box_w / box_h
    width, height = _svg_length(tree.get("width")), _svg_length(tree.get("height"))
    if width and height:
        return width / height
    return 1.0


def rasterize_svg(data: bytes, size: tuple[int, int] = CANVAS_SIZE) -> bytes:
    """Rasterize an SVG document to fit `size`, letterboxed on a transparent canvas.

    The output size is computed from the document's declared geometry, so the
    render surface never exceeds `size` whatever width/height the SVG claims.
    """
    tree = Tree(bytestring=data)
    aspect = _svg_aspect(tree)
    if aspect >= size[0] / size[1]:
        out_w, out_h = size[0], max(1, round(size[0] / aspect))
    else:
        out_w, out_h = max(1, round(size[1] * aspect)), size[1]

    rendered = cairosvg.svg2png(bytestring=data, output_width=out_w, output_height=out_h)
    with Image.open(io.BytesIO(rendered)) as img:
        frame = img.convert("RGBA")
    if frame.width > size[0] or frame.height > size[1]:
        frame.thumbnail(size, Image.Resampling.LANCZOS)

    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(frame, ((size[0] - frame.width) // 2, (size[1] - frame.height) // 2))
    return _to_png(canvas)


async def _convert_animated(payload: FetchedPayload) -> Conversion:
    try:
        raster = await asyncio.to_thread(extract_first_frame, payload.raw_bytes)
    except Exception as e:
        logger.warning("GIF frame extraction failed, using placeholder: %s", e)
        raster = await asyncio.to_thread(render_placeholder, "GIF Content", "(Animated GIF)")
    return Conversion(raster, ConversionStrategy.EXTRACTED_FRAME, WHITE)


async def _convert_vector(payload: FetchedPayload) -> Conversion:
    try:
        raster = await asyncio.to_thread(rasterize_svg, payload.raw_bytes)
    except Exception as e:
        logger.warning("SVG rasterization failed, using placeholder: %s", e)
        raster = await asyncio.to_thread(render_placeholder, "SVG Content", "(Complex SVG)")
    return Conversion(raster, ConversionStrategy.RASTERIZED_VECTOR, WHITE)


async def convert(
    payload: FetchedPayload,
    descriptor: MediaDescriptor,
    codec: MediaCodec,
) -> Conversion:
    """Dispatch on the descriptor's category and produce a representative raster.

    Raises:
        UnsupportedMediaType: For the `unknown` category
        VideoFrameExtractionFailed: Video codec failure (not degraded)
        SpectrogramGenerationFailed: Audio codec failure (not degraded)
    """
    match descriptor.category:
        case MediaCategory.STATIC_IMAGE:
            return Conversion(payload.raw_bytes, ConversionStrategy.OPTIMIZED_STATIC, WHITE)
        case MediaCategory.ANIMATED_IMAGE:
            return await _convert_animated(payload)
        case MediaCategory.VECTOR_IMAGE:
            return await _convert_vector(payload)
        case MediaCategory.VIDEO:
            frame = await codec.extract_frame(payload.path, VIDEO_FRAME_OFFSET_SECONDS)
            return Conversion(frame, ConversionStrategy.VIDEO_FRAME, BLACK)
        case MediaCategory.AUDIO:
            spectrogram = await codec.render_spectrogram(payload.path, *CANVAS_SIZE)
            return Conversion(spectrogram, ConversionStrategy.AUDIO_SPECTROGRAM, BLACK)
        case MediaCategory.UNKNOWN:
            raise UnsupportedMediaType(f"Unsupported media type: {descriptor.mime_type}")
