"""Error taxonomy for the media pipeline.

Stage-level errors derive from `MediaError`. The pipeline boundary re-wraps
all of them into a single `MediaProcessingFailed` so callers only need to
handle one type for "this asset could not be normalized".
"""


class MediaError(Exception):
    """Base class for every pipeline stage failure."""


class InvalidDataUri(MediaError):
    """An inline data URI could not be decoded."""


class PayloadTooLarge(MediaError):
    """The fetched payload exceeds the hard size cap."""

    def __init__(self, byte_count: int, limit: int) -> None:
        super().__init__(
            f"Media file too large ({byte_count} bytes). Maximum size is {limit // (1024 * 1024)}MB."
        )
        self.byte_count = byte_count
        self.limit = limit


class DownloadFailed(MediaError):
    """Non-success HTTP status, timeout or transport error while fetching."""


class UnsupportedMediaType(MediaError):
    """The asset category has no conversion strategy."""


class VideoFrameExtractionFailed(MediaError):
    """The codec could not produce a frame at the requested offset."""


class SpectrogramGenerationFailed(MediaError):
    """The codec could not decode the audio stream into a spectrogram."""


class RasterDecodeFailed(MediaError):
    """A converter produced bytes the optimizer cannot decode as an image."""


class MediaProcessingFailed(Exception):
    """Outward-facing failure carrying the underlying cause."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Failed to process media: {cause}")
        self.cause = cause
