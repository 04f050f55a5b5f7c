"""Prompt construction for the vision model, varied by conversion strategy."""

from cgmedia.models import ConversionStrategy, NftRecord, NormalizedAsset

# Note appended after the traits, one per conversion strategy
STRATEGY_NOTES: dict[ConversionStrategy, str] = {
    ConversionStrategy.EXTRACTED_FRAME: (
        "Note: This image shows a single frame extracted from an animated NFT (GIF). "
        "The original was animated, but you are seeing a representative static frame."
    ),
    ConversionStrategy.VIDEO_FRAME: (
        "Note: This image shows a frame extracted from a video NFT. "
        "The original was a video file, but you are seeing a representative still frame."
    ),
    ConversionStrategy.RASTERIZED_VECTOR: (
        "Note: This image is a rasterized version of an original SVG vector graphic. "
        "The original had scalable vector properties."
    ),
    ConversionStrategy.AUDIO_SPECTROGRAM: (
        "Note: This image shows a visual spectrogram representation of an audio NFT. "
        "The colors and patterns represent the frequency content and intensity of the "
        "original audio."
    ),
    ConversionStrategy.OPTIMIZED_STATIC: (
        "Note: This is a static image NFT, optimized for analysis."
    ),
}

_INSTRUCTIONS = (
    "Based on the VISUALS in the image, its traits, and the context provided, write a new, "
    "short, evocative, and artistic paragraph that captures the mood, theme, and aesthetic "
    "of this specific piece. Focus on what you SEE and the provided traits. Do not repeat "
    "the original description or list the traits. Be imaginative and consider the original "
    "format when relevant. Do not use markdown, titles, or any special formatting. Respond "
    "with only the text of the description itself."
)


def _render_traits(nft: NftRecord) -> str:
    lines = [f"- {attr.key}: {attr.value}" for attr in nft.attributes if attr.key and attr.value]
    if not lines:
        return ""
    return "\n\nThis NFT has the following traits:\n" + "\n".join(lines)


def compose_prompt(nft: NftRecord, asset: NormalizedAsset) -> str:
    """Build the text prompt sent alongside the normalized image."""
    description = nft.description or "No description provided"
    base = (
        "Analyze the attached image of the NFT.\n"
        f'The NFT is named "{nft.name}" and has the Token ID "{nft.token_id}".\n'
        f'Its original description is: "{description}".'
    )
    note = STRATEGY_NOTES[asset.conversion_strategy]
    return f"{base}{_render_traits(nft)}\n\n{note}\n\n{_INSTRUCTIONS}"
