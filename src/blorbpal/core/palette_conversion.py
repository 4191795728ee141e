"""
Palette Conversion - build BPal entries for adaptive-palette images.

Images listed in the APal chunk are drawn by the game with the colors of
whatever non-adaptive image was shown last. Interpreters that cannot do
that at draw time use BPal instead: for every (palette image, adaptive
image) pair it names a pre-rendered image with the adaptive image's pixels
and the palette image's colors.

Palette entries 0 and 1 always keep the adaptive image's own values; they
hold the transparent and background colors.
"""

import logging
from dataclasses import dataclass
from typing import Any

from ..formats.blorb.base import BlorbChunk, BPalEntry, CodecError, FormatError, APAL, PNG
from ..formats.blorb.blorb_file import BlorbFile
from .image_codec import ImageCodec
from .png_compress import Compressor


logger = logging.getLogger(__name__)

# First palette entry that is taken from the palette image.
FIRST_ADAPTIVE_ENTRY = 2

# Resource numbers are stored as u32.
MAX_RESOURCE_ID = 0xFFFFFFFF


def find_apal_images(chunks: list[BlorbChunk]) -> list[int]:
    """Resource numbers listed in the APal chunk, ascending and without duplicates."""
    apal = next((chunk for chunk in chunks if chunk.chunk_type == APAL), None)
    if apal is None:
        raise FormatError("no APal chunk found")

    if len(apal.data) % 4 != 0:
        raise FormatError(f"invalid APal size: {len(apal.data)}")

    return sorted({
        int.from_bytes(apal.data[i:i + 4], 'big')
        for i in range(0, len(apal.data), 4)
    })


def load_apal_images(blorb: BlorbFile, codec: ImageCodec) -> dict[int, Any]:
    """Decode every image named by APal."""
    apal_images = {}
    for apal_id in find_apal_images(blorb.chunks):
        chunk = blorb.picts.get(apal_id)
        if chunk is None:
            raise FormatError(f"APal references image {apal_id}, which does not exist")
        try:
            apal_images[apal_id] = codec.decode(chunk.data)
        except CodecError as e:
            raise FormatError(f"unable to load image {apal_id}: {e}") from e

    if not apal_images:
        raise FormatError("no APal images found")

    return apal_images


def convert_palette(codec: ImageCodec, apal_image: Any, palette: Any) -> bytes:
    """
    Render apal_image with the colors of palette.

    Entries from FIRST_ADAPTIVE_ENTRY up to the shorter of the two tables
    are replaced; everything else keeps apal_image's values.
    """
    if not codec.is_indexed(palette):
        raise FormatError("palette source not indexed")

    dst = list(codec.color_table(apal_image))
    src = codec.color_table(palette)

    for i in range(FIRST_ADAPTIVE_ENTRY, min(len(src), len(dst))):
        dst[i] = src[i]

    return codec.encode(codec.with_color_table(apal_image, dst))


class ConversionCache:
    """
    Content-addressed store for converted images.

    Identical output is stored once; later requests get the id of the first.
    """

    def __init__(self, first_id: int):
        self.next_id = first_id
        self._ids: dict[bytes, int] = {}
        self.converted: dict[int, bytes] = {}

    def lookup_or_insert(self, data: bytes) -> int:
        """Return the id for data, minting the next id if it is new."""
        existing = self._ids.get(data)
        if existing is not None:
            return existing

        new_id = self.next_id
        if new_id > MAX_RESOURCE_ID:
            raise FormatError("no resource ids left for converted images")
        self.next_id += 1
        self._ids[data] = new_id
        self.converted[new_id] = data
        return new_id

    def __len__(self) -> int:
        return len(self.converted)


@dataclass
class ConversionReport:
    """Counts from one convert_blorb run."""
    adaptive: int = 0
    palettes: int = 0
    entries: int = 0
    generated: int = 0

    def __str__(self) -> str:
        return (f"{self.adaptive} adaptive x {self.palettes} palette images: "
                f"{self.entries} BPal entries, {self.generated} new images")


def convert_blorb(blorb: BlorbFile, codec: ImageCodec, compressor: Compressor) -> ConversionReport:
    """
    Add converted images and BPal entries to blorb, in place.

    PNG images not listed in APal are palettes, visited in ascending id
    order; for each, every APal image is converted in ascending id order.
    """
    apal_images = load_apal_images(blorb, codec)
    cache = ConversionCache(blorb.converted_id)
    report = ConversionReport(adaptive=len(apal_images))

    logger.info("Converting images...")
    for number, chunk in blorb.sorted_picts():
        if chunk.chunk_type != PNG or number in apal_images:
            continue

        palette = codec.decode(chunk.data)
        report.palettes += 1
        for apal_id, apal_image in apal_images.items():
            converted = convert_palette(codec, apal_image, palette)
            result_id = cache.lookup_or_insert(converted)
            blorb.bpal.append(BPalEntry(number, apal_id, result_id))
            logger.debug(f"  palette {number} + APal {apal_id} -> {result_id}")

    logger.info("Compressing images...")
    for number, data in cache.converted.items():
        blorb.picts[number] = BlorbChunk(PNG, compressor.compress(data))

    report.entries = len(blorb.bpal)
    report.generated = len(cache)
    logger.info(str(report))
    return report
