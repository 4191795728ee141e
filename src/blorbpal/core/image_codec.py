"""
Image Codec - decode/encode PNG pictures and access their color tables.

Color tables are lists of (r, g, b, a) tuples. For indexed PNGs the alpha
values come from the tRNS chunk; entries it does not cover are opaque.
"""

from io import BytesIO
from typing import Any, Protocol

from PIL import Image

from ..formats.blorb.base import CodecError


ColorTable = list[tuple[int, int, int, int]]


class ImageCodec(Protocol):
    """What the palette conversion needs from an image library."""

    def decode(self, data: bytes) -> Any: ...

    def is_indexed(self, image: Any) -> bool: ...

    def color_table(self, image: Any) -> ColorTable: ...

    def with_color_table(self, image: Any, table: ColorTable) -> Any: ...

    def encode(self, image: Any) -> bytes: ...


class PillowCodec:
    """ImageCodec backed by Pillow."""

    def decode(self, data: bytes) -> Image.Image:
        try:
            image = Image.open(BytesIO(data), formats=["PNG"])
            image.load()
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise CodecError(f"unable to load PNG: {e}") from e
        return image

    def is_indexed(self, image: Image.Image) -> bool:
        return image.mode == "P"

    def color_table(self, image: Image.Image) -> ColorTable:
        if image.mode != "P":
            return []

        rgb = image.getpalette("RGB") or []
        count = len(rgb) // 3
        alpha = [255] * count

        transparency = image.info.get("transparency")
        if isinstance(transparency, bytes):
            for i, a in enumerate(transparency[:count]):
                alpha[i] = a
        elif isinstance(transparency, int) and transparency < count:
            alpha[transparency] = 0

        return [(rgb[i * 3], rgb[i * 3 + 1], rgb[i * 3 + 2], alpha[i]) for i in range(count)]

    def with_color_table(self, image: Image.Image, table: ColorTable) -> Image.Image:
        """Copy of image using table. Non-indexed images are returned copied but unchanged."""
        result = image.copy()
        if result.mode != "P":
            return result

        result.putpalette([c for r, g, b, _ in table for c in (r, g, b)], "RGB")

        alpha = bytes(a for *_, a in table).rstrip(b'\xff')
        if alpha:
            result.info["transparency"] = alpha
        else:
            result.info.pop("transparency", None)
        return result

    def encode(self, image: Image.Image) -> bytes:
        buffer = BytesIO()
        try:
            image.save(buffer, format="PNG")
        except (OSError, ValueError) as e:
            raise CodecError(f"unable to store image as PNG: {e}") from e
        return buffer.getvalue()
