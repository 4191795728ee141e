"""
Core conversion modules for blorbpal.

- image_codec: PNG decode/encode and color table access (Pillow)
- png_compress: oxipng wrapper for generated images
- palette_conversion: APal resolution, palette substitution, BPal building
"""

from .image_codec import ImageCodec, PillowCodec, ColorTable
from .png_compress import Compressor, OxipngCompressor, NullCompressor
from .palette_conversion import (
    find_apal_images, load_apal_images, convert_palette,
    ConversionCache, ConversionReport, convert_blorb,
)
