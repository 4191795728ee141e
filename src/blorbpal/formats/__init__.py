"""blorbpal formats package - file format parsers."""
from .blorb import BlorbFile, BlorbWriter, BlorbChunk, BPalEntry

__all__ = [
    'BlorbFile', 'BlorbWriter', 'BlorbChunk', 'BPalEntry',
]
