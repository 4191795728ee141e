"""Blorb format package - IFRS resource archives for interactive fiction."""
from .base import (
    BlorbChunk, BPalEntry, ResourceEntry, ChunkRole,
    BlorbError, FormatError, CodecError, BlorbIoError,
    register_chunk_role, get_chunk_role, CHUNK_ROLES,
)
from .blorb_file import BlorbFile, iter_chunks
from .blorb_writer import BlorbWriter

__all__ = [
    'BlorbChunk', 'BPalEntry', 'ResourceEntry', 'ChunkRole',
    'BlorbError', 'FormatError', 'CodecError', 'BlorbIoError',
    'register_chunk_role', 'get_chunk_role', 'CHUNK_ROLES',
    'BlorbFile', 'iter_chunks', 'BlorbWriter',
]
