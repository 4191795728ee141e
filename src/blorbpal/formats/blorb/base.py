"""
Blorb Chunk Base Types

Blorb is an IFF FORM of type IFRS. Every chunk is a 4-byte type code, a
4-byte big-endian length, the payload, and one zero pad byte when the length
is odd. The pad byte is not counted in the length.
"""

import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class BlorbError(Exception):
    """Base class for every failure while processing a Blorb archive."""


class FormatError(BlorbError):
    """Malformed or semantically invalid archive."""


class CodecError(BlorbError):
    """Image decode/encode or PNG compression failure."""


class BlorbIoError(BlorbError):
    """File could not be read or written (including truncated input)."""


# Container
FORM = "FORM"
IFRS = "IFRS"
RIDX = "RIdx"

# Resource usages
PICT = "Pict"
EXEC = "Exec"

# Chunk types
PNG = "PNG "
RECT = "Rect"
ZCOD = "ZCOD"
APAL = "APal"
BPAL = "BPal"
IFHD = "IFhd"
SNAM = "SNam"
COPYRIGHT = "(c) "
AUTH = "AUTH"
RELN = "RelN"
RESO = "Reso"

# Offset of the first RIdx entry's start field
RIDX_OFFSETS_START = 0x20
RIDX_ENTRY_SIZE = 12


class ChunkRole(Enum):
    """How the reader treats a chunk type."""
    METADATA = "metadata"      # kept as-is, in file order
    PICTURE = "picture"        # addressed through RIdx
    PROCESSED = "processed"    # only present in files we already wrote


# Chunk type registry - maps 4-char codes to their role
CHUNK_ROLES: dict[str, ChunkRole] = {}


def register_chunk_role(role: ChunkRole, *type_codes: str):
    """Register one or more chunk type codes under a role."""
    for type_code in type_codes:
        CHUNK_ROLES[type_code] = role


def get_chunk_role(type_code: str) -> Optional[ChunkRole]:
    """Get the role for a type code, or None if the chunk is not allowed."""
    return CHUNK_ROLES.get(type_code)


register_chunk_role(ChunkRole.METADATA, IFHD, SNAM, COPYRIGHT, AUTH, RELN, RESO, APAL)
register_chunk_role(ChunkRole.PICTURE, PNG, RECT)
register_chunk_role(ChunkRole.PROCESSED, BPAL)


def type_code_value(type_code: str) -> int:
    """Big-endian integer value of a type code."""
    return struct.unpack('>I', type_code.encode('latin-1'))[0]


def type_code_repr(type_code: str) -> str:
    """Printable form of a type code, non-printables shown as spaces."""
    return ''.join(c if c.isprintable() and ord(c) < 0x7f else ' ' for c in type_code)


def describe_type_code(type_code: str) -> str:
    """`6e6f7065 (nope)` style description used in error messages."""
    return f"{type_code_value(type_code):x} ({type_code_repr(type_code)})"


@dataclass
class BlorbChunk:
    """A single chunk: type code plus logical payload (no pad byte)."""
    chunk_type: str
    data: bytes = field(default_factory=bytes)

    def serialize(self) -> bytes:
        """Serialize chunk with header and pad byte."""
        out = bytearray()
        out.extend(self.chunk_type.encode('latin-1'))
        out.extend(struct.pack('>I', len(self.data)))
        out.extend(self.data)
        if len(self.data) % 2 == 1:
            out.append(0)
        return bytes(out)

    def __str__(self) -> str:
        return f"{type_code_repr(self.chunk_type)} ({len(self.data)} bytes)"


@dataclass
class ResourceEntry:
    """One RIdx entry."""
    usage: str = PICT
    number: int = 0
    start: int = 0


@dataclass
class BPalEntry:
    """
    One BPal record.

    palette: image whose colors were used
    requested: adaptive (APal) image the game asked for
    id: image to draw instead
    """
    palette: int
    requested: int
    id: int

    SIZE = 12

    def pack(self) -> bytes:
        return struct.pack('>III', self.palette, self.requested, self.id)

    @classmethod
    def unpack_all(cls, payload: bytes) -> list['BPalEntry']:
        """Decode a BPal chunk payload."""
        if len(payload) % cls.SIZE != 0:
            raise FormatError(f"invalid BPal size: {len(payload)}")
        return [
            cls(*struct.unpack_from('>III', payload, pos))
            for pos in range(0, len(payload), cls.SIZE)
        ]
