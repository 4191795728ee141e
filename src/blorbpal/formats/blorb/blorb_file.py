"""
Blorb File Parser

Blorb is the resource container used by Infocom-era and later interactive
fiction. Layout:

    FORM <size> IFRS
    RIdx <4 + 12*n> <n> { usage, number, start } * n
    chunk*

`start` is the absolute file offset of the chunk's type code.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from ...utils.binary import IoBuffer, ByteOrder, ShortReadError
from .base import (
    BlorbChunk, BlorbIoError, BPalEntry, ChunkRole, FormatError,
    ResourceEntry, describe_type_code, get_chunk_role,
    FORM, IFRS, RIDX, PICT, RIDX_ENTRY_SIZE,
)


logger = logging.getLogger(__name__)

# Converted IDs start here unless the file already uses larger ones.
FIRST_CONVERTED_ID = 1000


def iter_chunks(io: IoBuffer, end: int) -> Iterator[tuple[int, BlorbChunk]]:
    """Yield (offset, chunk) for every chunk between the current position and end."""
    while io.position < end:
        pos = io.position
        chunk_type = io.read_type_code()
        size = io.read_uint32()
        data = io.read_bytes(size)
        if size % 2 == 1:
            io.read_byte()
        yield pos, BlorbChunk(chunk_type, data)


@dataclass
class BlorbFile:
    """
    Blorb archive contents.

    chunks: metadata chunks, in file order
    picts: image chunks keyed by resource number
    exec_data: story file to bundle as ZCOD on write
    bpal: BPal records to emit on write
    """
    filename: str = ""
    size: int = 0
    chunks: list[BlorbChunk] = field(default_factory=list)
    picts: dict[int, BlorbChunk] = field(default_factory=dict)
    exec_data: Optional[bytes] = None
    bpal: list[BPalEntry] = field(default_factory=list)
    index: list[ResourceEntry] = field(default_factory=list)
    converted_id: int = FIRST_CONVERTED_ID

    @classmethod
    def read(cls, path: str) -> 'BlorbFile':
        """Read a Blorb file from disk."""
        io = IoBuffer.from_file(path, ByteOrder.BIG_ENDIAN)
        blorb = cls(filename=str(path))
        blorb._read_from_stream(io)
        return blorb

    @classmethod
    def from_bytes(cls, data: bytes, filename: str = "") -> 'BlorbFile':
        """Read a Blorb from bytes."""
        io = IoBuffer.from_bytes(data, ByteOrder.BIG_ENDIAN)
        blorb = cls(filename=filename)
        blorb._read_from_stream(io)
        return blorb

    def _read_from_stream(self, io: IoBuffer):
        try:
            ids = self._read_header(io)
            seen = self._read_chunks(io, ids)
        except ShortReadError as e:
            raise BlorbIoError(f"truncated file: {e}") from e

        for start in sorted(set(ids) - seen):
            logger.warning(f"RIdx entry {ids[start]} points at {start:#x}, where no image chunk starts")

    def _read_header(self, io: IoBuffer) -> dict[int, int]:
        """Read FORM header and RIdx. Returns a map of chunk offset -> resource number."""
        if io.read_type_code() != FORM:
            raise FormatError("not a blorb")

        self.size = io.read_uint32()

        if io.read_type_code() != IFRS or io.read_type_code() != RIDX:
            raise FormatError("not a blorb")

        ridx_size = io.read_uint32()
        num = io.read_uint32()
        if ridx_size != 4 + num * RIDX_ENTRY_SIZE:
            raise FormatError(f"RIdx mismatch: size {ridx_size} for {num} entries")

        ids: dict[int, int] = {}
        numbers: set[int] = set()

        for _ in range(num):
            usage = io.read_type_code()
            number = io.read_uint32()
            start = io.read_uint32()

            if usage != PICT:
                raise FormatError(f"unknown resource usage: {describe_type_code(usage)}")

            # Legal in Blorb, but neither Arthur nor Zork Zero does it.
            if start in ids:
                raise FormatError(f"duplicate offset {start:x} for id {number}")
            if number in numbers:
                raise FormatError(f"duplicate resource id {number}")

            ids[start] = number
            numbers.add(number)
            self.index.append(ResourceEntry(usage, number, start))
            self.converted_id = max(self.converted_id, number + 1)

        logger.debug(f"RIdx: {num} entries, converted ids start at {self.converted_id}")
        return ids

    def _read_chunks(self, io: IoBuffer, ids: dict[int, int]) -> set[int]:
        """Read the chunk stream. Returns the offsets of image chunks found."""
        seen: set[int] = set()
        for pos, chunk in iter_chunks(io, self.size + 8):
            role = get_chunk_role(chunk.chunk_type)
            logger.debug(f"@{pos:x}: {chunk}")

            if role == ChunkRole.METADATA:
                self.chunks.append(chunk)
            elif role == ChunkRole.PICTURE:
                if pos not in ids:
                    raise FormatError(
                        f"found {describe_type_code(chunk.chunk_type)} chunk at offset {pos:x}, "
                        f"but no RIdx entries reference it"
                    )
                self.picts[ids[pos]] = chunk
                seen.add(pos)
            elif role == ChunkRole.PROCESSED:
                raise FormatError("this file already has a BPal chunk")
            else:
                raise FormatError(f"unknown chunk: {describe_type_code(chunk.chunk_type)} @{pos:x}")

        return seen

    def find_chunk(self, type_code: str) -> Optional[BlorbChunk]:
        """First metadata chunk with the given type code."""
        for chunk in self.chunks:
            if chunk.chunk_type == type_code:
                return chunk
        return None

    def sorted_picts(self) -> list[tuple[int, BlorbChunk]]:
        """Image chunks in ascending resource number order."""
        return sorted(self.picts.items())

    def summary(self) -> str:
        """Get a summary of chunks in this file."""
        lines = [
            f"Blorb: {self.filename}",
            f"Size: {self.size + 8:,} bytes",
            f"Resources: {len(self.index)}",
        ]

        type_counts: dict[str, int] = {}
        for chunk in [*self.chunks, *self.picts.values()]:
            type_counts[chunk.chunk_type] = type_counts.get(chunk.chunk_type, 0) + 1

        for code, count in sorted(type_counts.items()):
            lines.append(f"  {code}: {count}")

        return "\n".join(lines)
