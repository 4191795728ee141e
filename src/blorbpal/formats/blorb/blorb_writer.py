"""
Blorb Writer

Writes a BlorbFile back to disk with a rebuilt RIdx, the bundled story file
(if any) and the BPal chunk. RIdx offsets and the FORM size are written as
placeholders first and patched once every chunk is in place.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from ...utils.binary import IoBuffer, ByteOrder
from .base import (
    BlorbChunk, FormatError,
    FORM, IFRS, RIDX, PICT, EXEC, ZCOD, BPAL,
    RIDX_ENTRY_SIZE, RIDX_OFFSETS_START,
)
from .blorb_file import BlorbFile


logger = logging.getLogger(__name__)


class BlorbWriter:
    """
    Write a BlorbFile to disk.

    Order: RIdx, metadata chunks, images (ascending id), ZCOD, BPal.
    """

    def __init__(self, blorb: BlorbFile):
        self.blorb = blorb

    def write(self, output_path: str):
        """Write the archive to output_path."""
        self._check()
        with open(Path(output_path), 'wb') as f:
            self.write_to(f)
        logger.info(f"Wrote {output_path}")

    def to_bytes(self) -> bytes:
        """Serialize the archive to bytes."""
        self._check()
        buffer = BytesIO()
        self.write_to(buffer)
        return buffer.getvalue()

    def _check(self):
        if not self.blorb.bpal:
            raise FormatError("BPal chunk is empty")

    def write_to(self, stream: BinaryIO):
        """Serialize into a seekable binary stream."""
        io = IoBuffer(stream, ByteOrder.BIG_ENDIAN)
        blorb = self.blorb
        picts = blorb.sorted_picts()

        io.write_type_code(FORM)
        io.write_uint32(0)  # placeholder
        io.write_type_code(IFRS)
        io.write_type_code(RIDX)

        ridx_size = len(picts) + (1 if blorb.exec_data is not None else 0)
        io.write_uint32(4 + ridx_size * RIDX_ENTRY_SIZE)
        io.write_uint32(ridx_size)

        for number, _ in picts:
            io.write_type_code(PICT)
            io.write_uint32(number)
            io.write_uint32(0)  # placeholder

        if blorb.exec_data is not None:
            io.write_type_code(EXEC)
            io.write_uint32(0)
            io.write_uint32(0)

        for chunk in blorb.chunks:
            io.write_bytes(chunk.serialize())

        offsets = []
        for _, chunk in picts:
            offsets.append(io.position)
            io.write_bytes(chunk.serialize())

        if blorb.exec_data is not None:
            offsets.append(io.position)
            io.write_bytes(BlorbChunk(ZCOD, blorb.exec_data).serialize())

        payload = b''.join(entry.pack() for entry in blorb.bpal)
        io.write_bytes(BlorbChunk(BPAL, payload).serialize())
        logger.debug(f"BPal: {len(blorb.bpal)} entries")

        for i, offset in enumerate(offsets):
            io.seek(RIDX_OFFSETS_START + i * RIDX_ENTRY_SIZE)
            io.write_uint32(offset)

        io.seek(0, 2)
        size = io.position
        io.seek(4)
        io.write_uint32(size - 8)
        io.seek(0, 2)
