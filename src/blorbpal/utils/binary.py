"""Clean binary I/O utilities for IFF parsing."""

import struct
from enum import Enum
from typing import BinaryIO
from io import BytesIO


class ByteOrder(Enum):
    """Byte order enum for struct packing/unpacking."""
    BIG_ENDIAN = ">"
    LITTLE_ENDIAN = "<"


class ShortReadError(EOFError):
    """Raised when the stream ends before a read is satisfied."""


class IoBuffer:
    """Binary reader/writer with endian support."""

    def __init__(self, stream: BinaryIO, byte_order: ByteOrder = ByteOrder.BIG_ENDIAN):
        self.stream = stream
        self.byte_order = byte_order

    @classmethod
    def from_bytes(cls, data: bytes, byte_order: ByteOrder = ByteOrder.BIG_ENDIAN) -> 'IoBuffer':
        """Create from bytes."""
        return cls(BytesIO(data), byte_order)

    @classmethod
    def from_file(cls, filepath: str, byte_order: ByteOrder = ByteOrder.BIG_ENDIAN) -> 'IoBuffer':
        """Create from file path."""
        with open(filepath, 'rb') as f:
            data = f.read()
        return cls.from_bytes(data, byte_order)

    @property
    def position(self) -> int:
        """Current position in stream."""
        return self.stream.tell()

    @position.setter
    def position(self, value: int):
        """Seek to position."""
        self.stream.seek(value)

    @property
    def size(self) -> int:
        """Total length of the stream."""
        current = self.stream.tell()
        self.stream.seek(0, 2)  # Seek to end
        end = self.stream.tell()
        self.stream.seek(current)  # Seek back
        return end

    def has_bytes(self, num_bytes: int) -> bool:
        """Check if there are at least num_bytes remaining."""
        return (self.size - self.position) >= num_bytes

    def seek(self, offset: int, whence: int = 0):
        """Seek in stream (whence: 0=start, 1=current, 2=end)."""
        self.stream.seek(offset, whence)

    def read_bytes(self, count: int) -> bytes:
        """Read exactly count raw bytes."""
        start = self.position
        data = self.stream.read(count)
        if len(data) != count:
            raise ShortReadError(
                f"wanted {count} bytes at offset {start:#x}, got {len(data)}"
            )
        return data

    def read_byte(self) -> int:
        """Read single byte (0-255)."""
        return self.read_bytes(1)[0]

    def read_uint32(self) -> int:
        """Read unsigned 32-bit integer."""
        fmt = f"{self.byte_order.value}I"
        return struct.unpack(fmt, self.read_bytes(4))[0]

    def read_type_code(self) -> str:
        """Read a 4-character chunk type code."""
        return self.read_bytes(4).decode('latin-1')

    def write_bytes(self, data: bytes):
        """Write raw bytes."""
        self.stream.write(data)

    def write_uint32(self, value: int):
        """Write unsigned 32-bit integer."""
        fmt = f"{self.byte_order.value}I"
        self.stream.write(struct.pack(fmt, value))

    def write_type_code(self, type_code: str):
        """Write a 4-character chunk type code."""
        self.stream.write(type_code.encode('latin-1')[:4].ljust(4, b' '))
