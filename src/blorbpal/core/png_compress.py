"""
PNG Compression - shrink generated images before they are written.

Pillow's PNG encoder is not size-optimal; converted images are run through
oxipng the same way the original Blorb tools were.
"""

import logging
import subprocess
from typing import Protocol

from ..formats.blorb.base import CodecError


logger = logging.getLogger(__name__)


class Compressor(Protocol):
    def compress(self, data: bytes) -> bytes: ...


class OxipngCompressor:
    """Runs the oxipng binary with the PNG on stdin and reads the result from stdout."""

    def __init__(self, binary: str = "oxipng", level: int = 6):
        self.binary = binary
        self.level = level

    @property
    def command(self) -> list[str]:
        return [self.binary, f"-o{self.level}", "-q", "--stdout", "-"]

    def compress(self, data: bytes) -> bytes:
        try:
            result = subprocess.run(self.command, input=data, capture_output=True)
        except OSError as e:
            raise CodecError(f"unable to run {self.binary}: {e}") from e

        if result.returncode != 0:
            message = f"{self.binary} exited {result.returncode}"
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            if stderr:
                message += f": {stderr}"
            raise CodecError(message)

        if not result.stdout:
            raise CodecError(f"{self.binary} produced no output")

        logger.debug(f"oxipng: {len(data)} -> {len(result.stdout)} bytes")
        return result.stdout


class NullCompressor:
    """Leaves images as the codec wrote them."""

    def compress(self, data: bytes) -> bytes:
        return data
