"""Shared helpers."""
from .binary import IoBuffer, ByteOrder, ShortReadError

__all__ = ['IoBuffer', 'ByteOrder', 'ShortReadError']
