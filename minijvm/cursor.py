"""
Sequential big-endian reader over a fixed byte buffer.
"""

import struct

from .errors import OutOfBoundsError


class ByteCursor:
    """Reads unsigned integers and byte runs, advancing a position."""

    def __init__(self, data: bytes, pos: int = 0):
        self._view = memoryview(data).toreadonly()
        self._pos = 0
        self.seek(pos)

    def __len__(self) -> int:
        return len(self._view)

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._view) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._view)

    def seek(self, offset: int):
        """Move to an absolute offset; the buffer end itself is allowed."""
        if offset < 0 or offset > len(self._view):
            raise OutOfBoundsError(offset, 0, len(self._view))
        self._pos = offset

    def _require(self, width: int):
        if width < 0 or self._pos + width > len(self._view):
            raise OutOfBoundsError(self._pos, width, len(self._view))

    def read_u1(self) -> int:
        self._require(1)
        val = self._view[self._pos]
        self._pos += 1
        return val

    def read_u2(self) -> int:
        self._require(2)
        val = struct.unpack_from(">H", self._view, self._pos)[0]
        self._pos += 2
        return val

    def read_u4(self) -> int:
        self._require(4)
        val = struct.unpack_from(">I", self._view, self._pos)[0]
        self._pos += 4
        return val

    def read_bytes(self, length: int) -> memoryview:
        """Return a view of the next `length` bytes."""
        self._require(length)
        val = self._view[self._pos:self._pos + length]
        self._pos += length
        return val
