"""Cursor over bytes for reading little-endian TDS fields."""

from __future__ import annotations

import struct


class ProtocolError(Exception):
    """Raised when protocol data is malformed or truncated."""


_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


class Reader:
    """Consumes fields from the front of a byte buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def __len__(self) -> int:
        return len(self._data) - self._pos

    def remaining(self) -> bytes:
        """Return the unread bytes without consuming them."""
        return self._data[self._pos :]

    def take(self, length: int) -> bytes:
        """Consume and return exactly ``length`` bytes."""
        end = self._pos + length
        if length < 0 or end > len(self._data):
            raise ProtocolError("SQL Server query token ended before expected length")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u16_le(self) -> int:
        return _U16.unpack(self.take(2))[0]

    def u32_le(self) -> int:
        return _U32.unpack(self.take(4))[0]

    def u64_le(self) -> int:
        return _U64.unpack(self.take(8))[0]

    def len_prefixed(self) -> bytes:
        """Read bytes preceded by a u16 length."""
        return self.take(self.u16_le())

    def b_varchar(self) -> str:
        """Read a UTF-16 string preceded by a one-byte character count."""
        return self.utf16(self.u8())

    def utf16(self, len_chars: int) -> str:
        """Read ``len_chars`` UTF-16LE code units as a string."""
        raw = self.take(len_chars * 2)
        try:
            return raw.decode("utf-16-le")
        except UnicodeDecodeError:
            raise ProtocolError("SQL Server string contained invalid UTF-16") from None