"""Reading and writing length-prefixed TDS column and parameter values."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from tdsproto.read import ProtocolError, Reader
from tdsproto.tds_types import FIXED_LENGTH_TYPES, DataType, TypeInfo, TypeInfoError

PLP_NULL = 0xFFFF_FFFF_FFFF_FFFF
"""PLP length marking a NULL value."""

PLP_UNKNOWN_LENGTH = 0xFFFF_FFFF_FFFF_FFFE
"""PLP length marking a value whose total size is not announced."""

PLP_CHUNK_SIZE = 8192
"""Largest chunk written for a PLP value."""

_MAX_SIZE = 0xFFFF

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")

_BYTE_LEN_TYPES = frozenset(
    {
        DataType.GUID,
        DataType.INT_N,
        DataType.DECIMAL,
        DataType.NUMERIC,
        DataType.BIT_N,
        DataType.DECIMAL_N,
        DataType.NUMERIC_N,
        DataType.FLOAT_N,
        DataType.MONEY_N,
        DataType.DATE_N,
        DataType.DATE_TIME_N,
        DataType.TIME_N,
        DataType.DATE_TIME2_N,
        DataType.DATE_TIME_OFFSET_N,
    }
)

_LEGACY_VAR_TYPES = frozenset(
    {DataType.CHAR, DataType.VAR_CHAR, DataType.BINARY, DataType.VAR_BINARY}
)

_SHORT_LEN_TYPES = frozenset(
    {
        DataType.BIG_VAR_BINARY,
        DataType.BIG_VAR_CHAR,
        DataType.BIG_BINARY,
        DataType.BIG_CHAR,
        DataType.N_VAR_CHAR,
        DataType.N_CHAR,
        DataType.XML,
        DataType.USER_DEFINED,
    }
)

_LONG_LEN_TYPES = frozenset(
    {DataType.TEXT, DataType.IMAGE, DataType.N_TEXT, DataType.VARIANT}
)

_FIXED_WRITE_TYPES = FIXED_LENGTH_TYPES | {DataType.DATE_N}
_BYTE_LEN_WRITE_TYPES = (_BYTE_LEN_TYPES - {DataType.DATE_N}) | _LEGACY_VAR_TYPES


@contextmanager
def _reading() -> Iterator[None]:
    """Report truncated input as a TYPE_INFO error."""
    try:
        yield
    except TypeInfoError:
        raise
    except ProtocolError:
        raise TypeInfoError() from None


def read_plp(reader: Reader) -> Optional[bytes]:
    """Read a partially length-prefixed value; ``None`` for NULL."""
    with _reading():
        total = reader.u64_le()
        if total == PLP_NULL:
            return None
        data = bytearray()
        while True:
            chunk_size = reader.u32_le()
            if chunk_size == 0:
                break
            data += reader.take(chunk_size)
    return bytes(data)


def read_value(type_info: TypeInfo, reader: Reader) -> Optional[bytes]:
    """Read the raw bytes of one value of ``type_info``; ``None`` for NULL."""
    ty = type_info.ty

    if ty is DataType.NULL:
        return None

    with _reading():
        if ty in FIXED_LENGTH_TYPES:
            return reader.take(type_info.size)

        if ty in _BYTE_LEN_TYPES:
            size = reader.u8()
            if size in (0, 0xFF):
                return None
            return reader.take(size)

        if ty in _LEGACY_VAR_TYPES:
            size = reader.u8()
            if size == 0xFF:
                return None
            return reader.take(size)

        if ty in _SHORT_LEN_TYPES:
            if type_info.size == _MAX_SIZE:
                return read_plp(reader)
            size = reader.u16_le()
            if size == 0xFFFF:
                return None
            return reader.take(size)

        size = reader.u32_le()
        if size == 0xFFFF_FFFF:
            return None
        return reader.take(size)


def _length_prefixed(value: Optional[bytes], width: struct.Struct, null: int) -> bytes:
    if value is None:
        return width.pack(null)
    limit = (1 << (width.size * 8)) - 1
    if len(value) > limit:
        raise ValueError(f"value of {len(value)} bytes does not fit its length prefix")
    return width.pack(len(value)) + value


def _plp(value: Optional[bytes]) -> bytes:
    if value is None:
        return _U64.pack(PLP_NULL)
    out = bytearray(_U64.pack(len(value)))
    for start in range(0, len(value), PLP_CHUNK_SIZE):
        chunk = value[start : start + PLP_CHUNK_SIZE]
        out += _U32.pack(len(chunk))
        out += chunk
    out += _U32.pack(0)
    return bytes(out)


def write_value(type_info: TypeInfo, value: Optional[bytes]) -> bytes:
    """Encode already-serialised value bytes with the framing of ``type_info``.

    ``None`` stands for SQL NULL.
    """
    ty = type_info.ty
    raw = None if value is None else bytes(value)

    if ty in _FIXED_WRITE_TYPES:
        return raw if raw is not None else b""

    if ty in _BYTE_LEN_WRITE_TYPES:
        if raw is None:
            return b"\xff"
        if len(raw) > 0xFF:
            raise ValueError(f"value of {len(raw)} bytes does not fit its length prefix")
        return bytes([len(raw)]) + raw

    if ty in _SHORT_LEN_TYPES:
        if type_info.size == _MAX_SIZE:
            return _plp(raw)
        return _length_prefixed(raw, _U16, 0xFFFF)

    return _length_prefixed(raw, _U32, 0xFFFF_FFFF)