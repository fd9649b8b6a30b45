"""TDS TYPE_INFO structures: data types, collations and their wire form."""

from __future__ import annotations

import enum
import logging
import struct
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from tdsproto.read import ProtocolError, Reader

_log = logging.getLogger(__name__)

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


class TypeInfoError(ProtocolError):
    """Raised while reading a TYPE_INFO; by default for truncated input."""

    def __init__(self, message: str = "TDS TYPE_INFO ended unexpectedly") -> None:
        super().__init__(message)


class UnknownDataTypeError(TypeInfoError):
    """The data type byte is not a known TDS type."""

    def __init__(self, code: int) -> None:
        super().__init__(f"unknown TDS data type 0x{code:02x}")
        self.code = code


class UnsupportedDataTypeError(TypeInfoError):
    """The data type is known but not supported."""

    def __init__(self, data_type: DataType) -> None:
        super().__init__(f"unsupported TDS data type {data_type.name}")
        self.data_type = data_type


class InvalidScaleError(TypeInfoError):
    """A time-like type carried a scale above seven."""

    def __init__(self, data_type: DataType, scale: int) -> None:
        super().__init__(f"invalid scale {scale} for type {data_type.name}")
        self.data_type = data_type
        self.scale = scale


class DataType(enum.IntEnum):
    """TDS data type bytes."""

    # fixed length
    NULL = 0x1F
    TINY_INT = 0x30
    BIT = 0x32
    SMALL_INT = 0x34
    INT = 0x38
    SMALL_DATE_TIME = 0x3A
    REAL = 0x3B
    MONEY = 0x3C
    DATE_TIME = 0x3D
    FLOAT = 0x3E
    SMALL_MONEY = 0x7A
    BIG_INT = 0x7F

    # byte length
    GUID = 0x24
    INT_N = 0x26
    DECIMAL = 0x37
    NUMERIC = 0x3F
    BIT_N = 0x68
    DECIMAL_N = 0x6A
    NUMERIC_N = 0x6C
    FLOAT_N = 0x6D
    MONEY_N = 0x6E
    DATE_TIME_N = 0x6F
    DATE_N = 0x28
    TIME_N = 0x29
    DATE_TIME2_N = 0x2A
    DATE_TIME_OFFSET_N = 0x2B
    CHAR = 0x2F
    VAR_CHAR = 0x27
    BINARY = 0x2D
    VAR_BINARY = 0x25

    # short length
    BIG_VAR_BINARY = 0xA5
    BIG_VAR_CHAR = 0xA7
    BIG_BINARY = 0xAD
    BIG_CHAR = 0xAF
    N_VAR_CHAR = 0xE7
    N_CHAR = 0xEF
    XML = 0xF1
    USER_DEFINED = 0xF0

    # long length
    TEXT = 0x23
    IMAGE = 0x22
    N_TEXT = 0x63
    VARIANT = 0x62


FIXED_LENGTH_TYPES = frozenset(
    {
        DataType.NULL,
        DataType.TINY_INT,
        DataType.BIT,
        DataType.SMALL_INT,
        DataType.INT,
        DataType.SMALL_DATE_TIME,
        DataType.REAL,
        DataType.MONEY,
        DataType.DATE_TIME,
        DataType.FLOAT,
        DataType.SMALL_MONEY,
        DataType.BIG_INT,
    }
)

_FIXED_SIZES = {
    DataType.NULL: 0,
    DataType.TINY_INT: 1,
    DataType.BIT: 1,
    DataType.SMALL_INT: 2,
    DataType.INT: 4,
    DataType.SMALL_DATE_TIME: 4,
    DataType.REAL: 4,
    DataType.SMALL_MONEY: 4,
    DataType.BIG_INT: 8,
    DataType.MONEY: 8,
    DataType.DATE_TIME: 8,
    DataType.FLOAT: 8,
}

_SCALED_TYPES = frozenset(
    {DataType.TIME_N, DataType.DATE_TIME2_N, DataType.DATE_TIME_OFFSET_N}
)

_BYTE_SIZED_TYPES = frozenset(
    {
        DataType.GUID,
        DataType.INT_N,
        DataType.BIT_N,
        DataType.FLOAT_N,
        DataType.MONEY_N,
        DataType.DATE_TIME_N,
        DataType.CHAR,
        DataType.VAR_CHAR,
        DataType.BINARY,
        DataType.VAR_BINARY,
    }
)

_DECIMAL_TYPES = frozenset(
    {DataType.DECIMAL, DataType.NUMERIC, DataType.DECIMAL_N, DataType.NUMERIC_N}
)

_SHORT_BINARY_TYPES = frozenset({DataType.BIG_VAR_BINARY, DataType.BIG_BINARY})

_COLLATED_TYPES = frozenset(
    {DataType.BIG_VAR_CHAR, DataType.BIG_CHAR, DataType.N_VAR_CHAR, DataType.N_CHAR}
)

_UNSUPPORTED_TYPES = frozenset(
    {
        DataType.XML,
        DataType.USER_DEFINED,
        DataType.TEXT,
        DataType.IMAGE,
        DataType.N_TEXT,
        DataType.VARIANT,
    }
)

_NAMES = {
    DataType.NULL: "NULL",
    DataType.TINY_INT: "TINYINT",
    DataType.SMALL_INT: "SMALLINT",
    DataType.INT: "INT",
    DataType.BIG_INT: "BIGINT",
    DataType.REAL: "REAL",
    DataType.FLOAT: "FLOAT",
    DataType.VAR_CHAR: "VARCHAR",
    DataType.N_VAR_CHAR: "NVARCHAR",
    DataType.BIG_VAR_CHAR: "BIGVARCHAR",
    DataType.CHAR: "CHAR",
    DataType.BIG_CHAR: "BIGCHAR",
    DataType.N_CHAR: "NCHAR",
    DataType.VAR_BINARY: "VARBINARY",
    DataType.BIG_VAR_BINARY: "BIGVARBINARY",
    DataType.BINARY: "BINARY",
    DataType.BIG_BINARY: "BIGBINARY",
    DataType.DATE_N: "DATE",
    DataType.DATE_TIME_N: "DATETIME",
    DataType.DATE_TIME2_N: "DATETIME2",
    DataType.DATE_TIME_OFFSET_N: "DATETIMEOFFSET",
    DataType.BIT: "BIT",
    DataType.SMALL_DATE_TIME: "SMALLDATETIME",
    DataType.MONEY: "MONEY",
    DataType.DATE_TIME: "DATETIME",
    DataType.SMALL_MONEY: "SMALLMONEY",
    DataType.GUID: "UNIQUEIDENTIFIER",
    DataType.DECIMAL: "DECIMAL",
    DataType.NUMERIC: "NUMERIC",
    DataType.BIT_N: "BIT",
    DataType.DECIMAL_N: "DECIMAL",
    DataType.NUMERIC_N: "NUMERIC",
    DataType.MONEY_N: "MONEY",
    DataType.TIME_N: "TIME",
    DataType.XML: "XML",
    DataType.USER_DEFINED: "USER_DEFINED_TYPE",
    DataType.TEXT: "TEXT",
    DataType.IMAGE: "IMAGE",
    DataType.N_TEXT: "NTEXT",
    DataType.VARIANT: "SQL_VARIANT",
}

_INT_N_NAMES = {1: "TINYINT", 2: "SMALLINT", 4: "INT", 8: "BIGINT"}
_FLOAT_N_NAMES = {4: "REAL", 8: "FLOAT"}

_PLAIN_DECLARATIONS = {
    DataType.NULL: "nvarchar(1)",
    DataType.TINY_INT: "tinyint",
    DataType.SMALL_INT: "smallint",
    DataType.INT: "int",
    DataType.BIG_INT: "bigint",
    DataType.REAL: "real",
    DataType.FLOAT: "float",
    DataType.BIT: "bit",
    DataType.BIT_N: "bit",
    DataType.DATE_N: "date",
    DataType.DATE_TIME: "datetime",
    DataType.DATE_TIME_N: "datetime",
    DataType.SMALL_DATE_TIME: "smalldatetime",
    DataType.MONEY: "money",
    DataType.SMALL_MONEY: "smallmoney",
    DataType.GUID: "uniqueidentifier",
    DataType.DECIMAL: "decimal",
    DataType.NUMERIC: "numeric",
    DataType.XML: "xml",
    DataType.USER_DEFINED: "user_defined_type",
    DataType.TEXT: "text",
    DataType.IMAGE: "image",
    DataType.N_TEXT: "ntext",
    DataType.VARIANT: "sql_variant",
}

_SIZED_DECLARATIONS = {
    DataType.VAR_CHAR: "varchar",
    DataType.BIG_VAR_CHAR: "bigvarchar",
    DataType.CHAR: "char",
    DataType.BIG_CHAR: "bigchar",
    DataType.VAR_BINARY: "varbinary",
    DataType.BIG_VAR_BINARY: "varbinary",
    DataType.BINARY: "binary",
    DataType.BIG_BINARY: "binary",
}

_SCALED_DECLARATIONS = {
    DataType.DATE_TIME2_N: "datetime2",
    DataType.DATE_TIME_OFFSET_N: "datetimeoffset",
    DataType.TIME_N: "time",
    DataType.MONEY_N: "money",
}

_MAX_SIZE = 0xFFFF


@contextmanager
def _reading() -> Iterator[None]:
    """Report truncated input as a TYPE_INFO error."""
    try:
        yield
    except TypeInfoError:
        raise
    except ProtocolError:
        raise TypeInfoError() from None


def _read_data_type(reader: Reader) -> DataType:
    with _reading():
        code = reader.u8()
    try:
        return DataType(code)
    except ValueError:
        raise UnknownDataTypeError(code) from None


def _fit(value: int, limit: int, what: str) -> int:
    if not 0 <= value <= limit:
        raise ValueError(f"{what} {value} does not fit in the TYPE_INFO field")
    return value


class CollationFlags(enum.IntFlag):
    """Collation comparison flags."""

    IGNORE_CASE = 1 << 0
    IGNORE_ACCENT = 1 << 1
    IGNORE_WIDTH = 1 << 2
    IGNORE_KANA = 1 << 3
    BINARY = 1 << 4
    BINARY2 = 1 << 5


@dataclass(frozen=True)
class Collation:
    """A SQL collation as carried in TYPE_INFO."""

    locale: int
    flags: CollationFlags
    sort: int
    version: int

    @classmethod
    def get(cls, reader: Reader) -> Collation:
        """Read the five collation bytes."""
        with _reading():
            packed = reader.u32_le()
            sort = reader.u8()
        return cls(
            locale=packed & 0xFFFFF,
            flags=CollationFlags(((packed >> 20) & 0xFF) & 0x3F),
            sort=sort,
            version=packed >> 28,
        )

    def put(self) -> bytes:
        """Encode the collation to its five wire bytes."""
        packed = self.locale | (int(self.flags) << 20) | (self.version << 28)
        return _U32.pack(packed & 0xFFFFFFFF) + bytes([self.sort])


@dataclass(frozen=True)
class TypeInfo:
    """A TDS TYPE_INFO."""

    ty: DataType
    size: int
    scale: int = 0
    precision: int = 0
    collation: Optional[Collation] = None

    @classmethod
    def get(cls, reader: Reader) -> TypeInfo:
        """Read a TYPE_INFO from ``reader``."""
        ty = _read_data_type(reader)

        if ty in _FIXED_SIZES:
            return cls(ty, _FIXED_SIZES[ty])
        if ty is DataType.DATE_N:
            return cls(ty, 3)
        if ty in _UNSUPPORTED_TYPES:
            raise UnsupportedDataTypeError(ty)

        with _reading():
            if ty in _SCALED_TYPES:
                scale = reader.u8()
                if scale <= 2:
                    size = 3
                elif scale <= 4:
                    size = 4
                elif scale <= 7:
                    size = 5
                else:
                    raise InvalidScaleError(ty, scale)
                if ty is DataType.DATE_TIME2_N:
                    size += 3
                elif ty is DataType.DATE_TIME_OFFSET_N:
                    size += 5
                return cls(ty, size, scale=scale)

            if ty in _BYTE_SIZED_TYPES:
                return cls(ty, reader.u8())

            if ty in _DECIMAL_TYPES:
                size = reader.u8()
                precision = reader.u8()
                scale = reader.u8()
                return cls(ty, size, scale=scale, precision=precision)

            if ty in _SHORT_BINARY_TYPES:
                return cls(ty, reader.u16_le())

            size = reader.u16_le()
            collation = Collation.get(reader)
            return cls(ty, size, collation=collation)

    def put(self) -> bytes:
        """Encode this TYPE_INFO to wire bytes."""
        ty = self.ty
        out = bytearray([int(ty)])

        if ty in FIXED_LENGTH_TYPES:
            pass
        elif ty in _SCALED_TYPES:
            out.append(_fit(self.scale, 0xFF, "scale"))
        elif ty in _BYTE_SIZED_TYPES or ty is DataType.DATE_N:
            out.append(_fit(self.size, 0xFF, "size"))
        elif ty in _DECIMAL_TYPES:
            out.append(_fit(self.size, 0xFF, "size"))
            out.append(_fit(self.precision, 0xFF, "precision"))
            out.append(_fit(self.scale, 0xFF, "scale"))
        elif ty in _SHORT_BINARY_TYPES:
            out += _U16.pack(_fit(self.size, 0xFFFF, "size"))
        elif ty in _COLLATED_TYPES:
            out += _U16.pack(_fit(self.size, 0xFFFF, "size"))
            if self.collation is not None:
                out += self.collation.put()
            else:
                out += bytes(5)
        else:
            _log.error("Unsupported mssql data type argument writing %s", ty.name)

        return bytes(out)

    def is_null(self) -> bool:
        return self.ty is DataType.NULL

    def is_nullable_or_variable_length(self) -> bool:
        return self.ty not in FIXED_LENGTH_TYPES

    def name(self) -> str:
        """Upper-case SQL Server type name."""
        if self.ty is DataType.INT_N:
            return self._sized_name(_INT_N_NAMES, "int")
        if self.ty is DataType.FLOAT_N:
            return self._sized_name(_FLOAT_N_NAMES, "float")
        return _NAMES[self.ty]

    def declaration(self) -> str:
        """Type declaration as written in a parameter list."""
        ty = self.ty
        if ty is DataType.INT_N:
            return self._sized_name(_INT_N_NAMES, "int").lower()
        if ty is DataType.FLOAT_N:
            return self._sized_name(_FLOAT_N_NAMES, "float").lower()
        if ty in (DataType.N_VAR_CHAR, DataType.N_CHAR):
            base = "nvarchar" if ty is DataType.N_VAR_CHAR else "nchar"
            length = "max" if self.size == _MAX_SIZE else str(self.size // 2)
            return f"{base}({length})"
        if ty in _SIZED_DECLARATIONS:
            length = "max" if self.size == _MAX_SIZE else str(self.size)
            return f"{_SIZED_DECLARATIONS[ty]}({length})"
        if ty in _SCALED_DECLARATIONS:
            return f"{_SCALED_DECLARATIONS[ty]}({self.scale})"
        if ty is DataType.DECIMAL_N:
            return f"decimal({self.precision},{self.scale})"
        if ty is DataType.NUMERIC_N:
            return f"numeric({self.precision},{self.scale})"
        return _PLAIN_DECLARATIONS[ty]

    def _sized_name(self, names: dict[int, str], family: str) -> str:
        try:
            return names[self.size]
        except KeyError:
            raise ValueError(f"invalid size {self.size} for {family}") from None