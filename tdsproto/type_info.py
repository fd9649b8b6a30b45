"""Column and parameter type information as seen by database users."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, Optional

from tdsproto.tds_types import DataType
from tdsproto.tds_types import TypeInfo as ProtocolTypeInfo


class MssqlType(enum.Enum):
    """SQL Server scalar type families."""

    NULL = "NULL"
    BIT = "BIT"
    TINY_INT = "TINYINT"
    SMALL_INT = "SMALLINT"
    INT = "INT"
    BIG_INT = "BIGINT"
    REAL = "REAL"
    FLOAT = "FLOAT"
    N_VAR_CHAR = "NVARCHAR"
    VAR_CHAR = "VARCHAR"
    VAR_BINARY = "VARBINARY"
    DECIMAL = "DECIMAL"
    MONEY = "MONEY"
    DATE = "DATE"
    TIME = "TIME"
    DATE_TIME = "DATETIME"
    DATE_TIME2 = "DATETIME2"
    DATE_TIME_OFFSET = "DATETIMEOFFSET"
    UNIQUE_IDENTIFIER = "UNIQUEIDENTIFIER"
    OTHER = "OTHER"


_DIRECT_KINDS = {
    DataType.NULL: MssqlType.NULL,
    DataType.BIT: MssqlType.BIT,
    DataType.BIT_N: MssqlType.BIT,
    DataType.TINY_INT: MssqlType.TINY_INT,
    DataType.SMALL_INT: MssqlType.SMALL_INT,
    DataType.INT: MssqlType.INT,
    DataType.BIG_INT: MssqlType.BIG_INT,
    DataType.REAL: MssqlType.REAL,
    DataType.FLOAT: MssqlType.FLOAT,
    DataType.N_VAR_CHAR: MssqlType.N_VAR_CHAR,
    DataType.N_CHAR: MssqlType.N_VAR_CHAR,
    DataType.VAR_CHAR: MssqlType.VAR_CHAR,
    DataType.CHAR: MssqlType.VAR_CHAR,
    DataType.BIG_VAR_CHAR: MssqlType.VAR_CHAR,
    DataType.BIG_CHAR: MssqlType.VAR_CHAR,
    DataType.VAR_BINARY: MssqlType.VAR_BINARY,
    DataType.BINARY: MssqlType.VAR_BINARY,
    DataType.BIG_VAR_BINARY: MssqlType.VAR_BINARY,
    DataType.BIG_BINARY: MssqlType.VAR_BINARY,
    DataType.DECIMAL: MssqlType.DECIMAL,
    DataType.DECIMAL_N: MssqlType.DECIMAL,
    DataType.NUMERIC: MssqlType.DECIMAL,
    DataType.NUMERIC_N: MssqlType.DECIMAL,
    DataType.MONEY: MssqlType.MONEY,
    DataType.MONEY_N: MssqlType.MONEY,
    DataType.SMALL_MONEY: MssqlType.MONEY,
    DataType.DATE_N: MssqlType.DATE,
    DataType.TIME_N: MssqlType.TIME,
    DataType.DATE_TIME: MssqlType.DATE_TIME,
    DataType.DATE_TIME_N: MssqlType.DATE_TIME,
    DataType.SMALL_DATE_TIME: MssqlType.DATE_TIME,
    DataType.DATE_TIME2_N: MssqlType.DATE_TIME2,
    DataType.DATE_TIME_OFFSET_N: MssqlType.DATE_TIME_OFFSET,
    DataType.GUID: MssqlType.UNIQUE_IDENTIFIER,
}

_INT_N_KINDS = {
    1: MssqlType.TINY_INT,
    2: MssqlType.SMALL_INT,
    4: MssqlType.INT,
    8: MssqlType.BIG_INT,
}

_FLOAT_N_KINDS = {4: MssqlType.REAL, 8: MssqlType.FLOAT}


@dataclass(frozen=True)
class MssqlTypeInfo:
    """SQL Server type information.

    ``other_name`` holds the type name when ``kind`` is ``MssqlType.OTHER``.
    """

    kind: MssqlType
    variable_length: bool = False
    size: Optional[int] = None
    protocol_type_info: Optional[ProtocolTypeInfo] = None
    other_name: Optional[str] = None

    NULL: ClassVar[MssqlTypeInfo]
    BIT: ClassVar[MssqlTypeInfo]
    TINYINT: ClassVar[MssqlTypeInfo]
    SMALLINT: ClassVar[MssqlTypeInfo]
    INT: ClassVar[MssqlTypeInfo]
    BIGINT: ClassVar[MssqlTypeInfo]
    REAL: ClassVar[MssqlTypeInfo]
    FLOAT: ClassVar[MssqlTypeInfo]
    NVARCHAR: ClassVar[MssqlTypeInfo]
    VARCHAR: ClassVar[MssqlTypeInfo]
    VARBINARY: ClassVar[MssqlTypeInfo]
    DECIMAL: ClassVar[MssqlTypeInfo]
    MONEY: ClassVar[MssqlTypeInfo]
    DATE: ClassVar[MssqlTypeInfo]
    TIME: ClassVar[MssqlTypeInfo]
    DATETIME2: ClassVar[MssqlTypeInfo]
    DATETIMEOFFSET: ClassVar[MssqlTypeInfo]
    UNIQUEIDENTIFIER: ClassVar[MssqlTypeInfo]

    @classmethod
    def with_size(cls, kind: MssqlType, size: int) -> MssqlTypeInfo:
        """Variable-length type information with a byte size."""
        return cls(kind, variable_length=True, size=size)

    @classmethod
    def with_protocol(
        cls, kind: MssqlType, protocol_type_info: ProtocolTypeInfo
    ) -> MssqlTypeInfo:
        """Type information backed by a wire TYPE_INFO."""
        return cls(
            kind,
            variable_length=True,
            size=protocol_type_info.size & 0xFFFF,
            protocol_type_info=protocol_type_info,
        )

    @classmethod
    def decimal_with_scale(cls, scale: int) -> MssqlTypeInfo:
        """A ``decimal(38, scale)`` parameter type."""
        return cls.with_protocol(
            MssqlType.DECIMAL,
            ProtocolTypeInfo(DataType.NUMERIC_N, 17, scale=scale, precision=38),
        )

    @classmethod
    def from_protocol(cls, type_info: ProtocolTypeInfo) -> MssqlTypeInfo:
        """Map a wire TYPE_INFO onto a SQL Server type family."""
        ty = type_info.ty
        kind: Optional[MssqlType]
        if ty is DataType.INT_N:
            kind = _INT_N_KINDS.get(type_info.size)
        elif ty is DataType.FLOAT_N:
            kind = _FLOAT_N_KINDS.get(type_info.size)
        else:
            kind = _DIRECT_KINDS.get(ty)

        other_name = None
        if kind is None:
            kind = MssqlType.OTHER
            other_name = type_info.name()

        return cls(
            kind,
            variable_length=type_info.is_nullable_or_variable_length(),
            size=type_info.size if 0 <= type_info.size <= 0xFFFF else None,
            protocol_type_info=type_info,
            other_name=other_name,
        )

    def name(self) -> str:
        """Upper-case SQL Server type name."""
        if self.kind is MssqlType.OTHER:
            return self.other_name or ""
        return self.kind.value

    def is_null(self) -> bool:
        return self.kind is MssqlType.NULL

    def type_compatible(self, other: MssqlTypeInfo) -> bool:
        """Whether values of ``other`` may be used where this type is expected."""
        same_kind = self.kind is other.kind and (
            self.kind is not MssqlType.OTHER or self.other_name == other.other_name
        )
        return same_kind or self.is_null() or other.is_null()

    def scale(self) -> int:
        info = self.protocol_type_info
        return info.scale if info is not None else 0

    def precision(self) -> int:
        info = self.protocol_type_info
        return info.precision if info is not None else 0

    def __str__(self) -> str:
        return self.name()


MssqlTypeInfo.NULL = MssqlTypeInfo(MssqlType.NULL)
MssqlTypeInfo.BIT = MssqlTypeInfo(MssqlType.BIT)
MssqlTypeInfo.TINYINT = MssqlTypeInfo(MssqlType.TINY_INT)
MssqlTypeInfo.SMALLINT = MssqlTypeInfo(MssqlType.SMALL_INT)
MssqlTypeInfo.INT = MssqlTypeInfo(MssqlType.INT)
MssqlTypeInfo.BIGINT = MssqlTypeInfo(MssqlType.BIG_INT)
MssqlTypeInfo.REAL = MssqlTypeInfo(MssqlType.REAL)
MssqlTypeInfo.FLOAT = MssqlTypeInfo(MssqlType.FLOAT)
MssqlTypeInfo.NVARCHAR = MssqlTypeInfo(MssqlType.N_VAR_CHAR)
MssqlTypeInfo.VARCHAR = MssqlTypeInfo(MssqlType.VAR_CHAR)
MssqlTypeInfo.VARBINARY = MssqlTypeInfo(MssqlType.VAR_BINARY)
MssqlTypeInfo.DECIMAL = MssqlTypeInfo.with_protocol(
    MssqlType.DECIMAL, ProtocolTypeInfo(DataType.NUMERIC_N, 17, precision=38)
)
MssqlTypeInfo.MONEY = MssqlTypeInfo(MssqlType.MONEY)
MssqlTypeInfo.DATE = MssqlTypeInfo.with_protocol(
    MssqlType.DATE, ProtocolTypeInfo(DataType.DATE_N, 3, precision=10)
)
MssqlTypeInfo.TIME = MssqlTypeInfo.with_protocol(
    MssqlType.TIME, ProtocolTypeInfo(DataType.TIME_N, 5, scale=7)
)
MssqlTypeInfo.DATETIME2 = MssqlTypeInfo.with_protocol(
    MssqlType.DATE_TIME2, ProtocolTypeInfo(DataType.DATE_TIME2_N, 8, scale=7)
)
MssqlTypeInfo.DATETIMEOFFSET = MssqlTypeInfo.with_protocol(
    MssqlType.DATE_TIME_OFFSET,
    ProtocolTypeInfo(DataType.DATE_TIME_OFFSET_N, 10, scale=7, precision=34),
)
MssqlTypeInfo.UNIQUEIDENTIFIER = MssqlTypeInfo.with_protocol(
    MssqlType.UNIQUE_IDENTIFIER, ProtocolTypeInfo(DataType.GUID, 16)
)