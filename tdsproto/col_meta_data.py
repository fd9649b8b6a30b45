"""COLMETADATA token parsing."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from tdsproto.read import Reader
from tdsproto.tds_types import TypeInfo
from tdsproto.type_info import MssqlTypeInfo

_FLAGS_MASK = 0x3F3F
_NO_METADATA = 0xFFFF


class ColumnFlags(enum.IntFlag):
    """Column metadata flags."""

    NULLABLE = 0x0001
    CASE_SENSITIVE = 0x0002
    UPDATEABLE_READ_WRITE = 0x0004
    UPDATEABLE_UNKNOWN = 0x0008
    IDENTITY = 0x0010
    COMPUTED = 0x0020
    FIXED_LEN_CLR_TYPE = 0x0100
    SPARSE_COLUMN_SET = 0x0400
    ENCRYPTED = 0x0800
    HIDDEN = 0x2000


@dataclass(frozen=True)
class ColumnData:
    """One column description from a COLMETADATA token."""

    user_type: int
    flags: ColumnFlags
    type_info: TypeInfo
    col_name: str

    @classmethod
    def get(cls, reader: Reader) -> ColumnData:
        """Read one column description; unknown flag bits are dropped."""
        user_type = reader.u32_le()
        flags = ColumnFlags(reader.u16_le() & _FLAGS_MASK)
        type_info = TypeInfo.get(reader)
        col_name = reader.b_varchar()
        return cls(user_type, flags, type_info, col_name)


@dataclass(frozen=True)
class MetadataColumn:
    """A result column: position, name and type."""

    ordinal: int
    name: str
    type_info: MssqlTypeInfo


def parse_col_meta_data(reader: Reader) -> list[MetadataColumn]:
    """Read a COLMETADATA token body into result columns."""
    count = reader.u16_le()
    if count == _NO_METADATA:
        return []

    columns = []
    for ordinal in range(count):
        column = ColumnData.get(reader)
        columns.append(
            MetadataColumn(
                ordinal,
                column.col_name,
                MssqlTypeInfo.from_protocol(column.type_info),
            )
        )
    return columns