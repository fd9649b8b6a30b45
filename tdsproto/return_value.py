"""RETURNVALUE token parsing."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from tdsproto.col_meta_data import ColumnFlags
from tdsproto.read import Reader
from tdsproto.tds_types import TypeInfo
from tdsproto.type_info import MssqlTypeInfo
from tdsproto.values import read_value

_STATUS_MASK = 0x03
_FLAGS_MASK = 0x3F3F


class ReturnValueStatus(enum.IntFlag):
    """RETURNVALUE status bits."""

    OUTPUT_PARAM = 0x01
    USER_DEFINED_FUNCTION = 0x02


@dataclass(frozen=True)
class ReturnValue:
    """An output parameter or function result sent by the server."""

    param_ordinal: int
    param_name: str
    status: ReturnValueStatus
    user_type: int
    flags: ColumnFlags
    type_info: TypeInfo
    value: Optional[bytes]

    @classmethod
    def get(cls, reader: Reader) -> ReturnValue:
        """Read a RETURNVALUE token body."""
        param_ordinal = reader.u16_le()
        param_name = reader.b_varchar()
        status = ReturnValueStatus(reader.u8() & _STATUS_MASK)
        user_type = reader.u32_le()
        flags = ColumnFlags(reader.u16_le() & _FLAGS_MASK)
        type_info = TypeInfo.get(reader)
        value = read_value(type_info, reader)
        return cls(
            param_ordinal, param_name, status, user_type, flags, type_info, value
        )

    def mssql_type_info(self) -> MssqlTypeInfo:
        """Type information of the returned value."""
        return MssqlTypeInfo.from_protocol(self.type_info)