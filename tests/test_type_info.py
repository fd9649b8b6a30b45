import pytest

from tdsproto.tds_types import DataType, TypeInfo
from tdsproto.type_info import MssqlType, MssqlTypeInfo


def test_exposes_sql_server_type_names():
    assert MssqlTypeInfo.INT.name() == "INT"
    assert str(MssqlTypeInfo.NVARCHAR) == "NVARCHAR"
    assert str(MssqlTypeInfo.VARCHAR) == "VARCHAR"


def test_null_is_compatible_with_known_types():
    assert MssqlTypeInfo.NULL.type_compatible(MssqlTypeInfo.INT)
    assert MssqlTypeInfo.NVARCHAR.type_compatible(MssqlTypeInfo.NULL)
    assert not MssqlTypeInfo.INT.type_compatible(MssqlTypeInfo.BIGINT)


def test_maps_unicode_and_non_unicode_protocol_text_separately():
    assert (
        MssqlTypeInfo.from_protocol(TypeInfo(DataType.N_VAR_CHAR, 8)).kind
        is MssqlType.N_VAR_CHAR
    )
    assert (
        MssqlTypeInfo.from_protocol(TypeInfo(DataType.VAR_CHAR, 8)).kind
        is MssqlType.VAR_CHAR
    )
    assert (
        MssqlTypeInfo.from_protocol(TypeInfo(DataType.BIG_VAR_CHAR, 8)).kind
        is MssqlType.VAR_CHAR
    )


@pytest.mark.parametrize(
    "size, kind",
    [
        (1, MssqlType.TINY_INT),
        (2, MssqlType.SMALL_INT),
        (4, MssqlType.INT),
        (8, MssqlType.BIG_INT),
    ],
)
def test_maps_intn_by_size(size, kind):
    info = MssqlTypeInfo.from_protocol(TypeInfo(DataType.INT_N, size))
    assert info.kind is kind
    assert info.size == size
    assert info.variable_length is True


def test_maps_floatn_by_size():
    assert MssqlTypeInfo.from_protocol(TypeInfo(DataType.FLOAT_N, 4)).kind is MssqlType.REAL
    assert MssqlTypeInfo.from_protocol(TypeInfo(DataType.FLOAT_N, 8)).kind is MssqlType.FLOAT


def test_fixed_protocol_type_is_not_variable_length():
    info = MssqlTypeInfo.from_protocol(TypeInfo(DataType.INT, 4))
    assert info.kind is MssqlType.INT
    assert info.variable_length is False


def test_unmapped_protocol_type_becomes_other_with_its_name():
    info = MssqlTypeInfo.from_protocol(TypeInfo(DataType.XML, 0))
    assert info.kind is MssqlType.OTHER
    assert info.name() == "XML"


def test_other_types_compare_by_name():
    xml = MssqlTypeInfo.from_protocol(TypeInfo(DataType.XML, 0))
    text = MssqlTypeInfo.from_protocol(TypeInfo(DataType.TEXT, 0))
    assert xml.type_compatible(xml)
    assert not xml.type_compatible(text)


def test_protocol_backed_constants_expose_scale_and_precision():
    assert MssqlTypeInfo.TIME.scale() == 7
    assert MssqlTypeInfo.DECIMAL.precision() == 38
    assert MssqlTypeInfo.DATE.precision() == 10
    assert MssqlTypeInfo.DATETIMEOFFSET.size == 10
    assert MssqlTypeInfo.INT.scale() == 0
    assert MssqlTypeInfo.INT.precision() == 0


def test_decimal_with_scale():
    info = MssqlTypeInfo.decimal_with_scale(4)
    assert info.kind is MssqlType.DECIMAL
    assert info.scale() == 4
    assert info.precision() == 38
    assert info.protocol_type_info.ty is DataType.NUMERIC_N


def test_with_size_is_variable_length():
    info = MssqlTypeInfo.with_size(MssqlType.N_VAR_CHAR, 200)
    assert info.variable_length is True
    assert info.size == 200
    assert info.protocol_type_info is None


def test_is_null():
    assert MssqlTypeInfo.NULL.is_null()
    assert not MssqlTypeInfo.BIT.is_null()